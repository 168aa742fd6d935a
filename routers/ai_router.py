"""
AI Router - task extraction from guest conversations (pro only)
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends

from auth import IdentityResolver, effective_user_id, get_identity_resolver, get_optional_user_id
from dependencies import get_extraction_pipeline
from models.billing_models import ExtractTasksRequest
from services.task_extraction import TaskExtractionPipeline
from utils.responses import success_response

ai_router = APIRouter(prefix="/api/ai", tags=["ai"])


@ai_router.post("/extract-tasks")
async def extract_tasks(
    request: ExtractTasksRequest = Body(...),
    caller_id: Optional[str] = Depends(get_optional_user_id),
    resolver: IdentityResolver = Depends(get_identity_resolver),
    pipeline: TaskExtractionPipeline = Depends(get_extraction_pipeline),
):
    """
    Extract task drafts from a conversation. Drafts are not saved; callers
    persist the ones they want through POST /api/tasks.
    Non-pro callers get 403 with ``upgrade: true``.
    """
    drafts = await pipeline.extract(
        request.conversation,
        listing_name=request.listing_name,
        guest_name=request.guest_name,
        user_id=effective_user_id(resolver, caller_id, request.user_id),
    )
    return success_response({"tasks": [draft.to_dict() for draft in drafts]})
