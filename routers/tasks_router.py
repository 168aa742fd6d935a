"""
Tasks Router - CRUD endpoints for tasks, scoped to the calling user
"""
from fastapi import APIRouter, Body, Depends

from auth import get_current_user_id
from dependencies import get_task_service
from models.task_models import TaskCreateRequest, TaskUpdateRequest
from services.task_service import TaskService
from utils.responses import success_response

tasks_router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@tasks_router.get("")
async def list_tasks(
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    tasks = await service.list_tasks(user_id)
    return success_response([task.to_dict() for task in tasks])


@tasks_router.post("")
async def create_task(
    request: TaskCreateRequest = Body(...),
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    task = await service.create_task(user_id, request)
    return success_response(task.to_dict(), status=201)


@tasks_router.api_route("/{task_id}", methods=["PATCH", "PUT"])
async def update_task(
    task_id: str,
    request: TaskUpdateRequest = Body(...),
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    """Partial update; only the fields present in the body change."""
    task = await service.update_task(user_id, task_id, request)
    return success_response(task.to_dict())


@tasks_router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    await service.delete_task(user_id, task_id)
    return success_response({"success": True})
