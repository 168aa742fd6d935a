"""
FastAPI dependencies for the process-wide clients built at startup.

Each client lives on ``app.state``; tests swap them through
``app.dependency_overrides``.
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from database import get_db
from services.billing_service import BillingService
from services.entitlement_service import EntitlementService
from services.listing_service import ListingService
from services.llm_client import TextGenerator
from services.payment_events import PaymentEventVerifier
from services.task_extraction import TaskExtractionPipeline
from services.task_service import TaskService


def get_text_generator(request: Request) -> TextGenerator:
    return request.app.state.text_generator


def get_payment_verifier(request: Request) -> PaymentEventVerifier:
    return request.app.state.payment_verifier


def get_billing_service(request: Request) -> BillingService:
    return request.app.state.billing_service


def get_entitlement_service(db: AsyncSession = Depends(get_db)) -> EntitlementService:
    return EntitlementService(db)


def get_task_service(db: AsyncSession = Depends(get_db)) -> TaskService:
    return TaskService(db)


def get_listing_service(db: AsyncSession = Depends(get_db)) -> ListingService:
    return ListingService(db)


def get_extraction_pipeline(
    entitlements: EntitlementService = Depends(get_entitlement_service),
    generator: TextGenerator = Depends(get_text_generator),
) -> TaskExtractionPipeline:
    return TaskExtractionPipeline(entitlements, generator, settings.extraction_max_tokens)
