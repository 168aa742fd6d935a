from fastapi import APIRouter, Body, Depends

from auth import get_current_user_id
from dependencies import get_listing_service
from models.listing_models import ListingCreateRequest
from services.listing_service import ListingService
from utils.responses import success_response

listings_router = APIRouter(prefix="/api/listings", tags=["listings"])


@listings_router.get("")
async def list_listings(
    user_id: str = Depends(get_current_user_id),
    service: ListingService = Depends(get_listing_service),
):
    """Listings for the caller, each with up to 5 open tasks."""
    return success_response(await service.list_listings(user_id))


@listings_router.post("")
async def create_listing(
    request: ListingCreateRequest = Body(...),
    user_id: str = Depends(get_current_user_id),
    service: ListingService = Depends(get_listing_service),
):
    listing = await service.create_listing(user_id, request)
    return success_response(listing.to_dict(), status=201)
