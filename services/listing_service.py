"""
Listing Service - listings with a preview of their open tasks
"""
import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from crud.listing import ListingRepository
from crud.task import TaskRepository
from database_models import Listing
from models.listing_models import ListingCreateRequest
from utils.errors import ValidationError

logger = logging.getLogger(__name__)

# Open tasks embedded per listing
OPEN_TASK_PREVIEW = 5


class ListingService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.listings = ListingRepository(db)
        self.tasks = TaskRepository(db)

    async def list_listings(self, user_id: str) -> List[dict]:
        """The user's listings, newest first, each with up to 5 open tasks."""
        listings = await self.listings.list_by_user(user_id)
        open_tasks = await self.tasks.list_open_by_listings(
            user_id, [listing.id for listing in listings], OPEN_TASK_PREVIEW
        )
        result = []
        for listing in listings:
            item = listing.to_dict()
            item["tasks"] = [task.to_dict() for task in open_tasks.get(listing.id, [])]
            result.append(item)
        return result

    async def create_listing(self, user_id: str, request: ListingCreateRequest) -> Listing:
        airbnb_listing_id = (request.airbnb_listing_id or "").strip()
        name = (request.name or "").strip()
        if not airbnb_listing_id or not name:
            raise ValidationError("Airbnb listing ID and name are required")

        listing = await self.listings.create_listing({
            "user_id": user_id,
            "airbnb_listing_id": airbnb_listing_id,
            "name": name,
            "address": request.address,
        })
        await self.db.commit()
        logger.info(f"Created listing {listing.id} for user {user_id}")
        return listing
