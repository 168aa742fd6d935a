"""
ListingRepository for database operations on Listing model
"""

from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database_models import Listing


class ListingRepository:
    """Repository class for Listing database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_by_user(self, user_id: str) -> List[Listing]:
        result = await self.db.execute(
            select(Listing)
            .where(Listing.user_id == user_id)
            .order_by(Listing.created_at.desc())
        )
        return list(result.scalars().all())

    async def create_listing(self, listing_data: dict) -> Listing:
        listing = Listing(**listing_data)
        self.db.add(listing)
        await self.db.flush()
        await self.db.refresh(listing)
        return listing
