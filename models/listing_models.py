"""
Listing request models
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ListingCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    airbnb_listing_id: Optional[str] = Field(default=None, alias="airbnbListingId")
    name: Optional[str] = None
    address: Optional[str] = None
