"""
Billing and extraction request models
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    email: Optional[str] = None


class ExtractTasksRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation: Optional[str] = Field(default=None, description="Raw guest conversation text")
    listing_name: Optional[str] = Field(default=None, alias="listingName")
    guest_name: Optional[str] = Field(default=None, alias="guestName")
    user_id: Optional[str] = Field(default=None, alias="userId")
