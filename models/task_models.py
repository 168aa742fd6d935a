"""
Task request and draft models
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class TaskCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    listing_id: Optional[str] = Field(default=None, alias="listingId")
    type: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    due_date: Optional[str] = Field(default=None, alias="dueDate")


class TaskUpdateRequest(BaseModel):
    """Partial update: only fields present in the request body are applied."""
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    listing_id: Optional[str] = Field(default=None, alias="listingId")
    type: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    due_date: Optional[str] = Field(default=None, alias="dueDate")

    def supplied(self) -> dict:
        """Fields the caller actually sent, keyed by attribute name."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class TaskDraft(BaseModel):
    """An extracted, not yet persisted task."""
    model_config = ConfigDict(populate_by_name=True)

    title: str
    type: str = "custom"
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    priority: str = "medium"
    notes: str = ""

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)
