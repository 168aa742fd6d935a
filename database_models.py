import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, Text

from config.settings import DEFAULT_LISTING_ID
from database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    Entitlement record for a user.
    Rows are only created or changed by verified payment events.
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    is_pro = Column(Boolean, default=False, nullable=False)
    payment_customer_id = Column(String, unique=True, nullable=True, index=True)
    # Epoch seconds of the last payment event applied to this row
    entitlement_updated_at = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class CustomerRevocation(Base):
    """
    Cancellation received for a payment customer no user is linked to yet.
    A later-delivered but older checkout for the same customer must not grant.
    """
    __tablename__ = "customer_revocations"

    payment_customer_id = Column(String, primary_key=True)
    # Epoch seconds of the newest cancellation seen, if known
    revoked_at = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Listing(Base):
    """A property managed by the co-host."""
    __tablename__ = "listings"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    airbnb_listing_id = Column(String, nullable=False)
    name = Column(String, nullable=False)
    address = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "airbnbListingId": self.airbnb_listing_id,
            "name": self.name,
            "address": self.address,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class Task(Base):
    """
    A unit of work for a listing.
    listing_id may hold the sentinel DEFAULT_LISTING_ID, which has no listings row,
    so it is not declared as a database foreign key.
    """
    __tablename__ = "tasks"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    listing_id = Column(String, nullable=False, default=DEFAULT_LISTING_ID, index=True)
    title = Column(String, nullable=False)
    type = Column(String, nullable=False, default="custom")
    status = Column(String, nullable=False, default="pending")
    notes = Column(Text, nullable=True)
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "listingId": self.listing_id,
            "title": self.title,
            "type": self.type,
            "status": self.status,
            "notes": self.notes,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
