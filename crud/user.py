"""
UserRepository for database operations on User model
"""

from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database_models import CustomerRevocation, User


class UserRepository:
    """
    Repository class for User database operations.
    Encapsulates all database logic for the User model.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """
        Retrieve a user by ID.

        Args:
            user_id: User's ID

        Returns:
            User object if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_users_by_customer_id(self, customer_id: str) -> List[User]:
        """
        Retrieve every user linked to a payment customer.

        The column is unique, so at most one row is expected.
        """
        result = await self.db.execute(
            select(User).where(User.payment_customer_id == customer_id)
        )
        return list(result.scalars().all())

    async def create_user(self, user_data: dict) -> User:
        """
        Create a new user in the database.

        Args:
            user_data: Dictionary containing user data. Must include:
                - id: str
                Optional:
                - is_pro: bool (defaults to False)
                - payment_customer_id: str
                - entitlement_updated_at: int

        Returns:
            Created User object
        """
        user = User(
            id=user_data["id"],
            is_pro=user_data.get("is_pro", False),
            payment_customer_id=user_data.get("payment_customer_id"),
            entitlement_updated_at=user_data.get("entitlement_updated_at"),
        )
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        return user

    async def update_user(self, user: User, updates: dict) -> User:
        """
        Update user fields.

        Args:
            user: User object to update
            updates: Dictionary of fields to update (e.g., {"is_pro": True})

        Returns:
            Updated User object
        """
        for key, value in updates.items():
            if hasattr(user, key):
                setattr(user, key, value)

        await self.db.flush()
        await self.db.refresh(user)
        return user

    async def get_revocation(self, customer_id: str) -> Optional[CustomerRevocation]:
        """Retrieve the cancellation recorded for an unlinked payment customer."""
        result = await self.db.execute(
            select(CustomerRevocation).where(CustomerRevocation.payment_customer_id == customer_id)
        )
        return result.scalar_one_or_none()

    async def record_revocation(self, customer_id: str, revoked_at: Optional[int]) -> CustomerRevocation:
        """
        Remember a cancellation for a payment customer with no linked user.
        Keeps the newest timestamp when one is already recorded.
        """
        revocation = await self.get_revocation(customer_id)
        if revocation is None:
            revocation = CustomerRevocation(payment_customer_id=customer_id, revoked_at=revoked_at)
            self.db.add(revocation)
        elif revoked_at is not None and (revocation.revoked_at is None or revoked_at > revocation.revoked_at):
            revocation.revoked_at = revoked_at

        await self.db.flush()
        return revocation
