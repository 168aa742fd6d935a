"""
Entitlement Service - pro/free status driven by verified payment events
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from crud.user import UserRepository
from database_models import User
from services.payment_events import CHECKOUT_COMPLETED, SUBSCRIPTION_DELETED, PaymentEvent
from utils.errors import ValidationError

logger = logging.getLogger(__name__)


def _is_stale(user: User, occurred_at: Optional[int]) -> bool:
    """An event older than the last one applied to the user is stale."""
    if occurred_at is None or user.entitlement_updated_at is None:
        return False
    return occurred_at < user.entitlement_updated_at


class EntitlementService:
    """
    Owns the user -> pro mapping.

    ``grant`` is keyed by user id (known when checkout starts), ``revoke`` by
    the payment customer id (the only field a cancellation carries). Both are
    safe to replay since webhook delivery is at-least-once.
    """

    def __init__(self, db: AsyncSession, user_repo: UserRepository = None):
        self.db = db
        self.user_repo = user_repo or UserRepository(db)

    async def grant(self, user_id: str, customer_id: str, occurred_at: Optional[int] = None) -> User:
        """
        Mark a user as pro, creating the row on first checkout.

        Args:
            user_id: internal user id carried in checkout metadata
            customer_id: payment customer id to link to the user
            occurred_at: event timestamp (epoch seconds), if known

        Returns:
            The user row after the update
        """
        if not user_id or not customer_id:
            raise ValidationError("user id and customer id are required to grant access")

        revoked_at = await self._later_revocation(customer_id, occurred_at)
        is_pro = revoked_at is None
        applied_at = occurred_at if is_pro else revoked_at
        if not is_pro:
            logger.info(
                f"Checkout for customer {customer_id} at {occurred_at} predates its "
                f"cancellation at {revoked_at}; linking without pro"
            )

        user = await self.user_repo.get_user_by_id(user_id)
        if user is None:
            user = await self.user_repo.create_user({
                "id": user_id,
                "is_pro": is_pro,
                "payment_customer_id": customer_id,
                "entitlement_updated_at": applied_at,
            })
            await self.db.commit()
            if is_pro:
                logger.info(f"Granted pro to new user {user_id} (customer {customer_id})")
            return user

        if _is_stale(user, occurred_at):
            logger.info(
                f"Skipping stale grant for user {user_id}: event at {occurred_at}, "
                f"last applied {user.entitlement_updated_at}"
            )
            return user

        updates = {"is_pro": is_pro, "payment_customer_id": customer_id}
        if applied_at is not None:
            updates["entitlement_updated_at"] = applied_at
        user = await self.user_repo.update_user(user, updates)
        await self.db.commit()
        if is_pro:
            logger.info(f"Granted pro to user {user_id} (customer {customer_id})")
        return user

    async def _later_revocation(self, customer_id: str, occurred_at: Optional[int]) -> Optional[int]:
        """Timestamp of a recorded cancellation newer than a checkout, else None."""
        if occurred_at is None:
            return None
        revocation = await self.user_repo.get_revocation(customer_id)
        if revocation is None or revocation.revoked_at is None:
            return None
        return revocation.revoked_at if revocation.revoked_at > occurred_at else None

    async def revoke(self, customer_id: str, occurred_at: Optional[int] = None) -> int:
        """
        Clear pro status for every user linked to a payment customer.
        The customer id is kept on the row.

        Returns:
            Number of users whose status was updated
        """
        if not customer_id:
            raise ValidationError("customer id is required to revoke access")

        users = await self.user_repo.get_users_by_customer_id(customer_id)
        if not users:
            # Cancellation overtook the checkout; remembered until the grant arrives
            await self.user_repo.record_revocation(customer_id, occurred_at)
            await self.db.commit()
            logger.info(f"No users linked to customer {customer_id}; recorded cancellation at {occurred_at}")
            return 0

        revoked = 0
        for user in users:
            if _is_stale(user, occurred_at):
                logger.info(
                    f"Skipping stale revoke for user {user.id}: event at {occurred_at}, "
                    f"last applied {user.entitlement_updated_at}"
                )
                continue
            updates = {"is_pro": False}
            if occurred_at is not None:
                updates["entitlement_updated_at"] = occurred_at
            await self.user_repo.update_user(user, updates)
            revoked += 1

        if revoked:
            await self.db.commit()
            logger.info(f"Revoked pro for {revoked} user(s) with customer {customer_id}")
        else:
            logger.info(f"No users revoked for customer {customer_id}")
        return revoked

    async def check(self, user_id: Optional[str]) -> bool:
        """Whether the user is pro. Unknown or missing ids are simply not pro."""
        if not user_id:
            return False
        user = await self.user_repo.get_user_by_id(user_id)
        return bool(user and user.is_pro)

    async def apply_event(self, event: PaymentEvent) -> bool:
        """
        Apply a verified payment event.

        Returns:
            True if the event was routed to grant/revoke, False if ignored
        """
        if event.kind == CHECKOUT_COMPLETED:
            if not event.user_id or not event.customer_id:
                logger.warning(f"Checkout event {event.id} is missing userId or customer; ignoring")
                return False
            await self.grant(event.user_id, event.customer_id, event.created)
            return True

        if event.kind == SUBSCRIPTION_DELETED:
            if not event.customer_id:
                logger.warning(f"Subscription event {event.id} has no customer; ignoring")
                return False
            await self.revoke(event.customer_id, event.created)
            return True

        logger.info(f"Ignoring payment event {event.id} of type {event.type}")
        return False
