"""
TaskRepository for database operations on Task model
"""

from typing import Dict, Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database_models import Task


class TaskRepository:
    """Repository class for Task database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_by_user(self, user_id: str) -> List[Task]:
        """All tasks owned by a user, newest first."""
        result = await self.db.execute(
            select(Task)
            .where(Task.user_id == user_id)
            .order_by(Task.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_owned(self, task_id: str, user_id: str) -> Optional[Task]:
        """Retrieve a task only if it belongs to the given user."""
        result = await self.db.execute(
            select(Task).where(Task.id == task_id, Task.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_open_by_listings(
        self,
        user_id: str,
        listing_ids: Iterable[str],
        per_listing: int,
    ) -> Dict[str, List[Task]]:
        """
        Group a user's not-yet-completed tasks by listing, keeping the newest
        ``per_listing`` tasks for each listing.
        """
        listing_ids = list(listing_ids)
        grouped: Dict[str, List[Task]] = {listing_id: [] for listing_id in listing_ids}
        if not listing_ids:
            return grouped

        result = await self.db.execute(
            select(Task)
            .where(
                Task.user_id == user_id,
                Task.listing_id.in_(listing_ids),
                Task.status != "completed",
            )
            .order_by(Task.created_at.desc())
        )
        for task in result.scalars().all():
            bucket = grouped[task.listing_id]
            if len(bucket) < per_listing:
                bucket.append(task)
        return grouped

    async def create_task(self, task_data: dict) -> Task:
        """
        Create a new task.

        Args:
            task_data: column values; must include user_id, listing_id and title
        """
        task = Task(**task_data)
        self.db.add(task)
        await self.db.flush()
        await self.db.refresh(task)
        return task

    async def update_task(self, task: Task, updates: dict) -> Task:
        for key, value in updates.items():
            if hasattr(task, key):
                setattr(task, key, value)

        await self.db.flush()
        await self.db.refresh(task)
        return task

    async def delete_task(self, task: Task) -> None:
        await self.db.delete(task)
        await self.db.flush()
