"""
Task Service - CRUD orchestration for tasks, scoped to the owning user
"""
import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import DEFAULT_LISTING_ID, TASK_STATUSES, TASK_TYPES
from crud.task import TaskRepository
from database_models import Task
from models.task_models import TaskCreateRequest, TaskUpdateRequest
from utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def parse_due_date(value) -> Optional[date]:
    """
    Parse an ISO date or datetime string into a calendar date.

    Raises:
        ValidationError: value is not an ISO date
    """
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError(f"Invalid dueDate: {value}")


def _require_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        raise ValidationError("Title required")
    return title.strip()


def _check_choice(field: str, value: Optional[str], choices) -> str:
    if value not in choices:
        raise ValidationError(f"Invalid {field}: {value}. Expected one of: {', '.join(choices)}")
    return value


class TaskService:
    """Service class for task business logic"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tasks = TaskRepository(db)

    async def list_tasks(self, user_id: str) -> List[Task]:
        return await self.tasks.list_by_user(user_id)

    async def create_task(self, user_id: str, request: TaskCreateRequest) -> Task:
        """
        Create a task for a user.

        Title is required; type defaults to custom, status to pending and the
        listing to the sentinel default listing.
        """
        title = _require_title(request.title)
        task_type = _check_choice("type", request.type or "custom", TASK_TYPES)
        status = _check_choice("status", request.status or "pending", TASK_STATUSES)

        task = await self.tasks.create_task({
            "user_id": user_id,
            "listing_id": request.listing_id or DEFAULT_LISTING_ID,
            "title": title,
            "type": task_type,
            "status": status,
            "notes": request.notes,
            "due_date": parse_due_date(request.due_date),
        })
        await self.db.commit()
        logger.info(f"Created task {task.id} for user {user_id}")
        return task

    async def update_task(self, user_id: str, task_id: str, request: TaskUpdateRequest) -> Task:
        """
        Apply a partial update. Omitted fields keep their values; an explicit
        null clears notes and dueDate and resets listingId to the default listing.
        """
        task = await self.tasks.get_owned(task_id, user_id)
        if task is None:
            raise NotFoundError("Task not found")

        updates = {}
        for name, value in request.supplied().items():
            if name == "title":
                updates["title"] = _require_title(value)
            elif name == "type":
                updates["type"] = _check_choice("type", value, TASK_TYPES)
            elif name == "status":
                updates["status"] = _check_choice("status", value, TASK_STATUSES)
            elif name == "notes":
                updates["notes"] = value
            elif name == "due_date":
                updates["due_date"] = parse_due_date(value)
            elif name == "listing_id":
                updates["listing_id"] = value or DEFAULT_LISTING_ID

        if not updates:
            return task

        task = await self.tasks.update_task(task, updates)
        await self.db.commit()
        logger.info(f"Updated task {task_id} fields {sorted(updates)}")
        return task

    async def delete_task(self, user_id: str, task_id: str) -> None:
        task = await self.tasks.get_owned(task_id, user_id)
        if task is None:
            raise NotFoundError("Task not found")
        await self.tasks.delete_task(task)
        await self.db.commit()
        logger.info(f"Deleted task {task_id} for user {user_id}")
