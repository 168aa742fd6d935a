"""
Unit tests for TaskService and ListingService
"""
from datetime import date

import pytest

from config.settings import DEFAULT_LISTING_ID
from models.listing_models import ListingCreateRequest
from models.task_models import TaskCreateRequest, TaskUpdateRequest
from services.listing_service import ListingService
from services.task_service import TaskService, parse_due_date
from utils.errors import NotFoundError, ValidationError


@pytest.mark.asyncio
@pytest.mark.parametrize("title", [None, "", "   "])
async def test_create_requires_title(test_db, title):
    with pytest.raises(ValidationError):
        await TaskService(test_db).create_task("user_1", TaskCreateRequest(title=title))


@pytest.mark.asyncio
async def test_create_defaults_listing_type_and_status(test_db):
    task = await TaskService(test_db).create_task("user_1", TaskCreateRequest(title="Restock soap"))

    assert task.listing_id == DEFAULT_LISTING_ID
    assert task.type == "custom"
    assert task.status == "pending"
    assert task.user_id == "user_1"
    assert task.created_at is not None


@pytest.mark.asyncio
async def test_create_rejects_unknown_type(test_db):
    with pytest.raises(ValidationError):
        await TaskService(test_db).create_task("user_1", TaskCreateRequest(title="x", type="laundry"))


@pytest.mark.asyncio
async def test_updating_status_only_leaves_other_fields(test_db):
    service = TaskService(test_db)
    task = await service.create_task("user_1", TaskCreateRequest.model_validate({
        "title": "Deep clean",
        "type": "clean",
        "notes": "Bring the steamer",
        "dueDate": "2024-06-01",
    }))

    updated = await service.update_task("user_1", task.id, TaskUpdateRequest.model_validate({"status": "in_progress"}))

    assert updated.status == "in_progress"
    assert updated.title == "Deep clean"
    assert updated.notes == "Bring the steamer"
    assert updated.due_date == date(2024, 6, 1)


@pytest.mark.asyncio
async def test_explicit_null_clears_notes_and_due_date(test_db):
    service = TaskService(test_db)
    task = await service.create_task("user_1", TaskCreateRequest.model_validate({
        "title": "Fix lamp",
        "notes": "Bulb is E27",
        "dueDate": "2024-06-01",
    }))

    updated = await service.update_task(
        "user_1", task.id, TaskUpdateRequest.model_validate({"notes": None, "dueDate": None})
    )

    assert updated.notes is None
    assert updated.due_date is None
    assert updated.title == "Fix lamp"


@pytest.mark.asyncio
async def test_update_rejects_blank_title(test_db):
    service = TaskService(test_db)
    task = await service.create_task("user_1", TaskCreateRequest(title="Fix lamp"))

    with pytest.raises(ValidationError):
        await service.update_task("user_1", task.id, TaskUpdateRequest.model_validate({"title": ""}))


@pytest.mark.asyncio
async def test_other_users_task_is_not_found(test_db):
    service = TaskService(test_db)
    task = await service.create_task("user_1", TaskCreateRequest(title="Private"))

    with pytest.raises(NotFoundError):
        await service.update_task("user_2", task.id, TaskUpdateRequest(status="completed"))
    with pytest.raises(NotFoundError):
        await service.delete_task("user_2", task.id)

    assert [t.id for t in await service.list_tasks("user_1")] == [task.id]
    assert await service.list_tasks("user_2") == []


@pytest.mark.asyncio
async def test_delete_removes_task(test_db):
    service = TaskService(test_db)
    task = await service.create_task("user_1", TaskCreateRequest(title="Take out trash"))

    await service.delete_task("user_1", task.id)

    assert await service.list_tasks("user_1") == []
    with pytest.raises(NotFoundError):
        await service.delete_task("user_1", task.id)


@pytest.mark.parametrize("value, expected", [
    (None, None),
    ("", None),
    ("2024-06-01", date(2024, 6, 1)),
    ("2024-06-01T15:30:00Z", date(2024, 6, 1)),
])
def test_parse_due_date(value, expected):
    assert parse_due_date(value) == expected


def test_parse_due_date_rejects_garbage():
    with pytest.raises(ValidationError):
        parse_due_date("next tuesday")


@pytest.mark.asyncio
async def test_listing_requires_external_id_and_name(test_db):
    with pytest.raises(ValidationError):
        await ListingService(test_db).create_listing("user_1", ListingCreateRequest(name="Loft"))


@pytest.mark.asyncio
async def test_listing_embeds_at_most_five_open_tasks(test_db):
    listings = ListingService(test_db)
    tasks = TaskService(test_db)
    listing = await listings.create_listing(
        "user_1", ListingCreateRequest.model_validate({"airbnbListingId": "L1", "name": "Downtown Loft"})
    )

    for i in range(6):
        await tasks.create_task("user_1", TaskCreateRequest(title=f"Open {i}", listing_id=listing.id))
    await tasks.create_task("user_1", TaskCreateRequest(title="Done", listing_id=listing.id, status="completed"))

    result = await listings.list_listings("user_1")

    assert len(result) == 1
    assert result[0]["airbnbListingId"] == "L1"
    assert len(result[0]["tasks"]) == 5
    assert all(task["status"] != "completed" for task in result[0]["tasks"])
