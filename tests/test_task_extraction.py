"""
Tests for the task extraction pipeline: gating, prompt and best-effort parsing
"""
import pytest

from services.entitlement_service import EntitlementService
from services.task_extraction import (
    TaskExtractionPipeline,
    build_prompt,
    parse_model_output,
    to_draft,
)
from utils.errors import EntitlementRequired, UpstreamError, ValidationError
from tests.conftest import FakeTextGenerator

PROSE_WRAPPED_REPLY = (
    'Sure! Here you go: [{"title":"Clean unit","type":"clean","dueDate":null,'
    '"priority":"high","notes":""}]'
)


async def make_pipeline(test_db, reply="[]", pro=True, error=None):
    entitlements = EntitlementService(test_db)
    if pro:
        await entitlements.grant("host_1", "cus_1")
    generator = FakeTextGenerator(reply=reply, error=error)
    return TaskExtractionPipeline(entitlements, generator, max_tokens=512), generator


@pytest.mark.asyncio
async def test_non_pro_user_never_reaches_the_model(test_db):
    pipeline, generator = await make_pipeline(test_db, reply=PROSE_WRAPPED_REPLY, pro=False)

    with pytest.raises(EntitlementRequired) as exc_info:
        await pipeline.extract("Can you clean before I arrive?", user_id="host_1")

    assert generator.calls == []
    assert exc_info.value.status_code == 403
    assert exc_info.value.extra() == {"upgrade": True}


@pytest.mark.asyncio
async def test_missing_user_id_is_not_entitled(test_db):
    pipeline, generator = await make_pipeline(test_db)

    with pytest.raises(EntitlementRequired):
        await pipeline.extract("Need towels", user_id=None)
    assert generator.calls == []


@pytest.mark.asyncio
async def test_array_wrapped_in_prose_is_salvaged(test_db):
    pipeline, generator = await make_pipeline(test_db, reply=PROSE_WRAPPED_REPLY)

    drafts = await pipeline.extract("Please clean the unit", user_id="host_1")

    assert len(drafts) == 1
    assert drafts[0].title == "Clean unit"
    assert drafts[0].type == "clean"
    assert drafts[0].priority == "high"
    assert drafts[0].due_date is None
    assert len(generator.calls) == 1
    assert generator.calls[0]["max_tokens"] == 512


@pytest.mark.asyncio
async def test_malformed_output_degrades_to_empty_list(test_db):
    pipeline, generator = await make_pipeline(test_db, reply="I could not find any tasks, sorry!")

    assert await pipeline.extract("Thanks for the stay", user_id="host_1") == []
    assert len(generator.calls) == 1


@pytest.mark.asyncio
async def test_generation_failure_is_an_upstream_error(test_db):
    pipeline, _ = await make_pipeline(test_db, error=RuntimeError("connection reset"))

    with pytest.raises(UpstreamError) as exc_info:
        await pipeline.extract("The sink is leaking", user_id="host_1")
    assert "connection reset" not in exc_info.value.message


@pytest.mark.asyncio
@pytest.mark.parametrize("conversation", [None, "", "   "])
async def test_empty_conversation_is_rejected(test_db, conversation):
    pipeline, generator = await make_pipeline(test_db)

    with pytest.raises(ValidationError):
        await pipeline.extract(conversation, user_id="host_1")
    assert generator.calls == []


@pytest.mark.asyncio
async def test_prompt_embeds_listing_guest_and_conversation(test_db):
    pipeline, generator = await make_pipeline(test_db)
    conversation = 'Guest: "Can we check in at 1pm on 2024-06-01?"\nHost: Let me see.'

    await pipeline.extract(conversation, listing_name="Downtown Loft", guest_name="Ana", user_id="host_1")

    prompt = generator.calls[0]["prompt"]
    assert "Listing: Downtown Loft" in prompt
    assert "Guest: Ana" in prompt
    assert conversation in prompt


def test_prompt_defaults_and_output_contract():
    prompt = build_prompt("hello")

    assert "Listing: Unknown" in prompt
    assert "Guest: Guest" in prompt
    for task_type in ("clean", "maintenance", "checkin", "checkout", "refill", "message", "custom"):
        assert f'"{task_type}"' in prompt
    assert '"dueDate"' in prompt
    assert '"priority"' in prompt
    assert "[]" in prompt


def test_parse_strict_json_array():
    assert parse_model_output('[{"title": "Restock coffee"}]') == [{"title": "Restock coffee"}]


def test_parse_code_fenced_array():
    reply = '```json\n[{"title": "Fix lamp", "type": "maintenance"}]\n```'
    assert parse_model_output(reply) == [{"title": "Fix lamp", "type": "maintenance"}]


@pytest.mark.parametrize("reply", [None, "", "no json here", "[not valid json", '{"title": "x"}'])
def test_parse_unusable_output_returns_empty_list(reply):
    assert parse_model_output(reply) == []


def test_parse_empty_array():
    assert parse_model_output("[]") == []


def test_parse_ignores_brackets_in_trailing_prose():
    reply = 'Here you go: [{"title":"Clean unit","type":"clean"}] (types used: [clean])'
    assert parse_model_output(reply) == [{"title": "Clean unit", "type": "clean"}]


def test_parse_takes_first_of_several_fenced_arrays():
    reply = (
        '```json\n[{"title": "Fix lamp"}]\n```\n'
        'If nothing else comes up:\n```json\n[]\n```'
    )
    assert parse_model_output(reply) == [{"title": "Fix lamp"}]


def test_parse_skips_bracketed_words_before_the_array():
    reply = 'Tasks [draft]: [{"title": "Restock towels"}]'
    assert parse_model_output(reply) == [{"title": "Restock towels"}]


def test_to_draft_normalizes_fields():
    draft = to_draft({
        "title": "  Replace towels ",
        "type": "laundry",
        "dueDate": "June 1st",
        "priority": "urgent",
        "notes": None,
    })

    assert draft.title == "Replace towels"
    assert draft.type == "custom"
    assert draft.due_date is None
    assert draft.priority == "medium"
    assert draft.notes == ""


def test_to_draft_keeps_valid_due_date():
    draft = to_draft({"title": "Early check-in", "type": "checkin", "dueDate": "2024-06-01", "priority": "low"})

    assert draft.due_date == "2024-06-01"
    assert draft.to_dict() == {
        "title": "Early check-in",
        "type": "checkin",
        "dueDate": "2024-06-01",
        "priority": "low",
        "notes": "",
    }


@pytest.mark.parametrize("item", ["just a string", 42, {"title": ""}, {"type": "clean"}])
def test_to_draft_drops_unusable_items(item):
    assert to_draft(item) is None
