"""
Task Extraction Pipeline - turns a guest conversation into task drafts.

Flow:
1. Entitlement gate: only pro users may reach the model.
2. Prompt: listing, guest and the conversation verbatim, plus the output contract.
3. Remote call with a bounded output budget.
4. Best-effort parse: strict JSON, then the first bracketed array found in the
   reply, then an empty list. Parse problems never reach the caller.
"""
import json
import logging
from typing import Any, List, Optional

from config.settings import TASK_PRIORITIES, TASK_TYPES
from models.task_models import TaskDraft
from services.entitlement_service import EntitlementService
from services.llm_client import TextGenerator
from services.task_service import parse_due_date
from utils.errors import EntitlementRequired, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 1024

_DECODER = json.JSONDecoder()

PROMPT_TEMPLATE = """You help a short-term rental co-host turn guest conversations into tasks for the operations team.

Listing: {listing_name}
Guest: {guest_name}

Conversation:
{conversation}

Extract every actionable task implied by the conversation.
Respond with ONLY a JSON array. Each element must be an object with:
- "title": short description of the work
- "type": one of {types}
- "dueDate": ISO calendar date (YYYY-MM-DD), or null if no date is implied
- "priority": one of {priorities}
- "notes": extra context for the team, or an empty string

If there is nothing to do, respond with [] and nothing else."""


def build_prompt(conversation: str, listing_name: Optional[str] = None, guest_name: Optional[str] = None) -> str:
    return PROMPT_TEMPLATE.format(
        listing_name=listing_name or "Unknown",
        guest_name=guest_name or "Guest",
        conversation=conversation,
        types=", ".join(f'"{t}"' for t in TASK_TYPES),
        priorities=", ".join(f'"{p}"' for p in TASK_PRIORITIES),
    )


def _decode_array(text: str) -> Optional[list]:
    try:
        value = json.loads(text)
    except (TypeError, ValueError):
        return None
    return value if isinstance(value, list) else None


def _first_embedded_array(text: str) -> Optional[list]:
    start = text.find("[")
    while start != -1:
        try:
            value, _ = _DECODER.raw_decode(text, start)
        except ValueError:
            value = None
        if isinstance(value, list):
            return value
        start = text.find("[", start + 1)
    return None


def parse_model_output(text: Optional[str]) -> List[Any]:
    """
    Decode the model reply into a list.

    Tries the whole reply first; if it is wrapped in prose or code fences,
    decodes the first array that starts at a ``[`` in the reply instead.
    Returns [] when neither works.
    """
    if not text:
        return []

    items = _decode_array(text.strip())
    if items is not None:
        return items

    items = _first_embedded_array(text)
    if items is not None:
        return items

    logger.warning(f"Could not parse task array from model output ({len(text)} chars)")
    return []


def _coerce_due_date(value) -> Optional[str]:
    try:
        due = parse_due_date(value)
    except ValidationError:
        return None
    return due.isoformat() if due else None


def to_draft(item: Any) -> Optional[TaskDraft]:
    """Normalize one decoded element; returns None for unusable elements."""
    if not isinstance(item, dict):
        return None
    title = item.get("title")
    if not isinstance(title, str) or not title.strip():
        return None

    task_type = item.get("type")
    priority = item.get("priority")
    notes = item.get("notes")
    return TaskDraft(
        title=title.strip(),
        type=task_type if task_type in TASK_TYPES else "custom",
        due_date=_coerce_due_date(item.get("dueDate")),
        priority=priority if priority in TASK_PRIORITIES else "medium",
        notes=notes if isinstance(notes, str) else "",
    )


class TaskExtractionPipeline:

    def __init__(
        self,
        entitlements: EntitlementService,
        generator: TextGenerator,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ):
        self.entitlements = entitlements
        self.generator = generator
        self.max_tokens = max_tokens

    async def extract(
        self,
        conversation: Optional[str],
        listing_name: Optional[str] = None,
        guest_name: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[TaskDraft]:
        """
        Extract task drafts from a conversation.

        Raises:
            ValidationError: empty conversation
            EntitlementRequired: user is not pro; the model is not called
            UpstreamError: the remote generation call failed
        """
        if not conversation or not conversation.strip():
            raise ValidationError("Conversation text is required")

        if not await self.entitlements.check(user_id):
            logger.info(f"Extraction refused for non-pro user {user_id}")
            raise EntitlementRequired()

        prompt = build_prompt(conversation, listing_name, guest_name)
        try:
            reply = await self.generator.generate(prompt, self.max_tokens)
        except Exception as e:
            logger.error(f"Task extraction call failed for user {user_id}: {e}", exc_info=True)
            raise UpstreamError("Failed to extract tasks")

        drafts = [draft for draft in (to_draft(item) for item in parse_model_output(reply)) if draft]
        logger.info(f"Extracted {len(drafts)} task draft(s) for user {user_id}")
        return drafts
