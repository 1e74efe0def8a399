"""
AI suggestion collaborators producing the per-event suggestion bundle.
"""
import json
import logging
from typing import List, Optional, Protocol, runtime_checkable

import anthropic

from bizcal.config import settings
from bizcal.schemas.calendar import CalendarEvent, EventAISuggestions

logger = logging.getLogger(__name__)

DEFAULT_PREPARATION_ITEMS = [
    "Review agenda",
    "Prepare presentation materials",
    "Check participant availability",
]

# Minutes assumed for getting to an event with a location
DEFAULT_TRAVEL_ESTIMATE = 15


@runtime_checkable
class SuggestionGenerator(Protocol):
    """Opaque generator of suggestion bundles; may fail or return None."""

    async def generate(self, event: CalendarEvent) -> Optional[EventAISuggestions]: ...


class RuleBasedSuggestionGenerator:
    """Static preparation checklist, used when no model is configured."""

    async def generate(self, event: CalendarEvent) -> Optional[EventAISuggestions]:
        return EventAISuggestions(
            preparation_items=list(DEFAULT_PREPARATION_ITEMS),
            travel_time_estimate=DEFAULT_TRAVEL_ESTIMATE if event.location else None,
        )


class ClaudeSuggestionGenerator:
    """
    Asks Claude for preparation items for an event.

    The model is asked for a JSON array of short strings; anything else is
    treated as a failed generation.
    """

    def __init__(self, client: Optional[anthropic.AsyncAnthropic] = None, model: Optional[str] = None):
        self.client = client or anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
        self.model = model or settings.ai_model

    def _prompt(self, event: CalendarEvent) -> str:
        attendees = ", ".join(a.name for a in event.attendees) or "none"
        return (
            "Suggest up to five short preparation items for this calendar event. "
            "Answer with a JSON array of strings only.\n\n"
            f"Title: {event.title}\n"
            f"Type: {event.type.value}\n"
            f"Priority: {event.priority.value}\n"
            f"Start: {event.start.isoformat()}\n"
            f"End: {event.end.isoformat()}\n"
            f"Location: {event.location or 'none'}\n"
            f"Attendees: {attendees}\n"
            f"Description: {event.description or 'none'}"
        )

    async def generate(self, event: CalendarEvent) -> Optional[EventAISuggestions]:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=512,
            messages=[{"role": "user", "content": self._prompt(event)}],
        )
        items = self._parse_items(response.content[0].text)
        if items is None:
            logger.warning("Unparseable suggestion response for event %s", event.id)
            return None
        return EventAISuggestions(
            preparation_items=items,
            travel_time_estimate=DEFAULT_TRAVEL_ESTIMATE if event.location else None,
        )

    def _parse_items(self, text: str) -> Optional[List[str]]:
        start = text.find("[")
        end = text.rfind("]")
        if start == -1 or end < start:
            return None
        try:
            items = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            return None
        if not isinstance(items, list):
            return None
        return [str(item) for item in items if str(item).strip()]


def build_suggestion_generator() -> SuggestionGenerator:
    """Claude when configured, otherwise the static checklist."""
    if settings.ai_suggestions_enabled and settings.anthropic_api_key:
        return ClaudeSuggestionGenerator()
    return RuleBasedSuggestionGenerator()
