"""Classification rules mapping an interaction to one CompassView field.

Rules are evaluated in order and the first match wins. A rule matches
on the structured meta tag when the event carries one; otherwise it
falls back to a case-insensitive substring search of the prompt.

The order below (mood, energy, alignment, priority, priority note,
completion, blocker, improvement note, reflection) must not be changed
without revisiting stored views: prompts like "Rate your mood and
energy" are resolved purely by position.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any

from journal_pipeline.events.types import InteractionEvent
from journal_pipeline.views.schemas import BLOCKER_VALUES, COMPLETION_VALUES

Extractor = Callable[[InteractionEvent], Any | None]


def local_date_string(captured_at: datetime, tz: tzinfo | None = None) -> str:
    """Bucket a capture timestamp into a local calendar date (YYYY-MM-DD).

    Aware timestamps are converted to `tz`, or to the host zone when no
    zone is given. Naive timestamps are taken as local wall time already.
    """
    if captured_at.tzinfo is not None:
        captured_at = captured_at.astimezone(tz)
    return captured_at.strftime("%Y-%m-%d")


# Extractors return None when the event carries no usable value


def numeric_answer(event: InteractionEvent) -> float | None:
    return event.numeric_answer


def response_text(event: InteractionEvent) -> str | None:
    if event.response_text is None:
        return None
    return event.response_text.strip() or None


def completion_level(event: InteractionEvent) -> int | None:
    value = event.numeric_answer
    if value is None or value != int(value) or int(value) not in COMPLETION_VALUES:
        return None
    return int(value)


def blocker_key(event: InteractionEvent) -> str | None:
    value = response_text(event)
    return value if value in BLOCKER_VALUES else None


def reflection_reference(event: InteractionEvent) -> str | None:
    if response_text(event) is None:
        return None
    return str(event.event_id)


@dataclass(frozen=True)
class CompassRule:
    """Predicate plus extractor for a single CompassView field."""

    field: str
    extract: Extractor
    tags: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    kinds: tuple[str, ...] = ()

    def matches(self, event: InteractionEvent) -> bool:
        tag = event.meta_type
        if tag is not None:
            return tag in self.tags
        if event.kind in self.kinds:
            return True
        prompt = (event.prompt_text or "").lower()
        return any(keyword in prompt for keyword in self.keywords)


COMPASS_RULES: tuple[CompassRule, ...] = (
    CompassRule("mood", numeric_answer, tags=("mood",), keywords=("mood",)),
    CompassRule("energy", numeric_answer, tags=("energy",), keywords=("energy",)),
    # Legacy slider, no longer asked but still present in old captures
    CompassRule(
        "alignment",
        numeric_answer,
        tags=("alignment",),
        keywords=("alignment", "aligned"),
    ),
    CompassRule(
        "priority", response_text, tags=("priority",), keywords=("top priority",)
    ),
    CompassRule(
        "priority_note",
        response_text,
        tags=("priority-note",),
        keywords=("priority",),
    ),
    CompassRule(
        "completion",
        completion_level,
        tags=("completion",),
        keywords=("complete", "completion", "accomplish"),
    ),
    CompassRule(
        "blocker",
        blocker_key,
        tags=("blocker",),
        keywords=("blocker", "blocked", "got in the way"),
    ),
    CompassRule(
        "improvement_note",
        response_text,
        tags=("improvement-note", "improvement"),
        keywords=("improve", "differently"),
    ),
    CompassRule(
        "reflection_interaction_id",
        reflection_reference,
        tags=("evening-reflection", "reflection"),
        keywords=("reflect", "how did the day"),
        kinds=("reflection",),
    ),
    # Morning journal entry is only ever tagged explicitly
    CompassRule("note", response_text, tags=("note",)),
)


def classify(
    event: InteractionEvent,
    rules: tuple[CompassRule, ...] = COMPASS_RULES,
) -> tuple[str, Any] | None:
    """Return (field, value) from the first matching rule.

    Returns None when no rule matches or the winning rule finds no
    usable value; later rules are never consulted in that case.
    """
    for rule in rules:
        if rule.matches(event):
            value = rule.extract(event)
            if value is None:
                return None
            return rule.field, value
    return None
