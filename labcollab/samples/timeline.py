"""Projection of sample domain events into a readable activity timeline."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from labcollab.samples.config import get_settings
from labcollab.samples.events import (
    EventPayload,
    NarrationContext,
    ParsedEvent,
    UnknownEvent,
    parse_event,
)
from labcollab.samples.exceptions import ProjectionDegraded
from labcollab.samples.presentation import Chip, avatar_color, initials
from labcollab.samples.schemas import DomainEvent, Sample
from labcollab.shared.utils.datetime_utils import format_local_datetime
from labcollab.shared.utils.logging import get_logger

logger = get_logger(__name__)

SYNTHETIC_COLLECTED = "SAMPLE_COLLECTED"
SYNTHETIC_RECEIVED = "SAMPLE_RECEIVED_AT"

_UNSET = object()


@dataclass
class TimelineEntry:
    """One rendered row of the activity timeline."""

    entry_id: str
    event_type: str
    text: str
    created_at: datetime | None = None
    timestamp_label: str = ""
    actor_id: str | None = None
    actor_name: str | None = None
    actor_avatar: str | None = None
    actor_initials: str = ""
    actor_color: str = ""
    show_actor: bool = True
    continuation: bool = False
    chips: list[Chip] = field(default_factory=list)
    link: str | None = None
    payload: EventPayload | None = None
    synthetic: bool = False
    degradations: list[ProjectionDegraded] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.degradations)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "entry_id": self.entry_id,
            "event_type": self.event_type,
            "text": self.text,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "timestamp_label": self.timestamp_label,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "actor_avatar": self.actor_avatar,
            "actor_initials": self.actor_initials,
            "actor_color": self.actor_color,
            "show_actor": self.show_actor,
            "continuation": self.continuation,
            "chips": [chip.to_dict() for chip in self.chips],
            "link": self.link,
            "synthetic": self.synthetic,
            "degradations": [
                {"field": d.field, "reason": d.reason} for d in self.degradations
            ],
        }


class EventTimelineBuilder:
    """Projects an ascending event list into timeline entries.

    Every event yields exactly one entry, in input order. Events whose
    type has no dedicated narrative render their description, and
    unreadable metadata falls back to defaults recorded on the entry.
    """

    def __init__(
        self,
        system_actor_name: str | None = None,
        display_timezone: str | None = None,
        automatic_trigger: str | None = None,
        include_sample_refs: bool = False,
    ) -> None:
        settings = get_settings()
        self.system_actor_name = system_actor_name or settings.system_actor_name
        self.display_timezone = display_timezone or settings.display_timezone
        self.automatic_trigger = automatic_trigger or settings.automatic_trigger
        self.include_sample_refs = include_sample_refs

    def build(
        self,
        events: Sequence[DomainEvent],
        sample: Sample | None = None,
    ) -> list[TimelineEntry]:
        """Build the timeline for ``events``.

        Args:
            events: Domain events in ascending ``created_at`` order
            sample: Sample used for the synthetic entries when there are no events

        Returns:
            One entry per event, or the synthetic collection/reception entries
        """
        if not events:
            return self.synthesize(sample) if sample is not None else []

        entries: list[TimelineEntry] = []
        previous_actor: object = _UNSET
        for event in events:
            entry = self.project(event)
            if event.created_by == previous_actor:
                entry.show_actor = False
                entry.continuation = True
            previous_actor = event.created_by
            entries.append(entry)
        return entries

    def _format_timestamp(self, value: datetime | None) -> str:
        return format_local_datetime(value, self.display_timezone) if value else ""

    def _parse(self, event: DomainEvent) -> ParsedEvent:
        try:
            return parse_event(event)
        except Exception:
            logger.exception("timeline_event_unreadable", event_id=event.id, event_type=event.event_type)
            return ParsedEvent(
                UnknownEvent(event_type=event.event_type, description=event.description),
                [ProjectionDegraded(event.id, event.event_type, "metadata", "unreadable")],
            )

    def project(self, event: DomainEvent) -> TimelineEntry:
        """Project a single event without header collapsing."""
        parsed = self._parse(event)
        metadata = event.metadata
        sample_code = metadata.get("sample_code")
        sample_id = metadata.get("sample_id") or event.sample_id
        context = NarrationContext(
            actor_name=event.created_by_name,
            automatic_trigger=self.automatic_trigger,
            sample_code=sample_code if isinstance(sample_code, str) else None,
            sample_id=sample_id if isinstance(sample_id, str) else None,
            include_sample_refs=self.include_sample_refs,
        )
        narrative = parsed.payload.narrate(context)

        for degradation in parsed.degradations:
            logger.debug(
                "timeline_field_degraded",
                event_id=degradation.event_id,
                event_type=degradation.event_type,
                field=degradation.field,
                reason=degradation.reason,
            )

        actor_name = event.created_by_name or self.system_actor_name
        return TimelineEntry(
            entry_id=event.id,
            event_type=event.event_type,
            text=narrative.text,
            created_at=event.created_at,
            timestamp_label=self._format_timestamp(event.created_at),
            actor_id=event.created_by,
            actor_name=actor_name,
            actor_avatar=event.created_by_avatar,
            actor_initials=initials(actor_name),
            actor_color=avatar_color(actor_name),
            chips=list(narrative.chips),
            link=narrative.link,
            payload=parsed.payload,
            degradations=list(parsed.degradations),
        )

    def synthesize(self, sample: Sample) -> list[TimelineEntry]:
        """Fallback entries from the sample's collection and reception times."""
        candidates = [
            (sample.collected_at, SYNTHETIC_COLLECTED, "collected", "Muestra recolectada"),
            (sample.received_at, SYNTHETIC_RECEIVED, "received", "Muestra recibida"),
        ]
        entries = [
            TimelineEntry(
                entry_id=f"{sample.id}:{suffix}",
                event_type=event_type,
                text=text,
                created_at=timestamp,
                timestamp_label=self._format_timestamp(timestamp),
                show_actor=False,
                synthetic=True,
            )
            for timestamp, event_type, suffix, text in candidates
            if timestamp is not None
        ]
        entries.sort(key=lambda entry: entry.created_at)
        return entries
