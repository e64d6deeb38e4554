"""Typed payload variants for sample domain events.

Each known ``event_type`` maps to a frozen dataclass carrying its own
metadata shape and narration. Anything else becomes ``UnknownEvent``,
which narrates the event's own description. Parsing never raises:
missing or malformed fields are replaced by safe defaults and reported
as ``ProjectionDegraded`` values.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from labcollab.samples.exceptions import ProjectionDegraded
from labcollab.samples.presentation import Chip, label_chip, mention, state_display
from labcollab.samples.schemas import DomainEvent, SampleState

DEFAULT_FILENAME = "imagen"
DEFAULT_LABEL_COLOR = "#6b7280"
NO_REASON = "Sin razón especificada"


class EventKind(str, Enum):
    """Event types with a dedicated narrative."""

    SAMPLE_STATE_CHANGED = "SAMPLE_STATE_CHANGED"
    SAMPLE_DAMAGED = "SAMPLE_DAMAGED"
    SAMPLE_CANCELLED = "SAMPLE_CANCELLED"
    IMAGE_UPLOADED = "IMAGE_UPLOADED"
    IMAGE_DELETED = "IMAGE_DELETED"
    SAMPLE_NOTES_UPDATED = "SAMPLE_NOTES_UPDATED"
    ASSIGNEES_ADDED = "ASSIGNEES_ADDED"
    ASSIGNEES_REMOVED = "ASSIGNEES_REMOVED"
    LABELS_ADDED = "LABELS_ADDED"
    LABELS_REMOVED = "LABELS_REMOVED"
    SAMPLE_CREATED = "SAMPLE_CREATED"
    SAMPLE_RECEIVED = "SAMPLE_RECEIVED"
    REPORT_CREATED = "REPORT_CREATED"
    REPORT_VERSION_CREATED = "REPORT_VERSION_CREATED"
    REPORT_SUBMITTED = "REPORT_SUBMITTED"
    REPORT_RETRACTED = "REPORT_RETRACTED"
    ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"
    ORDER_NOTES_UPDATED = "ORDER_NOTES_UPDATED"


# ===========================================
# NARRATION SUPPORT
# ===========================================


@dataclass(frozen=True)
class Narrative:
    """Rendered action text for one event."""

    text: str
    chips: tuple[Chip, ...] = ()
    link: str | None = None


@dataclass(frozen=True)
class NarrationContext:
    """Per-event values a narrative may depend on besides its payload."""

    actor_name: str | None = None
    automatic_trigger: str = "first_image_upload"
    sample_code: str | None = None
    sample_id: str | None = None
    include_sample_refs: bool = False

    def sample_suffix(self, preposition: str = "en") -> str:
        if not self.include_sample_refs or not self.sample_code:
            return ""
        return f" {preposition} la muestra {self.sample_code}"

    def sample_link(self) -> str | None:
        if self.include_sample_refs and self.sample_id:
            return f"/samples/{self.sample_id}"
        return None


@dataclass(frozen=True)
class UserDescriptor:
    name: str
    username: str | None = None
    avatar: str | None = None


@dataclass(frozen=True)
class LabelDescriptor:
    name: str
    color: str = DEFAULT_LABEL_COLOR


class MetadataReader:
    """Reads typed fields from opaque event metadata, recording substitutions."""

    def __init__(self, event: DomainEvent) -> None:
        self.event = event
        self._metadata: dict[str, Any] = event.metadata
        self.degradations: list[ProjectionDegraded] = []

    def _degrade(self, field_name: str, reason: str) -> None:
        self.degradations.append(
            ProjectionDegraded(self.event.id, self.event.event_type, field_name, reason)
        )

    def text(self, key: str, default: str | None = None, *, required: bool = True) -> str | None:
        """A non-empty string field, or ``default``.

        Missing or empty values are only reported when ``required``;
        values of the wrong type are always reported.
        """
        value = self._metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value
        if value is None or value == "":
            if required:
                self._degrade(key, "missing")
            return default
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        self._degrade(key, "malformed")
        return default

    def _items(self, key: str) -> list[Any]:
        value = self._metadata.get(key)
        if isinstance(value, list):
            return value
        self._degrade(key, "missing" if value is None else "malformed")
        return []

    def users(self, key: str) -> list[UserDescriptor]:
        users: list[UserDescriptor] = []
        for index, item in enumerate(self._items(key)):
            name = item.get("name") if isinstance(item, dict) else None
            if not isinstance(name, str) or not name.strip():
                self._degrade(f"{key}[{index}].name", "malformed")
                continue
            username = item.get("username")
            avatar = item.get("avatar")
            users.append(
                UserDescriptor(
                    name=name.strip(),
                    username=username if isinstance(username, str) and username else None,
                    avatar=avatar if isinstance(avatar, str) and avatar else None,
                )
            )
        return users

    def labels(self, key: str) -> list[LabelDescriptor]:
        labels: list[LabelDescriptor] = []
        for index, item in enumerate(self._items(key)):
            name = item.get("name") if isinstance(item, dict) else None
            if not isinstance(name, str) or not name.strip():
                self._degrade(f"{key}[{index}].name", "malformed")
                continue
            color = item.get("color")
            if not isinstance(color, str) or not color:
                self._degrade(f"{key}[{index}].color", "missing")
                color = DEFAULT_LABEL_COLOR
            labels.append(LabelDescriptor(name=name.strip(), color=color))
        return labels


def _join(items: list[str]) -> str:
    return ", ".join(items)


# ===========================================
# PAYLOAD VARIANTS
# ===========================================


@dataclass(frozen=True)
class StateChanged:
    kind: EventKind
    old_state: str | None
    new_state: str | None
    trigger: str | None = None

    def narrate(self, ctx: NarrationContext) -> Narrative:
        old = state_display(self.old_state)
        new = state_display(self.new_state)
        automatic = " (automático)" if self.trigger and self.trigger == ctx.automatic_trigger else ""
        return Narrative(
            text=f"cambió el estado de {old.label} a {new.label}{automatic}{ctx.sample_suffix()}",
            chips=(old.chip(), new.chip()),
            link=ctx.sample_link(),
        )


@dataclass(frozen=True)
class ImageChanged:
    kind: EventKind
    filename: str = DEFAULT_FILENAME

    def narrate(self, ctx: NarrationContext) -> Narrative:
        verb = "subió" if self.kind is EventKind.IMAGE_UPLOADED else "eliminó"
        return Narrative(
            text=f"{verb} imagen {self.filename}{ctx.sample_suffix()}",
            link=ctx.sample_link(),
        )


@dataclass(frozen=True)
class NotesUpdated:
    kind: EventKind
    new_notes: str = ""

    @property
    def cleared(self) -> bool:
        return not self.new_notes.strip()

    def narrate(self, ctx: NarrationContext) -> Narrative:
        verb = "eliminó" if self.cleared else "actualizó"
        if self.kind is EventKind.ORDER_NOTES_UPDATED:
            return Narrative(text=f"{verb} la descripción de la orden")
        return Narrative(
            text=f"{verb} la descripción{ctx.sample_suffix('de')}",
            link=ctx.sample_link(),
        )


@dataclass(frozen=True)
class AssigneesChanged:
    kind: EventKind
    users: tuple[UserDescriptor, ...] = ()

    @property
    def added(self) -> bool:
        return self.kind is EventKind.ASSIGNEES_ADDED

    def narrate(self, ctx: NarrationContext) -> Narrative:
        verb = "asignó" if self.added else "desasignó"
        actor = (ctx.actor_name or "").strip().casefold()
        includes_self = bool(actor) and any(u.name.casefold() == actor for u in self.users)
        others = [u for u in self.users if not actor or u.name.casefold() != actor]
        mentions = _join([mention(u.name, u.username) for u in others])

        if includes_self:
            text = f"Se {verb} a sí mismo"
            if others:
                text += f" y a {mentions}"
        elif others:
            text = f"{verb} a {mentions}"
        else:
            text = f"{verb} usuarios"
        return Narrative(text=f"{text}{ctx.sample_suffix()}", link=ctx.sample_link())


@dataclass(frozen=True)
class LabelsChanged:
    kind: EventKind
    labels: tuple[LabelDescriptor, ...] = ()

    def narrate(self, ctx: NarrationContext) -> Narrative:
        verb = "agregó" if self.kind is EventKind.LABELS_ADDED else "eliminó"
        count = len(self.labels)
        if count == 0:
            return Narrative(text=f"{verb} etiquetas{ctx.sample_suffix()}", link=ctx.sample_link())
        noun = "etiqueta" if count == 1 else "etiquetas"
        names = _join([label.name for label in self.labels])
        return Narrative(
            text=f"{verb} {count} {noun}: {names}{ctx.sample_suffix()}",
            chips=tuple(label_chip(label.name, label.color) for label in self.labels),
            link=ctx.sample_link(),
        )


@dataclass(frozen=True)
class SampleRegistered:
    kind: EventKind
    sample_code: str | None = None

    def narrate(self, ctx: NarrationContext) -> Narrative:
        verb = "registró" if self.kind is EventKind.SAMPLE_CREATED else "recibió"
        link = f"/samples/{ctx.sample_id}" if ctx.sample_id else None
        if self.sample_code:
            return Narrative(text=f"{verb} muestra {self.sample_code}", link=link)
        return Narrative(text=f"{verb} una muestra", link=link)


_REPORT_VERBS: dict[EventKind, str] = {
    EventKind.REPORT_CREATED: "creó el reporte",
    EventKind.REPORT_VERSION_CREATED: "editó el reporte",
    EventKind.REPORT_SUBMITTED: "envió a revisión el reporte",
    EventKind.REPORT_RETRACTED: "retrajo el reporte",
}


@dataclass(frozen=True)
class ReportChanged:
    kind: EventKind
    report_id: str | None = None
    reason: str | None = None

    def narrate(self, ctx: NarrationContext) -> Narrative:
        text = _REPORT_VERBS[self.kind]
        if self.kind is EventKind.REPORT_RETRACTED and self.reason and self.reason != NO_REASON:
            text += f" ({self.reason})"
        link = f"/reports/{self.report_id}" if self.report_id else None
        return Narrative(text=text, link=link)


@dataclass(frozen=True)
class OrderStatusChanged:
    old_status: str | None = None
    new_status: str | None = None
    kind: EventKind = EventKind.ORDER_STATUS_CHANGED

    def narrate(self, ctx: NarrationContext) -> Narrative:
        return Narrative(
            text=(
                f"cambió el estado de la orden de {self.old_status or '?'} "
                f"a {self.new_status or '?'}"
            )
        )


@dataclass(frozen=True)
class UnknownEvent:
    """Fallback for event types without a dedicated narrative."""

    event_type: str
    description: str = ""

    def narrate(self, ctx: NarrationContext) -> Narrative:
        return Narrative(text=self.description or self.event_type)


EventPayload = Union[
    StateChanged,
    ImageChanged,
    NotesUpdated,
    AssigneesChanged,
    LabelsChanged,
    SampleRegistered,
    ReportChanged,
    OrderStatusChanged,
    UnknownEvent,
]


# ===========================================
# PARSING
# ===========================================


_IMPLIED_NEW_STATE: dict[EventKind, str] = {
    EventKind.SAMPLE_DAMAGED: SampleState.DAMAGED.value,
    EventKind.SAMPLE_CANCELLED: SampleState.CANCELLED.value,
}


def _parse_state_changed(kind: EventKind, reader: MetadataReader) -> StateChanged:
    implied = _IMPLIED_NEW_STATE.get(kind)
    return StateChanged(
        kind=kind,
        old_state=reader.text("old_state"),
        new_state=reader.text("new_state", implied, required=implied is None),
        trigger=reader.text("trigger", required=False),
    )


def _parse_image(kind: EventKind, reader: MetadataReader) -> ImageChanged:
    return ImageChanged(kind=kind, filename=reader.text("filename", DEFAULT_FILENAME) or DEFAULT_FILENAME)


def _parse_notes(kind: EventKind, reader: MetadataReader) -> NotesUpdated:
    return NotesUpdated(kind=kind, new_notes=reader.text("new_notes", "", required=False) or "")


def _parse_assignees(kind: EventKind, reader: MetadataReader) -> AssigneesChanged:
    key = "added" if kind is EventKind.ASSIGNEES_ADDED else "removed"
    return AssigneesChanged(kind=kind, users=tuple(reader.users(key)))


def _parse_labels(kind: EventKind, reader: MetadataReader) -> LabelsChanged:
    key = "added" if kind is EventKind.LABELS_ADDED else "removed"
    return LabelsChanged(kind=kind, labels=tuple(reader.labels(key)))


def _parse_sample_registered(kind: EventKind, reader: MetadataReader) -> SampleRegistered:
    return SampleRegistered(kind=kind, sample_code=reader.text("sample_code", required=False))


def _parse_report(kind: EventKind, reader: MetadataReader) -> ReportChanged:
    return ReportChanged(
        kind=kind,
        report_id=reader.text("report_id", required=False),
        reason=reader.text("reason", required=False),
    )


def _parse_order_status(kind: EventKind, reader: MetadataReader) -> OrderStatusChanged:
    return OrderStatusChanged(
        old_status=reader.text("old_status"),
        new_status=reader.text("new_status"),
    )


PAYLOAD_PARSERS: dict[EventKind, Callable[[EventKind, MetadataReader], EventPayload]] = {
    EventKind.SAMPLE_STATE_CHANGED: _parse_state_changed,
    EventKind.SAMPLE_DAMAGED: _parse_state_changed,
    EventKind.SAMPLE_CANCELLED: _parse_state_changed,
    EventKind.IMAGE_UPLOADED: _parse_image,
    EventKind.IMAGE_DELETED: _parse_image,
    EventKind.SAMPLE_NOTES_UPDATED: _parse_notes,
    EventKind.ORDER_NOTES_UPDATED: _parse_notes,
    EventKind.ASSIGNEES_ADDED: _parse_assignees,
    EventKind.ASSIGNEES_REMOVED: _parse_assignees,
    EventKind.LABELS_ADDED: _parse_labels,
    EventKind.LABELS_REMOVED: _parse_labels,
    EventKind.SAMPLE_CREATED: _parse_sample_registered,
    EventKind.SAMPLE_RECEIVED: _parse_sample_registered,
    EventKind.REPORT_CREATED: _parse_report,
    EventKind.REPORT_VERSION_CREATED: _parse_report,
    EventKind.REPORT_SUBMITTED: _parse_report,
    EventKind.REPORT_RETRACTED: _parse_report,
    EventKind.ORDER_STATUS_CHANGED: _parse_order_status,
}


@dataclass
class ParsedEvent:
    payload: EventPayload
    degradations: list[ProjectionDegraded] = field(default_factory=list)


def parse_event(event: DomainEvent) -> ParsedEvent:
    """Turn a raw domain event into its typed payload variant."""
    try:
        kind = EventKind(event.event_type)
    except ValueError:
        return ParsedEvent(UnknownEvent(event_type=event.event_type, description=event.description))

    reader = MetadataReader(event)
    payload = PAYLOAD_PARSERS[kind](kind, reader)
    return ParsedEvent(payload, reader.degradations)
