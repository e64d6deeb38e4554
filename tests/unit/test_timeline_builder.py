"""Tests for the activity timeline projection."""

from datetime import datetime, timezone

import pytest

from labcollab.samples.events import StateChanged, UnknownEvent
from labcollab.samples.timeline import EventTimelineBuilder


@pytest.fixture
def builder():
    return EventTimelineBuilder(system_actor_name="Sistema", display_timezone="UTC")


def _text(builder, event):
    return builder.build([event])[0].text


class TestActorHeaders:
    """Test actor attribution and header collapsing."""

    def test_actor_from_event(self, builder, event_factory):
        entry = builder.build([event_factory("IMAGE_UPLOADED", {"filename": "a.png"})])[0]
        assert entry.actor_name == "Ana Pérez"
        assert entry.actor_initials == "AP"
        assert entry.actor_color.startswith("#")
        assert entry.show_actor is True
        assert entry.continuation is False

    def test_system_actor_fallback(self, builder, event_factory):
        entry = builder.build([event_factory("IMAGE_UPLOADED", created_by=None, created_by_name=None)])[0]
        assert entry.actor_name == "Sistema"
        assert entry.actor_initials == "S"

    def test_consecutive_same_actor_collapses_header(self, builder, event_factory):
        events = [
            event_factory("IMAGE_UPLOADED", {"filename": "a.png"}),
            event_factory("IMAGE_UPLOADED", {"filename": "b.png"}),
            event_factory("IMAGE_DELETED", {"filename": "a.png"}, created_by="user-luis", created_by_name="Luis Rojas"),
        ]
        entries = builder.build(events)

        assert len(entries) == 3
        assert [e.show_actor for e in entries] == [True, False, True]
        assert [e.continuation for e in entries] == [False, True, False]
        assert entries[1].text == "subió imagen b.png"

    def test_system_events_collapse_together(self, builder, event_factory):
        events = [
            event_factory("SAMPLE_STATE_CHANGED", {"old_state": "RECEIVED", "new_state": "PROCESSING"}, created_by=None, created_by_name=None),
            event_factory("IMAGE_UPLOADED", {"filename": "a.png"}, created_by=None, created_by_name=None),
        ]
        entries = builder.build(events)
        assert entries[1].continuation is True

    def test_input_order_is_kept(self, builder, event_factory):
        events = [
            event_factory("IMAGE_UPLOADED", {"filename": "1.png"}, created_at="2025-03-05T15:00:00Z"),
            event_factory("IMAGE_UPLOADED", {"filename": "2.png"}, created_at="2025-03-05T14:00:00Z"),
        ]
        assert [e.text for e in builder.build(events)] == ["subió imagen 1.png", "subió imagen 2.png"]

    def test_timestamp_label(self, builder, event_factory):
        entry = builder.build([event_factory("IMAGE_UPLOADED", created_at="2025-03-05T14:07:00Z")])[0]
        assert entry.timestamp_label == "05/03/2025, 14:07"


class TestStateNarratives:
    """Test state change narratives."""

    def test_manual_change(self, builder, event_factory):
        entry = builder.build([
            event_factory("SAMPLE_STATE_CHANGED", {"old_state": "RECEIVED", "new_state": "PROCESSING"})
        ])[0]
        assert entry.text == "cambió el estado de Recibida a En Proceso"
        assert [chip.text for chip in entry.chips] == ["Recibida", "En Proceso"]
        assert isinstance(entry.payload, StateChanged)
        assert not entry.degraded

    def test_automatic_change(self, builder, event_factory):
        event = event_factory(
            "SAMPLE_STATE_CHANGED",
            {"old_state": "RECEIVED", "new_state": "PROCESSING", "trigger": "first_image_upload"},
        )
        assert _text(builder, event) == "cambió el estado de Recibida a En Proceso (automático)"

    def test_damaged_event(self, builder, event_factory):
        event = event_factory("SAMPLE_DAMAGED", {"old_state": "PROCESSING", "new_state": "DAMAGED"})
        assert _text(builder, event) == "cambió el estado de En Proceso a Insuficiente"

    def test_cancelled_without_new_state_is_implied(self, builder, event_factory):
        entry = builder.build([event_factory("SAMPLE_CANCELLED", {"old_state": "RECEIVED"})])[0]
        assert entry.text == "cambió el estado de Recibida a Cancelada"
        assert not entry.degraded

    def test_missing_state_degrades(self, builder, event_factory):
        entry = builder.build([event_factory("SAMPLE_STATE_CHANGED", {"new_state": "READY"})])[0]
        assert entry.text == "cambió el estado de ? a Lista"
        assert [(d.field, d.reason) for d in entry.degradations] == [("old_state", "missing")]


class TestImageAndNotesNarratives:
    """Test image and description narratives."""

    def test_upload(self, builder, event_factory):
        assert _text(builder, event_factory("IMAGE_UPLOADED", {"filename": "foto.jpg"})) == "subió imagen foto.jpg"

    def test_delete_without_filename(self, builder, event_factory):
        entry = builder.build([event_factory("IMAGE_DELETED", {})])[0]
        assert entry.text == "eliminó imagen imagen"
        assert entry.degradations[0].field == "filename"

    def test_notes_updated(self, builder, event_factory):
        event = event_factory("SAMPLE_NOTES_UPDATED", {"new_notes": "Muestra hemolizada"})
        assert _text(builder, event) == "actualizó la descripción"

    def test_notes_cleared(self, builder, event_factory):
        assert _text(builder, event_factory("SAMPLE_NOTES_UPDATED", {"new_notes": ""})) == "eliminó la descripción"

    def test_notes_missing_means_cleared(self, builder, event_factory):
        entry = builder.build([event_factory("SAMPLE_NOTES_UPDATED", {})])[0]
        assert entry.text == "eliminó la descripción"
        assert not entry.degraded


class TestAssigneeNarratives:
    """Test assignee narratives and self-action detection."""

    def test_self_assignment(self, builder, event_factory):
        event = event_factory("ASSIGNEES_ADDED", {"added": [{"name": "Ana Pérez", "username": "ana"}]})
        assert _text(builder, event) == "Se asignó a sí mismo"

    def test_self_and_other(self, builder, event_factory):
        event = event_factory(
            "ASSIGNEES_ADDED",
            {"added": [{"name": "Ana Pérez"}, {"name": "Luis"}]},
        )
        assert _text(builder, event) == "Se asignó a sí mismo y a @luis"

    def test_third_party(self, builder, event_factory):
        event = event_factory(
            "ASSIGNEES_ADDED",
            {"added": [{"name": "Ana Pérez", "username": "aperez"}, {"name": "Luis Rojas"}]},
            created_by="user-maria",
            created_by_name="María Soto",
        )
        assert _text(builder, event) == "asignó a @aperez, @luisrojas"

    def test_self_removal(self, builder, event_factory):
        event = event_factory("ASSIGNEES_REMOVED", {"removed": [{"name": "Ana Pérez"}]})
        assert _text(builder, event) == "Se desasignó a sí mismo"

    def test_third_party_removal(self, builder, event_factory):
        event = event_factory("ASSIGNEES_REMOVED", {"removed": [{"name": "Luis", "username": "lrojas"}]})
        assert _text(builder, event) == "desasignó a @lrojas"

    def test_malformed_user_list(self, builder, event_factory):
        entry = builder.build([event_factory("ASSIGNEES_ADDED", {"added": "Luis"})])[0]
        assert entry.text == "asignó usuarios"
        assert [(d.field, d.reason) for d in entry.degradations] == [("added", "malformed")]

    def test_user_without_name_is_skipped(self, builder, event_factory):
        entry = builder.build([
            event_factory("ASSIGNEES_ADDED", {"added": [{"username": "x"}, {"name": "Luis"}]})
        ])[0]
        assert entry.text == "asignó a @luis"
        assert entry.degradations[0].field == "added[0].name"


class TestLabelNarratives:
    """Test label narratives and chips."""

    def test_single_label(self, builder, event_factory):
        entry = builder.build([
            event_factory("LABELS_ADDED", {"added": [{"name": "Urgente", "color": "#ef4444"}]})
        ])[0]
        assert entry.text == "agregó 1 etiqueta: Urgente"
        assert entry.chips[0].text == "Urgente"
        assert entry.chips[0].background == "#fef2f2"

    def test_multiple_labels_removed(self, builder, event_factory):
        entry = builder.build([
            event_factory(
                "LABELS_REMOVED",
                {"removed": [{"name": "A", "color": "#123456"}, {"name": "B", "color": "#3b82f6"}]},
            )
        ])[0]
        assert entry.text == "eliminó 2 etiquetas: A, B"
        assert [chip.background for chip in entry.chips] == ["#12345620", "#eff6ff"]

    def test_label_without_color(self, builder, event_factory):
        entry = builder.build([event_factory("LABELS_ADDED", {"added": [{"name": "Urgente"}]})])[0]
        assert entry.chips[0].color == "#6b7280"
        assert entry.degradations[0].field == "added[0].color"


class TestOtherNarratives:
    """Test sample, report and order narratives."""

    def test_sample_created(self, builder, event_factory):
        event = event_factory("SAMPLE_CREATED", {"sample_code": "M-0001"})
        assert _text(builder, event) == "registró muestra M-0001"

    def test_sample_received_without_code(self, builder, event_factory):
        assert _text(builder, event_factory("SAMPLE_RECEIVED", {})) == "recibió una muestra"

    def test_report_links(self, builder, event_factory):
        entry = builder.build([event_factory("REPORT_SUBMITTED", {"report_id": "rep-1"})])[0]
        assert entry.text == "envió a revisión el reporte"
        assert entry.link == "/reports/rep-1"

    def test_report_retracted_with_reason(self, builder, event_factory):
        event = event_factory("REPORT_RETRACTED", {"report_id": "rep-1", "reason": "Error de digitación"})
        assert _text(builder, event) == "retrajo el reporte (Error de digitación)"

    def test_report_retracted_default_reason(self, builder, event_factory):
        event = event_factory("REPORT_RETRACTED", {"reason": "Sin razón especificada"})
        entry = builder.build([event])[0]
        assert entry.text == "retrajo el reporte"
        assert entry.link is None

    def test_report_version(self, builder, event_factory):
        assert _text(builder, event_factory("REPORT_VERSION_CREATED", {})) == "editó el reporte"

    def test_order_status(self, builder, event_factory):
        event = event_factory("ORDER_STATUS_CHANGED", {"old_status": "PENDIENTE", "new_status": "EN_PROCESO"})
        assert _text(builder, event) == "cambió el estado de la orden de PENDIENTE a EN_PROCESO"

    def test_order_status_missing_values(self, builder, event_factory):
        entry = builder.build([event_factory("ORDER_STATUS_CHANGED", {})])[0]
        assert entry.text == "cambió el estado de la orden de ? a ?"
        assert len(entry.degradations) == 2

    def test_order_notes(self, builder, event_factory):
        event = event_factory("ORDER_NOTES_UPDATED", {"new_notes": "Paciente en ayunas"})
        assert _text(builder, event) == "actualizó la descripción de la orden"


class TestUnknownEvents:
    """Test the fallback for unrecognised event types."""

    def test_unknown_type_uses_description(self, builder, event_factory):
        entry = builder.build([event_factory("SAMPLE_ARCHIVED", description="Muestra archivada")])[0]
        assert entry.text == "Muestra archivada"
        assert isinstance(entry.payload, UnknownEvent)

    def test_unknown_type_without_description(self, builder, event_factory):
        assert _text(builder, event_factory("SAMPLE_ARCHIVED")) == "SAMPLE_ARCHIVED"

    def test_non_dict_metadata_does_not_raise(self, builder, event_factory):
        entry = builder.build([event_factory("LABELS_ADDED", metadata=["oops"])])[0]
        assert entry.text == "agregó etiquetas"
        assert entry.degraded


class TestOrderContext:
    """Test sample references in order-level timelines."""

    def test_sample_suffix_and_link(self, event_factory):
        builder = EventTimelineBuilder(display_timezone="UTC", include_sample_refs=True)
        event = event_factory(
            "IMAGE_UPLOADED",
            {"filename": "foto.jpg", "sample_code": "M-0002", "sample_id": "sample-2"},
        )
        entry = builder.build([event])[0]
        assert entry.text == "subió imagen foto.jpg en la muestra M-0002"
        assert entry.link == "/samples/sample-2"

    def test_without_flag_no_suffix(self, builder, event_factory):
        event = event_factory("IMAGE_UPLOADED", {"filename": "foto.jpg", "sample_code": "M-0002"})
        entry = builder.build([event])[0]
        assert entry.text == "subió imagen foto.jpg"
        assert entry.link is None


class TestSyntheticEntries:
    """Test fallback entries when a sample has no events."""

    def test_collected_and_received(self, builder, sample_factory):
        sample = sample_factory(
            collected_at="2025-03-05T08:30:00Z",
            received_at="2025-03-05T09:15:00",
        )
        entries = builder.build([], sample)

        assert [e.text for e in entries] == ["Muestra recolectada", "Muestra recibida"]
        assert all(e.synthetic for e in entries)
        assert all(e.actor_name is None and not e.show_actor for e in entries)
        assert entries[1].created_at == datetime(2025, 3, 5, 9, 15, tzinfo=timezone.utc)

    def test_sorted_ascending(self, builder, sample_factory):
        sample = sample_factory(
            collected_at="2025-03-06T08:30:00Z",
            received_at="2025-03-05T09:15:00Z",
        )
        assert [e.text for e in builder.build([], sample)] == ["Muestra recibida", "Muestra recolectada"]

    def test_only_received(self, builder, sample_factory):
        entries = builder.build([], sample_factory(received_at="2025-03-05T09:15:00Z"))
        assert [e.text for e in entries] == ["Muestra recibida"]

    def test_no_sample(self, builder):
        assert builder.build([]) == []


class TestSerialization:
    """Test entry serialization."""

    def test_to_dict(self, builder, event_factory):
        entry = builder.build([
            event_factory("LABELS_ADDED", {"added": [{"name": "Urgente", "color": "#ef4444"}]})
        ])[0]
        data = entry.to_dict()
        assert data["text"] == "agregó 1 etiqueta: Urgente"
        assert data["chips"] == [{"text": "Urgente", "color": "#ef4444", "background": "#fef2f2"}]
        assert data["created_at"] == "2025-03-05T14:07:00+00:00"
        assert data["degradations"] == []
