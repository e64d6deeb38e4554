"""Sample detail view coordinating the collaboration components."""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import Protocol

from labcollab.samples.api_client import LabApiClient, LabApiError
from labcollab.samples.assignees import AssigneeDelta, AssigneeSetReconciler, filter_users
from labcollab.samples.exceptions import CollaborationError, TransitionInProgress
from labcollab.samples.inflight import InFlightGuard
from labcollab.samples.labels import (
    LabelCatalog,
    LabelInheritanceResolver,
    LabelSelection,
    ResolvedLabel,
)
from labcollab.samples.schemas import (
    Assignee,
    DomainEvent,
    Label,
    Sample,
    SampleImage,
    SampleState,
)
from labcollab.samples.state_machine import SampleStateMachine
from labcollab.samples.timeline import EventTimelineBuilder, TimelineEntry
from labcollab.shared.utils.logging import (
    bind_view_context,
    clear_view_context,
    get_logger,
)

logger = get_logger(__name__)


# ===========================================
# NOTIFICATIONS
# ===========================================


class Notifier(Protocol):
    """Non-blocking user notification sink."""

    def success(self, message: str) -> None: ...

    def error(self, message: str, detail: str | None = None) -> None: ...

    def notice(self, message: str) -> None: ...


class LogNotifier:
    """Notifier writing to the structured log."""

    def __init__(self) -> None:
        self._logger = get_logger("labcollab.notifications")

    def success(self, message: str) -> None:
        self._logger.info("notify_success", message=message)

    def error(self, message: str, detail: str | None = None) -> None:
        self._logger.warning("notify_error", message=message, detail=detail)

    def notice(self, message: str) -> None:
        self._logger.info("notify_notice", message=message)


# ===========================================
# VIEW
# ===========================================


class SampleDetailView:
    """
    Detail view of one sample.

    Owns the label resolver, assignee reconciler and state machine for the
    sample. Every successful mutation is followed by a concurrent re-fetch
    of detail, images and events. Failures are reported once through the
    notifier and leave the last loaded state in place.
    """

    def __init__(
        self,
        client: LabApiClient,
        sample_id: str,
        catalog: LabelCatalog | None = None,
        notifier: Notifier | None = None,
        timeline_builder: EventTimelineBuilder | None = None,
        view_id: str | None = None,
    ):
        self._client = client
        self.sample_id = sample_id
        self.view_id = view_id
        self.notifier: Notifier = notifier or LogNotifier()
        self.catalog = catalog if catalog is not None else LabelCatalog(client)
        self.resolver = LabelInheritanceResolver(client, self.catalog)
        self.assignees = AssigneeSetReconciler(client, sample_id)
        self.state_machine = SampleStateMachine(client)
        self.timeline_builder = timeline_builder or EventTimelineBuilder()
        self._notes_guard = InFlightGuard("notes")

        self.sample: Sample | None = None
        self.images: list[SampleImage] = []
        self.events: list[DomainEvent] = []
        self.labels: list[ResolvedLabel] = []
        self.timeline: list[TimelineEntry] = []

        self._users: list[Assignee] | None = None
        self._uploads: Counter[str] = Counter()
        self._outstanding = 0
        self._generation = 0
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def busy(self) -> bool:
        """True while any request started by the view is outstanding."""
        return self._outstanding > 0

    @property
    def uploading(self) -> frozenset[str]:
        """Filenames of uploads still in progress."""
        return frozenset(name for name, count in self._uploads.items() if count > 0)

    async def open(self) -> bool:
        """Bind log context and load the sample and the label catalog."""
        bind_view_context(self.sample_id, view_id=self.view_id)
        logger.info("sample_view_opened")
        try:
            async with self._track():
                await self.catalog.refresh()
        except LabApiError as e:
            self._report("Error al cargar las etiquetas", e)
        return await self.refresh()

    def close(self) -> None:
        """Tear the view down. Responses arriving afterwards are discarded."""
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        logger.info("sample_view_closed")
        clear_view_context()

    @asynccontextmanager
    async def _track(self) -> AsyncIterator[None]:
        self._outstanding += 1
        try:
            yield
        finally:
            self._outstanding -= 1

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    def _report(self, message: str, error: CollaborationError | LabApiError) -> None:
        """Report a failure to the user exactly once."""
        if self._closed:
            logger.debug("sample_view_failure_after_close", message=message, error=error.message)
            return
        if isinstance(error, TransitionInProgress):
            self.notifier.notice(error.message)
            return
        logger.warning(
            "sample_view_action_failed",
            action=message,
            error=error.message,
            error_type=getattr(error, "error_type", "lab_api_error"),
        )
        self.notifier.error(message, error.message)

    def _succeed(self, message: str) -> None:
        if not self._closed:
            self.notifier.success(message)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def refresh(self) -> bool:
        """Re-fetch detail, images and events concurrently.

        Only the most recent refresh is applied; a response arriving after
        a newer refresh started, or after ``close()``, is dropped.
        """
        if self._closed:
            return False
        self._generation += 1
        generation = self._generation

        try:
            async with self._track():
                sample, image_set, events = await asyncio.gather(
                    self._client.get_sample(self.sample_id),
                    self._client.get_sample_images(self.sample_id),
                    self._client.get_sample_events(self.sample_id),
                )
        except LabApiError as e:
            if self._is_current(generation):
                self._report("Error al cargar la muestra", e)
            return False

        if not self._is_current(generation):
            logger.debug("sample_view_stale_response_discarded", generation=generation)
            return False

        self._apply(sample, image_set.images, events)
        return True

    def _apply(self, sample: Sample, images: list[SampleImage], events: list[DomainEvent]) -> None:
        self.sample = sample
        self.images = images
        self.events = events
        self.labels = self.resolver.resolve_sample(sample)
        self.timeline = self.timeline_builder.build(events, sample)
        self.state_machine.observe(sample.id, sample.state)
        self.assignees.reset(sample.assignee_ids)
        logger.debug(
            "sample_view_loaded",
            state=sample.state,
            label_count=len(self.labels),
            event_count=len(events),
            image_count=len(images),
        )

    def _require_sample(self) -> Sample | None:
        if self._closed:
            logger.debug("sample_view_closed_action_ignored")
            return None
        if self.sample is None:
            self.notifier.notice("La muestra aún no se ha cargado")
        return self.sample

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    def label_selection(self) -> LabelSelection:
        """Editor state for the label picker, seeded with the own labels."""
        return LabelSelection(self.labels, self.catalog)

    async def update_labels(self, selected_ids: Iterable[str]) -> bool:
        sample = self._require_sample()
        if sample is None:
            return False
        try:
            async with self._track():
                await self.resolver.apply_label_selection(sample, selected_ids)
        except CollaborationError as e:
            self._report("Error al actualizar las etiquetas", e)
            return False
        await self.refresh()
        return True

    async def create_label(self, name: str, color: str | None = None) -> Label | None:
        try:
            async with self._track():
                label = await self.catalog.create(name, color)
        except CollaborationError as e:
            self._report("Error al crear la etiqueta", e)
            return None
        self._succeed(f"Etiqueta {label.name} creada")
        return label

    # ------------------------------------------------------------------
    # Assignees
    # ------------------------------------------------------------------

    async def search_users(self, term: str = "") -> list[Assignee]:
        """Lab users matching ``term``; the user list is fetched once per view."""
        if self._users is None:
            try:
                async with self._track():
                    self._users = await self._client.list_lab_users()
            except LabApiError as e:
                self._report("Error al cargar los usuarios", e)
                return []
        return filter_users(self._users, term)

    async def update_assignees(self, selected_ids: Iterable[str]) -> bool:
        if self._require_sample() is None:
            return False
        try:
            async with self._track():
                delta: AssigneeDelta = await self.assignees.apply_assignee_selection(selected_ids)
        except CollaborationError as e:
            self._report("Error al actualizar los asignados", e)
            return False
        if not delta.is_empty:
            await self.refresh()
        return True

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def available_transitions(self) -> list[str]:
        return self.state_machine.available_transitions(self.sample_id)

    async def change_state(self, target_state: SampleState | str) -> bool:
        if self._require_sample() is None:
            return False
        try:
            async with self._track():
                await self.state_machine.request_transition(self.sample_id, target_state)
        except CollaborationError as e:
            self._report("Error al cambiar el estado", e)
            return False
        self._succeed("Estado actualizado")
        await self.refresh()
        return True

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    async def update_notes(self, notes: str | None) -> bool:
        """Save the sample description. Blank text clears it."""
        sample = self._require_sample()
        if sample is None:
            return False
        cleaned = (notes or "").strip()
        if cleaned == (sample.notes or "").strip():
            logger.debug("sample_notes_unchanged")
            return True
        try:
            async with self._track(), self._notes_guard.hold(self.sample_id):
                await self._client.update_sample_notes(self.sample_id, cleaned or None)
        except (CollaborationError, LabApiError) as e:
            self._report("Error al actualizar la descripción", e)
            return False
        logger.info("sample_notes_updated", cleared=not cleaned)
        await self.refresh()
        return True

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def upload_image(
        self,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> bool:
        """Upload one image. Uploads run concurrently with everything else."""
        if self._require_sample() is None:
            return False
        self._uploads[filename] += 1
        try:
            async with self._track():
                await self._client.upload_sample_image(self.sample_id, filename, content, content_type)
        except LabApiError as e:
            self._report("Error al subir la imagen", e)
            return False
        finally:
            self._uploads[filename] -= 1
            if self._uploads[filename] <= 0:
                del self._uploads[filename]
        logger.info("sample_image_uploaded", filename=filename, size=len(content))
        self._succeed("Imagen subida correctamente")
        await self.refresh()
        return True

    async def delete_image(self, image_id: str) -> bool:
        if self._require_sample() is None:
            return False
        try:
            async with self._track():
                await self._client.delete_sample_image(self.sample_id, image_id)
        except LabApiError as e:
            self._report("Error al eliminar la imagen", e)
            return False
        logger.info("sample_image_deleted", image_id=image_id)
        self._succeed("Imagen eliminada correctamente")
        await self.refresh()
        return True
