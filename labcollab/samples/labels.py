"""Label catalog and order-to-sample label inheritance.

A sample shows its own labels plus the labels of its parent order. The
merged view is recomputed from both sets on every read and is never
cached, so it cannot drift from the order's live label set.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from labcollab.samples.api_client import LabApiClient, LabApiError
from labcollab.samples.config import get_settings
from labcollab.samples.exceptions import UpdateRejected, ValidationRejected
from labcollab.samples.inflight import InFlightGuard
from labcollab.samples.presentation import Chip, label_chip
from labcollab.samples.schemas import Label, LabelAssignment, Sample
from labcollab.shared.utils.logging import get_logger

logger = get_logger(__name__)

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


def _dedupe(ids: Iterable[str]) -> list[str]:
    """Drop repeated ids, keeping first-seen order."""
    return list(dict.fromkeys(ids))


# ===========================================
# CATALOG
# ===========================================


class LabelCatalog:
    """Tenant-wide set of available labels."""

    def __init__(
        self,
        client: LabApiClient | None = None,
        labels: Iterable[Label] = (),
    ) -> None:
        self._client = client
        self._labels: dict[str, Label] = {label.id: label for label in labels}

    def __contains__(self, label_id: object) -> bool:
        return label_id in self._labels

    def __iter__(self) -> Iterator[Label]:
        return iter(self._labels.values())

    def __len__(self) -> int:
        return len(self._labels)

    @property
    def labels(self) -> list[Label]:
        return list(self._labels.values())

    def get(self, label_id: str) -> Label | None:
        return self._labels.get(label_id)

    def search(self, term: str = "") -> list[Label]:
        """Labels whose name contains ``term`` (case-insensitive)."""
        needle = term.strip().casefold()
        return [label for label in self._labels.values() if needle in label.name.casefold()]

    async def refresh(self) -> list[Label]:
        """Reload the catalog from the API."""
        if self._client is None:
            return self.labels
        labels = await self._client.list_labels()
        self._labels = {label.id: label for label in labels}
        logger.debug("label_catalog_refreshed", count=len(labels))
        return labels

    async def create(self, name: str, color: str | None = None) -> Label:
        """Create a new tenant label.

        Args:
            name: Label name, trimmed before submission
            color: ``#rrggbb`` color, defaults to the configured label color

        Returns:
            The created label, already added to the local catalog

        Raises:
            ValidationRejected: empty or too long name, malformed color
            UpdateRejected: the API refused the label
        """
        settings = get_settings()
        clean_name = (name or "").strip()
        chosen_color = color or settings.default_label_color

        if not clean_name:
            raise ValidationRejected("Label name cannot be empty", field="name")
        if len(clean_name) > settings.label_name_max_length:
            raise ValidationRejected(
                f"Label name exceeds {settings.label_name_max_length} characters",
                field="name",
            )
        if not _HEX_COLOR.match(chosen_color):
            raise ValidationRejected(f"Invalid label color '{chosen_color}'", field="color")
        if self._client is None:
            raise UpdateRejected("Label catalog is read-only (no API client)")

        try:
            label = await self._client.create_label(clean_name, chosen_color)
        except LabApiError as e:
            raise UpdateRejected(e.message, e.status_code) from e

        self._labels[label.id] = label
        logger.info("label_created", label_id=label.id, name=label.name)
        return label


# ===========================================
# INHERITANCE
# ===========================================


@dataclass(frozen=True)
class ResolvedLabel:
    """A label as displayed on a sample."""

    label: Label
    inherited: bool

    @property
    def id(self) -> str:
        return self.label.id

    @property
    def name(self) -> str:
        return self.label.name

    @property
    def color(self) -> str:
        return self.label.color

    def chip(self) -> Chip:
        return label_chip(self.label.name, self.label.color)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.label.id,
            "name": self.label.name,
            "color": self.label.color,
            "inherited": self.inherited,
        }


class LabelInheritanceResolver:
    """Merges order-level and sample-level labels and submits sample selections."""

    def __init__(
        self,
        client: LabApiClient | None = None,
        catalog: LabelCatalog | None = None,
    ) -> None:
        self._client = client
        self.catalog = catalog if catalog is not None else LabelCatalog()
        self._guard = InFlightGuard("labels")

    def is_pending(self, sample_id: str) -> bool:
        return self._guard.is_pending(sample_id)

    def _to_label(self, assignment: LabelAssignment) -> Label:
        known = self.catalog.get(assignment.id)
        if known is not None:
            return known
        return Label(id=assignment.id, name=assignment.name or assignment.id, color=assignment.color)

    def resolve(
        self,
        own_labels: Sequence[LabelAssignment],
        order_labels: Sequence[LabelAssignment],
    ) -> list[ResolvedLabel]:
        """Effective label list: inherited entries first, then own entries.

        An id assigned on both levels counts as an own label. Each group
        keeps its source order.
        """
        own_entries: list[ResolvedLabel] = []
        own_ids: set[str] = set()
        for assignment in own_labels:
            if assignment.id in own_ids:
                continue
            own_ids.add(assignment.id)
            own_entries.append(ResolvedLabel(self._to_label(assignment), inherited=False))

        inherited_entries: list[ResolvedLabel] = []
        inherited_ids: set[str] = set()
        for assignment in order_labels:
            if assignment.id in own_ids or assignment.id in inherited_ids:
                continue
            inherited_ids.add(assignment.id)
            inherited_entries.append(ResolvedLabel(self._to_label(assignment), inherited=True))

        return inherited_entries + own_entries

    def resolve_sample(self, sample: Sample) -> list[ResolvedLabel]:
        return self.resolve(sample.own_labels, sample.order_labels)

    def own_selection(self, selected_ids: Iterable[str], sample: Sample) -> list[str]:
        """``selected_ids`` minus the sample's inherited ids, de-duplicated."""
        inherited_ids = {entry.id for entry in self.resolve_sample(sample) if entry.inherited}
        return _dedupe(label_id for label_id in selected_ids if label_id not in inherited_ids)

    async def apply_label_selection(self, sample: Sample, selected_ids: Iterable[str]) -> Sample:
        """Replace the sample's own labels with the selection.

        Inherited ids are stripped before submission, so order-level
        assignments are never touched. The sample is read back afterwards
        and the own label set must match what was submitted.

        Returns:
            The re-read sample

        Raises:
            TransitionInProgress: a label update for the sample is pending
            UpdateRejected: the API refused the update or it did not round-trip
        """
        if self._client is None:
            raise UpdateRejected("Label updates need an API client")

        submitted = self.own_selection(selected_ids, sample)
        async with self._guard.hold(sample.id):
            try:
                await self._client.update_sample_labels(sample.id, submitted)
            except LabApiError as e:
                logger.warning("sample_labels_rejected", sample_id=sample.id, error=e.message)
                raise UpdateRejected(e.message, e.status_code) from e
            try:
                refreshed = await self._client.get_sample(sample.id)
            except LabApiError as e:
                logger.warning("sample_labels_reload_failed", sample_id=sample.id, error=e.message)
                raise UpdateRejected(e.message, e.status_code) from e

        persisted = {assignment.id for assignment in refreshed.own_labels}
        if persisted != set(submitted):
            logger.warning(
                "sample_labels_round_trip_mismatch",
                sample_id=sample.id,
                submitted=sorted(submitted),
                persisted=sorted(persisted),
            )
            raise UpdateRejected("Label update was not persisted as submitted; reload the sample")

        logger.info("sample_labels_updated", sample_id=sample.id, label_count=len(submitted))
        return refreshed


class LabelSelection:
    """Editing state of the sample label picker.

    Only own labels are editable; inherited labels are shown but
    toggling one does nothing.
    """

    def __init__(self, resolved: Sequence[ResolvedLabel], catalog: LabelCatalog) -> None:
        self._catalog = catalog
        self._inherited_ids = frozenset(entry.id for entry in resolved if entry.inherited)
        self._selected: dict[str, None] = dict.fromkeys(
            entry.id for entry in resolved if not entry.inherited
        )

    @property
    def selected_ids(self) -> list[str]:
        return list(self._selected)

    @property
    def inherited_ids(self) -> frozenset[str]:
        return self._inherited_ids

    def is_selected(self, label_id: str) -> bool:
        return label_id in self._selected

    def toggle(self, label_id: str) -> bool:
        """Flip a label's selection. Returns False for inherited labels."""
        if label_id in self._inherited_ids:
            return False
        if label_id in self._selected:
            del self._selected[label_id]
        else:
            self._selected[label_id] = None
        return True

    def select(self, label_id: str) -> bool:
        if label_id in self._inherited_ids:
            return False
        self._selected[label_id] = None
        return True

    def clear(self) -> None:
        self._selected.clear()

    def eligible_labels(self, search: str = "") -> list[Label]:
        """Catalog labels that can be toggled, filtered by name."""
        return [label for label in self._catalog.search(search) if label.id not in self._inherited_ids]

    def listing(self, search: str = "") -> tuple[list[Label], list[Label]]:
        """Eligible labels split into (selected, unselected)."""
        eligible = self.eligible_labels(search)
        selected = [label for label in eligible if label.id in self._selected]
        unselected = [label for label in eligible if label.id not in self._selected]
        return selected, unselected
