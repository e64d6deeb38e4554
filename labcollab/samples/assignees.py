"""Assignee set reconciliation for samples.

Assignees are always sample-local. Updates submit the complete desired
set (last write wins); the delta is only used to skip no-op submissions
and for logging.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from labcollab.samples.api_client import LabApiClient, LabApiError
from labcollab.samples.exceptions import UpdateRejected
from labcollab.samples.inflight import InFlightGuard
from labcollab.samples.schemas import Assignee
from labcollab.shared.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AssigneeDelta:
    """Difference between a selection and the persisted assignee set."""

    added: frozenset[str] = field(default_factory=frozenset)
    removed: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed


def filter_users(users: Sequence[Assignee], term: str = "") -> list[Assignee]:
    """Users whose name, email or username contains ``term``."""
    needle = term.strip().casefold()
    if not needle:
        return list(users)
    return [
        user
        for user in users
        if needle in user.name.casefold()
        or needle in user.email.casefold()
        or (user.username and needle in user.username.casefold())
    ]


class AssigneeSetReconciler:
    """Holds the persisted assignee ids of one sample and applies selections."""

    def __init__(
        self,
        client: LabApiClient,
        sample_id: str,
        current_ids: Iterable[str] = (),
    ) -> None:
        self._client = client
        self.sample_id = sample_id
        self._current: frozenset[str] = frozenset(current_ids)
        self._guard = InFlightGuard("assignees")

    @property
    def current_ids(self) -> frozenset[str]:
        return self._current

    @property
    def pending(self) -> bool:
        return self._guard.is_pending(self.sample_id)

    def reset(self, current_ids: Iterable[str]) -> None:
        """Replace the persisted set after a re-fetch."""
        self._current = frozenset(current_ids)

    def delta(self, selected_ids: Iterable[str]) -> AssigneeDelta:
        selected = frozenset(selected_ids)
        return AssigneeDelta(added=selected - self._current, removed=self._current - selected)

    async def apply_assignee_selection(self, selected_ids: Iterable[str]) -> AssigneeDelta:
        """Submit the full selected id set for the sample.

        Duplicate ids collapse to one membership. An unchanged selection
        issues no request.

        Returns:
            The delta that was applied

        Raises:
            TransitionInProgress: an assignee update is already pending
            UpdateRejected: the API refused the update
        """
        ordered = list(dict.fromkeys(selected_ids))
        delta = self.delta(ordered)
        if delta.is_empty:
            logger.debug("sample_assignees_unchanged", sample_id=self.sample_id)
            return delta

        async with self._guard.hold(self.sample_id):
            try:
                await self._client.update_sample_assignees(self.sample_id, ordered)
            except LabApiError as e:
                logger.warning("sample_assignees_rejected", sample_id=self.sample_id, error=e.message)
                raise UpdateRejected(e.message, e.status_code) from e

        self._current = frozenset(ordered)
        logger.info(
            "sample_assignees_updated",
            sample_id=self.sample_id,
            added=len(delta.added),
            removed=len(delta.removed),
        )
        return delta
