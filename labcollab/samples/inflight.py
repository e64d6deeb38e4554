"""One-outstanding-submission guard for editing surfaces."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from labcollab.samples.exceptions import TransitionInProgress


class InFlightGuard:
    """Tracks which samples have a pending submission on one surface.

    Runs on a single event loop, so the membership check and the insert
    happen without an intervening await and need no lock.
    """

    def __init__(self, surface: str) -> None:
        self.surface = surface
        self._pending: set[str] = set()

    def is_pending(self, sample_id: str) -> bool:
        return sample_id in self._pending

    @property
    def pending(self) -> frozenset[str]:
        return frozenset(self._pending)

    @asynccontextmanager
    async def hold(self, sample_id: str) -> AsyncIterator[None]:
        """Mark a submission as outstanding for the duration of the block.

        Raises:
            TransitionInProgress: if one is already outstanding for the sample
        """
        if sample_id in self._pending:
            raise TransitionInProgress(sample_id, self.surface)
        self._pending.add(sample_id)
        try:
            yield
        finally:
            self._pending.discard(sample_id)
