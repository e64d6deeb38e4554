"""State machine for the laboratory sample lifecycle.

RECEIVED → PROCESSING → READY, with DAMAGED and CANCELLED reachable from
any non-terminal state. Terminal states offer no further transition; the
owning service may still accept or reject a request for one.
"""

from __future__ import annotations

from labcollab.samples.api_client import LabApiClient, LabApiError
from labcollab.samples.exceptions import UpdateRejected, ValidationRejected
from labcollab.samples.inflight import InFlightGuard
from labcollab.samples.presentation import StateDisplay, state_display
from labcollab.samples.schemas import SampleState
from labcollab.shared.utils.logging import get_logger

logger = get_logger(__name__)

# Map of current_state → list of (target_state, trigger_reason)
VALID_TRANSITIONS: dict[str, list[tuple[str, str]]] = {
    SampleState.RECEIVED.value: [
        (SampleState.PROCESSING.value, "processing_started"),
        (SampleState.DAMAGED.value, "marked_damaged"),
        (SampleState.CANCELLED.value, "cancelled"),
    ],
    SampleState.PROCESSING.value: [
        (SampleState.READY.value, "processing_finished"),
        (SampleState.DAMAGED.value, "marked_damaged"),
        (SampleState.CANCELLED.value, "cancelled"),
    ],
}

TERMINAL_STATES: frozenset[str] = frozenset(
    {SampleState.READY.value, SampleState.DAMAGED.value, SampleState.CANCELLED.value}
)

# Event type the server records for a transition into each state.
_TRANSITION_EVENT_TYPES: dict[str, str] = {
    SampleState.DAMAGED.value: "SAMPLE_DAMAGED",
    SampleState.CANCELLED.value: "SAMPLE_CANCELLED",
}


def _value(state: SampleState | str) -> str:
    return state.value if isinstance(state, SampleState) else str(state)


def can_transition(current: SampleState | str, target: SampleState | str) -> bool:
    """Check whether a transition from current to target is offered."""
    allowed = VALID_TRANSITIONS.get(_value(current), [])
    return any(t == _value(target) for t, _ in allowed)


def available_transitions(current: SampleState | str) -> list[str]:
    """Target states offered from ``current``, in display order."""
    return [target for target, _ in VALID_TRANSITIONS.get(_value(current), [])]


def is_terminal(state: SampleState | str) -> bool:
    return _value(state) in TERMINAL_STATES


def expected_event_type(target: SampleState | str) -> str:
    """Event type expected in the timeline after a transition to ``target``."""
    return _TRANSITION_EVENT_TYPES.get(_value(target), "SAMPLE_STATE_CHANGED")


class SampleStateMachine:
    """Validates and executes sample state transitions.

    Tracks the last known state of each sample it has observed and allows
    at most one transition request in flight per sample.
    """

    def __init__(self, client: LabApiClient) -> None:
        self._client = client
        self._states: dict[str, str] = {}
        self._guard = InFlightGuard("state")

    def observe(self, sample_id: str, state: SampleState | str) -> None:
        """Record the state read from the server."""
        self._states[sample_id] = _value(state)

    def current_state(self, sample_id: str) -> str | None:
        return self._states.get(sample_id)

    def is_pending(self, sample_id: str) -> bool:
        return self._guard.is_pending(sample_id)

    def available_transitions(self, sample_id: str) -> list[str]:
        current = self._states.get(sample_id)
        return available_transitions(current) if current else []

    def display(self, sample_id: str) -> StateDisplay:
        return state_display(self._states.get(sample_id))

    async def request_transition(self, sample_id: str, target_state: SampleState | str) -> str:
        """Ask the owning service to move a sample to ``target_state``.

        Transitions that are not offered are still sent; the service
        decides whether they are valid.

        Returns:
            The event type expected to appear in the next timeline read

        Raises:
            ValidationRejected: target equals the current state, or the sample
                was never observed (no request is made)
            TransitionInProgress: a transition for the sample is already pending
            UpdateRejected: the service refused the transition
        """
        target = _value(target_state)
        current = self._states.get(sample_id)
        if current is None:
            raise ValidationRejected("Sample state is unknown; load the sample first", field="state")
        if current == target:
            raise ValidationRejected(
                f"Sample is already in state '{target}'",
                field="state",
            )

        if not can_transition(current, target):
            logger.info(
                "sample_transition_not_offered",
                sample_id=sample_id,
                current=current,
                target=target,
            )

        async with self._guard.hold(sample_id):
            try:
                await self._client.update_sample_state(sample_id, target)
            except LabApiError as e:
                logger.warning(
                    "sample_transition_rejected",
                    sample_id=sample_id,
                    target=target,
                    error=e.message,
                )
                raise UpdateRejected(e.message, e.status_code) from e

        self._states[sample_id] = target
        logger.info("sample_state_changed", sample_id=sample_id, old_state=current, new_state=target)
        return expected_event_type(target)
