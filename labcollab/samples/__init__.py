"""Sample Collaboration Module.

This module provides the collaboration and audit layer of a sample:
- Label catalog and order-to-sample label inheritance
- Assignee set reconciliation
- Sample lifecycle state machine
- Activity timeline built from domain events
- Sample detail view coordinating all of the above
"""

from labcollab.samples.config import LabCollabSettings, get_settings
from labcollab.samples.exceptions import (
    CollaborationError,
    ProjectionDegraded,
    TransitionInProgress,
    UpdateRejected,
    ValidationRejected,
)
from labcollab.samples.schemas import (
    # Enums
    SampleState,
    # Labels
    Label,
    LabelAssignment,
    # Users
    Assignee,
    # Samples
    BranchRef,
    ImageSet,
    OrderRef,
    PatientRef,
    Sample,
    SampleImage,
    # Events
    DomainEvent,
)
from labcollab.samples.presentation import (
    AVATAR_COLORS,
    LABEL_COLOR_PRESETS,
    SAMPLE_STATE_DISPLAY,
    Chip,
    StateDisplay,
    avatar_color,
    initials,
    label_chip,
    mention,
    state_display,
)
from labcollab.samples.api_client import (
    Credentials,
    LabApiClient,
    LabApiError,
    close_lab_api_client,
    get_lab_api_client,
)
from labcollab.samples.inflight import InFlightGuard
from labcollab.samples.labels import (
    LabelCatalog,
    LabelInheritanceResolver,
    LabelSelection,
    ResolvedLabel,
)
from labcollab.samples.assignees import (
    AssigneeDelta,
    AssigneeSetReconciler,
    filter_users,
)
from labcollab.samples.state_machine import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    SampleStateMachine,
    available_transitions,
    can_transition,
    expected_event_type,
    is_terminal,
)
from labcollab.samples.events import (
    AssigneesChanged,
    EventKind,
    EventPayload,
    ImageChanged,
    LabelsChanged,
    MetadataReader,
    NarrationContext,
    Narrative,
    NotesUpdated,
    OrderStatusChanged,
    ReportChanged,
    SampleRegistered,
    StateChanged,
    UnknownEvent,
    parse_event,
)
from labcollab.samples.timeline import EventTimelineBuilder, TimelineEntry
from labcollab.samples.service import LogNotifier, Notifier, SampleDetailView

__all__ = [
    # Config
    "LabCollabSettings",
    "get_settings",
    # Exceptions
    "CollaborationError",
    "ProjectionDegraded",
    "TransitionInProgress",
    "UpdateRejected",
    "ValidationRejected",
    # Schemas
    "SampleState",
    "Label",
    "LabelAssignment",
    "Assignee",
    "BranchRef",
    "ImageSet",
    "OrderRef",
    "PatientRef",
    "Sample",
    "SampleImage",
    "DomainEvent",
    # Presentation
    "AVATAR_COLORS",
    "LABEL_COLOR_PRESETS",
    "SAMPLE_STATE_DISPLAY",
    "Chip",
    "StateDisplay",
    "avatar_color",
    "initials",
    "label_chip",
    "mention",
    "state_display",
    # Client
    "Credentials",
    "LabApiClient",
    "LabApiError",
    "close_lab_api_client",
    "get_lab_api_client",
    # Labels
    "InFlightGuard",
    "LabelCatalog",
    "LabelInheritanceResolver",
    "LabelSelection",
    "ResolvedLabel",
    # Assignees
    "AssigneeDelta",
    "AssigneeSetReconciler",
    "filter_users",
    # State machine
    "TERMINAL_STATES",
    "VALID_TRANSITIONS",
    "SampleStateMachine",
    "available_transitions",
    "can_transition",
    "expected_event_type",
    "is_terminal",
    # Events
    "AssigneesChanged",
    "EventKind",
    "EventPayload",
    "ImageChanged",
    "LabelsChanged",
    "MetadataReader",
    "NarrationContext",
    "Narrative",
    "NotesUpdated",
    "OrderStatusChanged",
    "ReportChanged",
    "SampleRegistered",
    "StateChanged",
    "UnknownEvent",
    "parse_event",
    # Timeline
    "EventTimelineBuilder",
    "TimelineEntry",
    # View
    "LogNotifier",
    "Notifier",
    "SampleDetailView",
]
