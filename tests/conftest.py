"""Global pytest fixtures for the sample collaboration core.

This module provides shared fixtures for testing including:
- Mock laboratory API client for unit tests
- Sample, event and label factories
- A recording notifier for view tests
"""

import itertools
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from labcollab.samples.api_client import LabApiClient
from labcollab.samples.labels import LabelCatalog
from labcollab.samples.schemas import DomainEvent, ImageSet, Label, Sample

_event_ids = itertools.count(1)


# ===========================================
# FACTORIES
# ===========================================


def make_sample(**overrides: Any) -> Sample:
    """Build a sample payload in the shape the laboratory API returns."""
    data: dict[str, Any] = {
        "id": "sample-1",
        "sample_code": "M-0001",
        "type": "SANGRE",
        "state": "RECEIVED",
        "notes": None,
        "order": {"id": "order-1", "order_code": "ORD-0001", "labels": []},
        "assignees": [],
        "labels": [],
    }
    data.update(overrides)
    return Sample.model_validate(data)


def make_event(
    event_type: str,
    metadata: Any = None,
    **overrides: Any,
) -> DomainEvent:
    """Build a domain event attributed to Ana Pérez by default."""
    data: dict[str, Any] = {
        "id": f"evt-{next(_event_ids)}",
        "event_type": event_type,
        "description": "",
        "metadata": {} if metadata is None else metadata,
        "created_by": "user-ana",
        "created_by_name": "Ana Pérez",
        "created_at": "2025-03-05T14:07:00Z",
    }
    data.update(overrides)
    return DomainEvent.model_validate(data)


def make_label(label_id: str, name: str, color: str = "#3b82f6") -> Label:
    return Label(id=label_id, name=name, color=color)


def label_payload(label_id: str, name: str = "", color: str = "#3b82f6", inherited: bool = False) -> dict[str, Any]:
    return {"id": label_id, "name": name, "color": color, "inherited": inherited}


# ===========================================
# FACTORY FIXTURES
# ===========================================


@pytest.fixture
def sample_factory() -> Callable[..., Sample]:
    return make_sample


@pytest.fixture
def event_factory() -> Callable[..., DomainEvent]:
    return make_event


@pytest.fixture
def label_factory() -> Callable[..., Label]:
    return make_label


@pytest.fixture
def label_payload_factory() -> Callable[..., dict[str, Any]]:
    return label_payload


# ===========================================
# CLIENT FIXTURES
# ===========================================


@pytest.fixture
def mock_lab_client() -> AsyncMock:
    """Mock laboratory API client.

    Read methods return an empty sample with no images or events; every
    mutation succeeds.
    """
    client = AsyncMock(spec=LabApiClient)
    client.get_sample.return_value = make_sample()
    client.get_sample_images.return_value = ImageSet(sample_id="sample-1", images=[])
    client.get_sample_events.return_value = []
    client.update_sample_state.return_value = None
    client.update_sample_notes.return_value = None
    client.update_sample_assignees.return_value = None
    client.update_sample_labels.return_value = None
    client.upload_sample_image.return_value = None
    client.delete_sample_image.return_value = None
    client.list_labels.return_value = []
    client.list_lab_users.return_value = []
    return client


@pytest.fixture
def catalog(mock_lab_client: AsyncMock) -> LabelCatalog:
    """Catalog with three tenant labels."""
    return LabelCatalog(
        mock_lab_client,
        [
            make_label("lab-urgent", "Urgente", "#ef4444"),
            make_label("lab-repeat", "Repetir", "#f59e0b"),
            make_label("lab-vip", "VIP", "#8b5cf6"),
        ],
    )


@pytest.fixture
def notifier() -> MagicMock:
    """Notifier recording every call."""
    return MagicMock()
