"""Pydantic schemas for laboratory API payloads consumed by the core."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from labcollab.shared.utils.datetime_utils import parse_server_timestamp


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )


# ===========================================
# ENUMS
# ===========================================


class SampleState(str, Enum):
    """Lifecycle states of a laboratory sample."""

    RECEIVED = "RECEIVED"
    PROCESSING = "PROCESSING"
    READY = "READY"
    DAMAGED = "DAMAGED"
    CANCELLED = "CANCELLED"


# ===========================================
# LABEL SCHEMAS
# ===========================================


class Label(BaseSchema):
    """Tenant-wide label from the catalog."""

    id: str
    name: str
    color: str
    tenant_id: str | None = None
    created_at: datetime | None = None


class LabelAssignment(BaseSchema):
    """A label attached to a sample or an order.

    ``name`` and ``color`` are the values stored with the assignment and
    are used when the catalog no longer knows the label. ``inherited`` is
    the server's own view and is only read to split a sample payload into
    its own and order-level assignments.
    """

    id: str
    name: str = ""
    color: str = ""
    inherited: bool = False


# ===========================================
# USER SCHEMAS
# ===========================================


class Assignee(BaseSchema):
    """A lab user that can be assigned to a sample."""

    id: str
    name: str
    email: str = ""
    username: str | None = None
    avatar_url: str | None = None


# ===========================================
# SAMPLE SCHEMAS
# ===========================================


class OrderRef(BaseSchema):
    """Parent order reference embedded in a sample payload."""

    id: str
    order_code: str = ""
    status: str | None = None
    labels: list[LabelAssignment] = Field(default_factory=list)


class BranchRef(BaseSchema):
    id: str
    name: str | None = None
    code: str | None = None


class PatientRef(BaseSchema):
    id: str
    full_name: str | None = None
    patient_code: str | None = None


class Sample(BaseSchema):
    """Sample detail as returned by ``GET sample(id)``."""

    id: str
    code: str = Field(default="", alias="sample_code")
    type: str = ""
    state: str
    notes: str | None = None
    collected_at: datetime | None = None
    received_at: datetime | None = None
    tenant_id: str | None = None
    order: OrderRef | None = None
    branch: BranchRef | None = None
    patient: PatientRef | None = None
    assignees: list[Assignee] = Field(default_factory=list)
    labels: list[LabelAssignment] = Field(default_factory=list)

    @field_validator("collected_at", "received_at", mode="before")
    @classmethod
    def parse_timestamps(cls, v: Any) -> datetime | None:
        return parse_server_timestamp(v)

    @property
    def own_labels(self) -> list[LabelAssignment]:
        """Labels assigned directly to the sample."""
        return [label for label in self.labels if not label.inherited]

    @property
    def order_labels(self) -> list[LabelAssignment]:
        """Labels assigned to the parent order.

        Uses the order's own label list when the payload embeds it,
        otherwise the entries the server flagged as inherited.
        """
        if self.order is not None and self.order.labels:
            return list(self.order.labels)
        return [label for label in self.labels if label.inherited]

    @property
    def assignee_ids(self) -> list[str]:
        return [assignee.id for assignee in self.assignees]


class SampleImage(BaseSchema):
    id: str
    label: str | None = None
    is_primary: bool = False
    created_at: datetime | None = None
    urls: dict[str, str] = Field(default_factory=dict)

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v: Any) -> datetime | None:
        return parse_server_timestamp(v)


class ImageSet(BaseSchema):
    """Images attached to a sample."""

    sample_id: str = ""
    images: list[SampleImage] = Field(default_factory=list)


# ===========================================
# EVENT SCHEMAS
# ===========================================


class DomainEvent(BaseSchema):
    """Immutable record of a past action on a sample.

    ``metadata`` is opaque at this level; its shape depends on
    ``event_type`` and is interpreted by ``labcollab.samples.events``.
    """

    id: str
    event_type: str
    description: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_by: str | None = None
    created_by_name: str | None = None
    created_by_avatar: str | None = None
    created_at: datetime | None = None
    sample_id: str | None = None

    @field_validator("metadata", mode="before")
    @classmethod
    def coerce_metadata(cls, v: Any) -> dict[str, Any]:
        return v if isinstance(v, dict) else {}

    @field_validator("description", mode="before")
    @classmethod
    def coerce_description(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v: Any) -> datetime | None:
        return parse_server_timestamp(v)
