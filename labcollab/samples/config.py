"""Configuration for the sample collaboration core."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class LabCollabSettings(BaseSettings):
    """Settings for the collaboration & audit layer."""

    model_config = {"env_prefix": "LABCOLLAB_", "case_sensitive": False}

    # API
    api_base_url: str = Field(
        default="http://localhost:8000/api",
        description="Base URL of the laboratory API (without /v1)",
    )
    request_timeout: float = Field(
        default=30.0,
        description="HTTP request timeout in seconds",
    )
    auth_scheme: str = Field(
        default="",
        description="Optional scheme prefixed to the token in the Authorization header",
    )

    # Timeline
    system_actor_name: str = Field(
        default="Sistema",
        description="Actor shown for events without created_by_name",
    )
    display_timezone: str = Field(
        default="UTC",
        description="IANA timezone used to format timeline timestamps",
    )
    automatic_trigger: str = Field(
        default="first_image_upload",
        description="Trigger value marking an automatic state transition",
    )

    # Labels
    default_label_color: str = Field(default="#3b82f6")
    label_name_max_length: int = Field(default=100)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)


@lru_cache
def get_settings() -> LabCollabSettings:
    """Get cached settings instance."""
    return LabCollabSettings()
