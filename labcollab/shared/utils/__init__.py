"""Utility modules."""

from labcollab.shared.utils.datetime_utils import (
    ensure_utc,
    format_local_datetime,
    parse_server_timestamp,
)
from labcollab.shared.utils.logging import (
    bind_view_context,
    clear_view_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "bind_view_context",
    "clear_view_context",
    "configure_logging",
    "ensure_utc",
    "format_local_datetime",
    "get_logger",
    "parse_server_timestamp",
]
