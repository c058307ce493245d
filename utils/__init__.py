"""Utility modules for cross-cutting concerns."""

from utils.timezone import (
    now_utc,
    to_utc,
    to_local,
    to_calendar_date,
    parse_iso,
    next_version,
)
from utils.user_context import (
    get_current_principal,
    get_current_user_id,
    set_current_principal,
    clear_current_principal,
    principal_context,
)
