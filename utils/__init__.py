"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, to_local, today_in, parse_iso, parse_day
from utils.user_context import (
    get_current_username,
    set_current_username,
    clear_current_username,
    user_context,
)
