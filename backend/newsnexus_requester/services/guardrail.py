"""
Execution window guardrail.

The requester is started by an external scheduler. A run is only allowed
inside a tolerance band around a daily UTC target time, so a scheduler that
fires twice, or at the wrong hour, does not trigger a second ingestion.
The window may wrap past midnight.
"""

import re
from datetime import datetime, timezone
from typing import Optional

from newsnexus_requester.config import Settings
from newsnexus_requester.core.errors import ConfigError
from newsnexus_requester.models.domain import WindowStatus

MINUTES_PER_DAY = 24 * 60

TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def format_minutes(total_minutes: int) -> str:
    """Format minutes-of-day as HH:MM, wrapping into [00:00, 23:59]."""
    normalized = total_minutes % MINUTES_PER_DAY
    return f"{normalized // 60:02d}:{normalized % 60:02d}"


def parse_target_time(value: str) -> int:
    """Parse HH:MM into minutes-of-day."""
    match = TIME_PATTERN.match(value)
    if not match:
        raise ConfigError(
            f"Invalid GUARDRAIL_TARGET_TIME format: {value}. Expected HH:MM (24-hour)."
        )

    hour = int(match.group(1))
    minute = int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ConfigError(
            f"Invalid GUARDRAIL_TARGET_TIME value: {value}. Hour 0-23, minute 0-59."
        )
    return hour * 60 + minute


def in_window(current: int, start: int, end: int) -> bool:
    """
    Inclusive, wrap-aware window check on minutes-of-day.

    `start` and `end` are the raw bounds: start may be negative and end may
    run past the end of the day when the window crosses midnight.
    """
    if end - start + 1 >= MINUTES_PER_DAY:
        return True
    if 0 <= start <= end < MINUTES_PER_DAY:
        return start <= current <= end
    return current >= start % MINUTES_PER_DAY or current <= end % MINUTES_PER_DAY


class WindowGate:
    """Decides whether "now" (UTC) falls inside the configured window."""

    def __init__(self, settings: Settings):
        self.target_time = settings.target_time
        self.window_minutes = settings.window_minutes

    def evaluate(self, now: Optional[datetime] = None) -> WindowStatus:
        """
        Evaluate the window.

        Args:
            now: Time to evaluate; defaults to the current UTC time. Only
                hour and minute are considered.

        Raises:
            ConfigError: if the target time is malformed or out of range.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is not None:
            now = now.astimezone(timezone.utc)

        target = parse_target_time(self.target_time)
        start = target - self.window_minutes
        end = target + self.window_minutes
        current = now.hour * 60 + now.minute

        return WindowStatus(
            within_window=in_window(current, start, end),
            target_time=format_minutes(target),
            window_start=format_minutes(start),
            window_end=format_minutes(end),
            current_time=format_minutes(current),
            window_minutes=self.window_minutes,
        )
