"""
Clock and instant helpers for reclaim decisions.

All datetimes handled by the reclaimer are timezone-aware UTC. "now" is read
once per pass and held fixed so every comparison in a pass agrees.
"""

import logging
import re
from datetime import UTC, datetime, timedelta

from .errors import PolicyParseError

logger = logging.getLogger(__name__)

# Kubernetes writes its own timestamps in this form (RFC3339, second precision)
MARKER_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_RFC3339_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})[Tt ](?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})?$"
)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure a datetime is timezone-aware and in UTC.

    Args:
        dt: A datetime object (timezone-aware or naive) or None

    Returns:
        A timezone-aware datetime in UTC, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        return dt.astimezone(UTC)

    # Naive values should not come from the API server; assume UTC
    logger.warning(
        f"Encountered naive datetime {dt}, assuming UTC. "
        f"This should not happen - investigate data source."
    )
    return dt.replace(tzinfo=UTC)


def parse_timestamp(raw: str) -> datetime:
    """
    Parse an RFC3339 timestamp into a UTC datetime.

    Accepts a Z suffix, numeric offsets (+01:00) and fractional seconds of any
    precision (truncated to microseconds). A missing offset is read as UTC.

    Raises:
        PolicyParseError: if the value is not an RFC3339 timestamp
    """
    if raw is None:
        raise PolicyParseError("timestamp is missing")

    match = _RFC3339_RE.match(raw.strip())
    if not match:
        raise PolicyParseError(f"invalid RFC3339 timestamp: {raw!r}")

    text = f"{match.group('date')}T{match.group('time')}"
    if match.group("fraction"):
        text += "." + match.group("fraction")[:6].ljust(6, "0")

    offset = match.group("offset")
    if offset and offset not in ("Z", "z"):
        text += offset
    elif offset:
        text += "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise PolicyParseError(f"invalid RFC3339 timestamp: {raw!r} ({e})") from e

    return ensure_utc(parsed)


def format_timestamp(instant: datetime) -> str:
    """
    Format an instant as an RFC3339 UTC string with second precision.

    Sub-second parts round up to the next whole second, so the written
    marker is never earlier than the instant it was computed from.
    """
    instant = ensure_utc(instant)
    if instant.microsecond:
        instant = instant.replace(microsecond=0) + timedelta(seconds=1)
    return instant.strftime(MARKER_TIMESTAMP_FORMAT)


class ReclaimClock:
    """
    Source of "now" for a reconciliation pass.

    Passing fixed_now pins the clock, which is how tests and the --now
    override get deterministic runs.
    """

    def __init__(self, fixed_now: datetime | None = None):
        self._fixed_now = ensure_utc(fixed_now)

    @property
    def is_fixed(self) -> bool:
        return self._fixed_now is not None

    def now(self) -> datetime:
        if self._fixed_now is not None:
            return self._fixed_now
        return datetime.now(UTC)

    @staticmethod
    def add_duration(instant: datetime, duration: timedelta) -> datetime:
        return ensure_utc(instant) + duration

    @staticmethod
    def is_after(a: datetime, b: datetime) -> bool:
        return ensure_utc(a) > ensure_utc(b)

    @staticmethod
    def is_before(a: datetime, b: datetime) -> bool:
        return ensure_utc(a) < ensure_utc(b)
