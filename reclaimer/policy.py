"""
Grace-period policy parsing.

Owners configure reclaim timing through two duration annotations on the
PersistentVolume. Values use the Go duration syntax (e.g. "1h", "90m",
"1h30m", "2.5h"), the format these annotations have always been written in.

The public readers are total: they return a timedelta or None, where None
means the policy is disabled. A malformed value is logged and treated as
disabled, so one bad annotation can never cause an unintended deletion or
abort the pass.
"""

import logging
import re
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from .errors import PolicyParseError

logger = logging.getLogger(__name__)

_NANOSECONDS_PER_UNIT = {
    "ns": Decimal(1),
    "us": Decimal(1_000),
    "µs": Decimal(1_000),  # micro sign
    "μs": Decimal(1_000),  # greek mu
    "ms": Decimal(1_000_000),
    "s": Decimal(1_000_000_000),
    "m": Decimal(60 * 1_000_000_000),
    "h": Decimal(3600 * 1_000_000_000),
}

# Go durations are an int64 count of nanoseconds
_MAX_DURATION_NS = Decimal(2**63 - 1)

_COMPONENT = r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)"
_COMPONENT_RE = re.compile(_COMPONENT)
_DURATION_RE = re.compile(rf"(?:{_COMPONENT})+")


def parse_duration(raw: str) -> timedelta:
    """
    Parse a Go-style duration string into a timedelta.

    The grammar matches Go's time.ParseDuration exactly: no surrounding
    whitespace, and magnitudes above 2**63-1 nanoseconds (about 2562047h)
    are rejected.

    Args:
        raw: Duration text such as "1h", "-5h", "1h30m" or "0"

    Returns:
        The parsed duration (may be negative)

    Raises:
        PolicyParseError: if the text is not a valid duration
    """
    if raw is None:
        raise PolicyParseError("duration is missing")

    text = raw
    sign = 1
    if text[:1] in ("-", "+"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text == "0":
        return timedelta(0)

    if not text or not _DURATION_RE.fullmatch(text):
        raise PolicyParseError(f"invalid duration: {raw!r}")

    total_ns = Decimal(0)
    for number, unit in _COMPONENT_RE.findall(text):
        try:
            total_ns += Decimal(number) * _NANOSECONDS_PER_UNIT[unit]
        except InvalidOperation as e:
            raise PolicyParseError(f"invalid duration: {raw!r}") from e

    if total_ns > _MAX_DURATION_NS:
        raise PolicyParseError(f"duration out of range: {raw!r}")

    # timedelta resolution is one microsecond
    return timedelta(microseconds=sign * int(total_ns / 1000))


def _read_duration(raw: str | None, label: str, volume_name: str) -> timedelta | None:
    if raw is None:
        return None

    try:
        value = parse_duration(raw)
    except PolicyParseError as e:
        logger.warning(
            f"Ignoring {label} on volume {volume_name}: {e}. "
            f"Treating policy as disabled."
        )
        return None

    if value < timedelta(0):
        logger.warning(
            f"Ignoring negative {label} '{raw}' on volume {volume_name}. "
            f"Treating policy as disabled."
        )
        return None

    return value


def parse_grace_period(raw: str | None, volume_name: str = "") -> timedelta | None:
    """
    Read the grace period after release.

    Zero is valid: the volume becomes eligible at the instant the marker is set.

    Returns:
        The grace period, or None when absent, malformed or negative
    """
    return _read_duration(raw, "grace period", volume_name)


def parse_immediate_reclaim_threshold(
    raw: str | None,
    volume_name: str = ""
) -> timedelta | None:
    """
    Read the immediate-reclaim age threshold.

    Only a positive threshold enables immediate reclaim; zero disables it.

    Returns:
        The threshold, or None when absent, malformed, negative or zero
    """
    value = _read_duration(raw, "immediate-reclaim threshold", volume_name)
    if value is not None and value == timedelta(0):
        logger.debug(f"Immediate-reclaim threshold on volume {volume_name} is zero, disabled")
        return None
    return value
