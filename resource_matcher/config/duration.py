"""Duration parsing for configuration values such as cache TTLs and timeouts."""

import re
from typing import Union

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

_ISO_PATTERN = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?$")
_HUMAN_PATTERN = re.compile(r"(\d+)\s*([smhd])")


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed."""

    pass


def parse_duration(value: Union[str, int], allow_zero: bool = False) -> int:
    """Parse a duration to whole seconds.

    Accepts plain integers (seconds), human-readable strings ("30s", "5m",
    "1h30m") and ISO-8601 durations ("PT5M", "P1D").

    Args:
        value: Duration to parse
        allow_zero: Whether a zero duration is acceptable (e.g. "cache off")

    Returns:
        Duration in seconds

    Raises:
        DurationParseError: If the value is malformed, negative, or zero when
            zero is not allowed

    Examples:
        >>> parse_duration("5m")
        300
        >>> parse_duration("PT1H")
        3600
        >>> parse_duration(0, allow_zero=True)
        0
    """
    if isinstance(value, bool):
        raise DurationParseError(f"Invalid duration: {value!r}")

    if isinstance(value, int):
        seconds = value
    else:
        text = str(value).strip()
        if not text:
            raise DurationParseError("Duration string cannot be empty")
        if text.isdigit():
            seconds = int(text)
        elif text.upper().startswith("P"):
            seconds = _parse_iso8601(text.upper())
        else:
            seconds = _parse_human_readable(text.lower())

    if seconds < 0:
        raise DurationParseError(f"Duration cannot be negative: {value!r}")
    if seconds == 0 and not allow_zero:
        raise DurationParseError(f"Duration cannot be zero: {value!r}")

    return seconds


def _parse_iso8601(text: str) -> int:
    match = _ISO_PATTERN.match(text)
    if not match or text in ("P", "PT"):
        raise DurationParseError(
            f"Invalid ISO-8601 duration format: '{text}'. "
            "Expected format like 'PT30S', 'PT5M' or 'P1D'"
        )

    days, hours, minutes, seconds = match.groups()
    return (
        int(days or 0) * _UNIT_SECONDS["d"]
        + int(hours or 0) * _UNIT_SECONDS["h"]
        + int(minutes or 0) * _UNIT_SECONDS["m"]
        + int(float(seconds or 0))
    )


def _parse_human_readable(text: str) -> int:
    matches = _HUMAN_PATTERN.findall(text)
    if not matches:
        raise DurationParseError(
            f"Invalid duration format: '{text}'. "
            "Expected format like '30s', '5m', '1h', or combinations like '1h30m'"
        )

    # Reject leftovers such as "5x" or "m5"
    parsed = "".join(f"{num}{unit}" for num, unit in matches)
    if parsed != re.sub(r"\s+", "", text):
        raise DurationParseError(
            f"Invalid characters in duration: '{text}'. "
            "Use only digits and units: s, m, h, d"
        )

    return sum(int(num) * _UNIT_SECONDS[unit] for num, unit in matches)


def validate_duration_range(
    duration_seconds: int,
    min_seconds: int,
    max_seconds: int,
    label: str = "Duration",
) -> None:
    """Check that a parsed duration lies within [min_seconds, max_seconds].

    Raises:
        DurationParseError: If the duration is out of range
    """
    if duration_seconds < min_seconds:
        raise DurationParseError(
            f"{label} too short: {_seconds_to_human_readable(duration_seconds)}. "
            f"Minimum is {_seconds_to_human_readable(min_seconds)}."
        )
    if duration_seconds > max_seconds:
        raise DurationParseError(
            f"{label} too long: {_seconds_to_human_readable(duration_seconds)}. "
            f"Maximum is {_seconds_to_human_readable(max_seconds)}."
        )


def _seconds_to_human_readable(seconds: int) -> str:
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"
