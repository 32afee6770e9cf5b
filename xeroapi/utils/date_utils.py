"""
Date and name helpers shared by the OAuth and response modules.

The remote API returns timestamps in several encodings:

- ISO-8601 strings, with or without an offset, a "T" or space separator,
  and anywhere from zero to seven fractional-second digits
- The Microsoft JSON wrapper "/Date(1509454062181)/" or
  "/Date(1439813704613+0000)/" (milliseconds since the epoch)
- Integer epoch seconds (OAuth expiry values and stored credentials)

Everything recognised is normalized to a timezone-aware UTC datetime.
Anything else is handed back untouched.
"""

import logging
import re
from datetime import date, datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

# Field-name heuristic for values that should be coerced to datetimes.
DATE_FIELD_SUFFIXES = ("utc", "date", "datetime")
DATE_FIELD_PREFIXES = ("dateofbirth",)

_MS_DATE_PATTERN = re.compile(r"^/Date\((-?\d+)([+-]\d{4})?\)/$")

_ISO_PATTERN = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})"
    r"(?:[T ](?P<time>\d{2}:\d{2}(?::\d{2})?)(?:\.(?P<fraction>\d+))?)?"
    r"(?P<offset>Z|[+-]\d{2}:?\d{2})?$"
)


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def is_date_field(name: Any) -> bool:
    """
    Decide whether a field holds a date, judging by its name alone.

    Names ending in "utc", "date" or "datetime", or starting with
    "dateofbirth", match (case-insensitive).

    Args:
        name: Field name (non-strings never match)

    Returns:
        True if values of this field should go through to_datetime()
    """
    if not isinstance(name, str):
        return False

    lc_name = name.lower()
    return lc_name.endswith(DATE_FIELD_SUFFIXES) or lc_name.startswith(
        DATE_FIELD_PREFIXES
    )


def _parse_iso(value: str) -> Any:
    match = _ISO_PATTERN.match(value.strip())
    if not match:
        return value

    text = match.group("date")
    if match.group("time"):
        text += "T" + match.group("time")
        fraction = match.group("fraction")
        if fraction:
            # fromisoformat() wants exactly microseconds
            text += "." + fraction[:6].ljust(6, "0")

    offset = match.group("offset")
    if offset:
        if offset == "Z":
            offset = "+00:00"
        elif ":" not in offset:
            offset = f"{offset[:3]}:{offset[3:]}"
        text += offset

    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        logger.debug(f"Date-like value '{value}' could not be parsed: {e}")
        return value


def _from_timestamp(value: Any, seconds: int, scale: int = 1) -> Any:
    try:
        return datetime.fromtimestamp(seconds / scale, tz=timezone.utc)
    except (ValueError, OverflowError, OSError) as e:
        logger.debug(f"Timestamp {value!r} is out of range: {e}")
        return value


def to_datetime(value: Any) -> Any:
    """
    Coerce a timestamp in any supported encoding to a UTC datetime.

    Args:
        value: datetime, date, int epoch seconds, "/Date(millis)/" string
               or ISO-8601 string

    Returns:
        Timezone-aware UTC datetime, or the value unchanged if it is not
        a recognised timestamp
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    # bool is an int subclass, and never a timestamp
    if isinstance(value, int) and not isinstance(value, bool):
        return _from_timestamp(value, value)

    if isinstance(value, str):
        ms_match = _MS_DATE_PATTERN.match(value)
        if ms_match:
            # The millisecond count is already UTC; the offset is informational.
            return _from_timestamp(value, int(ms_match.group(1)), scale=1000)

        return _parse_iso(value)

    return value


def snake_to_camel(name: str) -> str:
    """
    Convert a snake_case (or mixed) name to lowerCamelCase.

    Example: "Snacks_On_a_Plane" -> "snacksOnAPlane"
    """
    camel = "".join(part[:1].upper() + part[1:] for part in name.split("_"))
    return camel[:1].lower() + camel[1:]
