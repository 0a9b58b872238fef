"""FHIR date, dateTime and instant parsing.

Values are converted to epoch milliseconds together with the precision the
source string was written at. Partial dates (``2020``, ``2020-03``) resolve to
the first instant of the period. Values without a timezone are read as UTC so
the result never depends on the host's local zone.
"""

import re
from datetime import datetime, timedelta, timezone
from enum import Enum


class TemporalPrecision(Enum):
    """Precision a temporal value was recorded at."""

    YEAR = "YEAR"
    MONTH = "MONTH"
    DAY = "DAY"
    MINUTE = "MINUTE"
    SECOND = "SECOND"
    MILLISECOND = "MILLISECOND"


_TEMPORAL_RE = re.compile(
    r"^(?P<year>\d{4})"
    r"(?:-(?P<month>\d{2})"
    r"(?:-(?P<day>\d{2})"
    r"(?:T(?P<hour>\d{2}):(?P<minute>\d{2})"
    r"(?::(?P<second>\d{2})(?:\.(?P<fraction>\d+))?)?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})?"
    r")?)?)?$"
)


class TemporalParseError(ValueError):
    """Raised when a string is not a valid FHIR temporal value."""


def _precision_of(match: re.Match) -> TemporalPrecision:
    if match.group("fraction"):
        return TemporalPrecision.MILLISECOND
    if match.group("second"):
        return TemporalPrecision.SECOND
    if match.group("minute"):
        return TemporalPrecision.MINUTE
    if match.group("day"):
        return TemporalPrecision.DAY
    if match.group("month"):
        return TemporalPrecision.MONTH
    return TemporalPrecision.YEAR


def _tzinfo_of(tz: str | None) -> timezone:
    if not tz or tz == "Z":
        return timezone.utc
    sign = -1 if tz[0] == "-" else 1
    hours, minutes = tz[1:].split(":")
    return timezone(sign * timedelta(hours=int(hours), minutes=int(minutes)))


def parse_temporal(text: str) -> tuple[int, TemporalPrecision]:
    """Parse a FHIR temporal string.

    Args:
        text: A FHIR ``date``, ``dateTime`` or ``instant`` value

    Returns:
        (epoch_millis, precision) tuple

    Raises:
        TemporalParseError: If the string is not a valid temporal value
    """
    match = _TEMPORAL_RE.match(text.strip()) if isinstance(text, str) else None
    if not match:
        raise TemporalParseError(f"Not a FHIR temporal value: {text!r}")

    fraction = match.group("fraction") or ""
    # Sub-millisecond digits are truncated
    micros = int(fraction[:6].ljust(6, "0")) if fraction else 0

    try:
        moment = datetime(
            int(match.group("year")),
            int(match.group("month") or 1),
            int(match.group("day") or 1),
            int(match.group("hour") or 0),
            int(match.group("minute") or 0),
            int(match.group("second") or 0),
            micros - micros % 1000,
            tzinfo=_tzinfo_of(match.group("tz")),
        )
    except ValueError as e:
        raise TemporalParseError(f"Not a FHIR temporal value: {text!r} ({e})") from e

    epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)
    millis = (moment - epoch) // timedelta(milliseconds=1)
    return millis, _precision_of(match)
