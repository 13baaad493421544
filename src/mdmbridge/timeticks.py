import re
from datetime import datetime, timedelta, timezone

TICKS_PER_SECOND = 10_000_000
_NANOS_PER_TICK = 100

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_SECOND = timedelta(seconds=1)

# the backend counts ticks from the windows SystemTime epoch,
# this is that epoch expressed in unix-relative ticks
WIN_EPOCH_TICKS: "int" = (
    (datetime(1601, 1, 1, tzinfo=timezone.utc) - _UNIX_EPOCH) // _ONE_SECOND
) * TICKS_PER_SECOND

_TIMESTAMP_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})[Tt ](?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:[.,](?P<fraction>\d+))?"
    r"(?P<zone>[Zz]|[+-]\d{2}:?\d{2})?$"
)


class MalformedTimestamp(ValueError):
    """
    raised when a timestamp string cannot be parsed into a UTC instant.
    """


def _parse_zone(zone: "str | None") -> "timezone":
    # no designator means the value is already UTC
    if zone is None or zone in ("Z", "z"):
        return timezone.utc

    sign = -1 if zone[0] == "-" else 1
    digits = zone[1:].replace(":", "")
    offset = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
    return timezone(sign * offset)


def ticks(timestamp: "str") -> "int":
    """
    converts a timestamp like "2016-06-28T21:58:24.677Z" into the
    number of 100ns ticks elapsed since 1601-01-01T00:00:00Z.
    Fractional digits past nanosecond precision are truncated.
    """
    if not isinstance(timestamp, str):
        raise MalformedTimestamp(f"expected a string, got {type(timestamp).__name__}")

    match = _TIMESTAMP_RE.match(timestamp.strip())
    if match is None:
        raise MalformedTimestamp(f"unparseable timestamp {timestamp!r}")

    try:
        zone = _parse_zone(match["zone"])
        instant = datetime.fromisoformat(
            f"{match['date']}T{match['time']}"
        ).replace(tzinfo=zone)
    except ValueError as e:
        raise MalformedTimestamp(f"invalid timestamp {timestamp!r}: {e}") from e

    unix_seconds = (instant - _UNIX_EPOCH) // _ONE_SECOND
    nanoseconds = int((match["fraction"] or "0")[:9].ljust(9, "0"))

    return (
        unix_seconds * TICKS_PER_SECOND
        + nanoseconds // _NANOS_PER_TICK
        - WIN_EPOCH_TICKS
    )
