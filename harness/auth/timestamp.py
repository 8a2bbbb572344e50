"""UTC timestamp formatting for SigV4 signing."""

import datetime
from typing import Union

from ..errors import InvalidTimestamp

AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"
DATE_STAMP_FORMAT = "%Y%m%d"

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)

Instant = Union[datetime.datetime, int, float, str]


def utc_now() -> datetime.datetime:
    """Capture the current instant in UTC, truncated to whole seconds."""
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)


def to_utc(instant: Instant) -> datetime.datetime:
    """
    Normalize an instant to an aware UTC datetime with second resolution.

    Naive datetimes are taken to already be in UTC; the local timezone of the
    host is never consulted.

    Args:
        instant: A datetime, POSIX seconds, or an ISO 8601 string

    Returns:
        Aware datetime in UTC

    Raises:
        InvalidTimestamp: If the instant is unparseable, of the wrong type,
            or before the Unix epoch
    """
    if isinstance(instant, bool):
        raise InvalidTimestamp(f"Unsupported timestamp type: {type(instant).__name__}")

    if isinstance(instant, datetime.datetime):
        value = instant
    elif isinstance(instant, (int, float)):
        try:
            value = datetime.datetime.fromtimestamp(instant, tz=datetime.timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidTimestamp(f"Timestamp out of range: {instant!r}") from e
    elif isinstance(instant, str):
        text = instant.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidTimestamp(f"Unparseable timestamp: {instant!r}") from e
    else:
        raise InvalidTimestamp(f"Unsupported timestamp type: {type(instant).__name__}")

    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    else:
        value = value.astimezone(datetime.timezone.utc)

    if value < _EPOCH:
        raise InvalidTimestamp(f"Timestamp precedes the Unix epoch: {instant!r}")

    return value.replace(microsecond=0)


def format_timestamp(instant: Instant) -> tuple[str, str]:
    """
    Format a single instant as the SigV4 ``x-amz-date`` and date stamp.

    Both strings are derived from the same normalized value so they can
    never disagree across a second or day boundary.

    Returns:
        Tuple of (amz_date, date_stamp), e.g. ("20150830T123600Z", "20150830")
    """
    t = to_utc(instant)
    return t.strftime(AMZ_DATE_FORMAT), t.strftime(DATE_STAMP_FORMAT)
