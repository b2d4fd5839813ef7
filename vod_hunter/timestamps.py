import re
from datetime import datetime, timezone

from .errors import TimestampFormatError


RE_UNIX = re.compile(r"\d*")
RE_RFC3339 = re.compile(
    r"\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})"
)

FORMAT_WITH_UTC = "%Y-%m-%d %H:%M:%S UTC"
FORMAT_WITHOUT_UTC = "%Y-%m-%d %H:%M:%S"
FORMAT_WITHOUT_SECONDS = "%d-%m-%Y %H:%M"


def to_epoch(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def parse_rfc3339(text: str) -> datetime:
    """The wall-clock time of an RFC 3339 stamp, read as UTC.

    The offset is validated but not applied.
    """
    if not RE_RFC3339.fullmatch(text):
        raise ValueError(f"not an RFC 3339 timestamp: {text}")
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text).replace(tzinfo=timezone.utc)


def parse_timestamp(text: str) -> int:
    """Turn a tracker/user supplied timestamp into a unix epoch.

    The order of the checks matters: a bare integer is taken as-is, a string
    carrying ``UTC`` must match the explicit UTC pattern, then RFC 3339,
    then ``YYYY-MM-DD HH:MM:SS`` and finally ``DD-MM-YYYY HH:MM``.
    Everything is read as UTC; an RFC 3339 offset is not applied.
    """
    if RE_UNIX.fullmatch(text):
        try:
            return int(text)
        except ValueError as e:
            raise TimestampFormatError(text, e) from e

    if "UTC" in text:
        try:
            return to_epoch(datetime.strptime(text, FORMAT_WITH_UTC))
        except ValueError as e:
            raise TimestampFormatError(text, e) from e

    try:
        return to_epoch(parse_rfc3339(text))
    except ValueError:
        pass

    try:
        return to_epoch(datetime.strptime(text, FORMAT_WITHOUT_UTC))
    except ValueError:
        pass

    try:
        return to_epoch(datetime.strptime(text, FORMAT_WITHOUT_SECONDS))
    except ValueError as e:
        raise TimestampFormatError(text, e) from e
