"""
Timestamps embedded in backup file names.

New archives are named by formatting the current time with a strftime
pattern; existing archives recover their creation time by parsing the same
pattern back out of the file name.
"""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .compression import ARCHIVE_EXTENSION, strip_archive_extension


DEFAULT_FILE_FORMAT = 'Backup-%Y-%m-%d--%H-%M'


class FormatMismatch(ValueError):
    """Raised when a file name does not conform to the timestamp pattern."""
    pass


class TimestampCodec:
    """
    Formats and parses file-name timestamps in a fixed time zone.

    For any datetime truncated to the precision of the pattern,
    ``parse(format(t)) == t``.
    """

    def __init__(self, pattern: str = DEFAULT_FILE_FORMAT, timezone: str = 'UTC'):
        """
        Args:
            pattern: strftime pattern, e.g. 'Backup-%Y-%m-%d--%H-%M'
            timezone: IANA time zone name used for formatting and parsing

        Raises:
            ValueError: If the pattern is empty or the time zone is unknown
        """
        if not pattern:
            raise ValueError("Timestamp pattern must not be empty")

        try:
            self.tz = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {timezone}") from e

        self.pattern = pattern
        self.timezone = timezone

    def now(self) -> datetime:
        """Current time in the configured zone."""
        return datetime.now(self.tz)

    def format(self, moment: datetime) -> str:
        """
        Format a datetime into a file-name-safe string.

        Naive datetimes are taken to already be in the configured zone.

        Raises:
            ValueError: If the result would contain a path separator
        """
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self.tz)
        else:
            moment = moment.astimezone(self.tz)

        name = moment.strftime(self.pattern)
        if '/' in name or '\\' in name:
            raise ValueError(f"Timestamp pattern produces a path, not a file name: {name}")
        return name

    def parse(self, name: str) -> datetime:
        """
        Parse a formatted name back into an aware datetime.

        Raises:
            FormatMismatch: If the name does not conform to the pattern
        """
        try:
            parsed = datetime.strptime(name, self.pattern)
        except ValueError as e:
            raise FormatMismatch(f"{name!r} does not match {self.pattern!r}: {e}") from e

        if parsed.tzinfo is not None:
            return parsed.astimezone(self.tz)
        return parsed.replace(tzinfo=self.tz)

    def archive_name(self, moment: Optional[datetime] = None) -> str:
        """File name of an archive created at moment (default: now)."""
        if moment is None:
            moment = self.now()
        return self.format(moment) + ARCHIVE_EXTENSION

    def parse_archive_name(self, file_name: str) -> datetime:
        """
        Parse the creation time out of an archive file name.

        Raises:
            FormatMismatch: If the name does not conform to the pattern
        """
        return self.parse(strip_archive_extension(file_name))

    def __repr__(self):
        return f'<TimestampCodec {self.pattern!r} tz={self.timezone}>'
