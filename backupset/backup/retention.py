"""
Retention policy enforcement for backups.

Indexes the archives of a backup location by the time encoded in their file
names and deletes the oldest ones beyond the configured keep count.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from .storage import LocalStorage, StorageError
from .timestamps import FormatMismatch, TimestampCodec


logger = logging.getLogger(__name__)

# Keep count that disables pruning
UNLIMITED = -1


class RetentionManager:
    """
    Manages the count-based retention policy of local backups.

    Uses LOCAL_BACKUP_DIR, LOCAL_KEEP_COUNT, BACKUP_FILE_FORMAT and
    BACKUP_TIMEZONE from the configuration mapping.
    """

    def __init__(self, config, storage: Optional[LocalStorage] = None):
        """
        Initialize retention manager.

        Args:
            config: Configuration mapping
            storage: Storage handler, built from LOCAL_BACKUP_DIR if omitted
        """
        self.config = config
        self.storage = storage or LocalStorage(config['LOCAL_BACKUP_DIR'])
        self.logs = []

    def default_codec(self) -> TimestampCodec:
        """Timestamp codec for the configured file name format."""
        return TimestampCodec(
            self.config['BACKUP_FILE_FORMAT'],
            self.config.get('BACKUP_TIMEZONE', 'UTC')
        )

    def list_backups(self, location: str, codec: Optional[TimestampCodec] = None) -> Dict[int, Path]:
        """
        Index the archives of a location by creation time.

        Archives whose name doesn't match the format are keyed by their
        modification time instead. Archives sharing the same second
        overwrite each other in the index; the files themselves are left
        alone.

        Args:
            location: Backup location
            codec: Timestamp codec, defaults to the configured one

        Returns:
            Dict of epoch seconds to archive path, in ascending key order

        Raises:
            StorageError: If the location folder cannot be listed
        """
        codec = codec or self.default_codec()
        backups = {}

        for archive in self.storage.list_archives(location):
            try:
                key = int(codec.parse_archive_name(archive.name).timestamp())
            except FormatMismatch:
                key = int(archive.stat().st_mtime)
                self._log(
                    f"Backup file name {archive.name} does not match the format "
                    f"{codec.pattern}, using its modification date instead",
                    logging.WARNING
                )
            backups[key] = archive

        return dict(sorted(backups.items()))

    def prune(
        self,
        location: str,
        codec: Optional[TimestampCodec] = None,
        keep_count: Optional[int] = None
    ) -> int:
        """
        Delete the oldest archives of a location past the number to keep.

        A failed deletion is logged and pruning moves on to the next
        archive. Nothing raised while listing or deleting escapes.

        Args:
            location: Backup location
            codec: Timestamp codec, defaults to the configured one
            keep_count: Number of archives to keep, defaults to
                LOCAL_KEEP_COUNT. -1 disables pruning.

        Returns:
            Number of archives deleted

        Raises:
            ValueError: If keep_count is below -1
        """
        if keep_count is None:
            keep_count = self.config.get('LOCAL_KEEP_COUNT', UNLIMITED)

        if keep_count < UNLIMITED:
            raise ValueError(f"Invalid keep count: {keep_count}")

        if keep_count == UNLIMITED:
            self._log(f"Local retention for {location}: unlimited, skipping")
            return 0

        deleted_count = 0

        try:
            backups = self.list_backups(location, codec)

            if len(backups) > keep_count:
                self._log(
                    f"Local backup limit reached for {location}: "
                    f"{len(backups)} backups, keeping {keep_count}"
                )

            while len(backups) > keep_count:
                # Dict is in ascending key order, so the first key is the oldest
                oldest = next(iter(backups))
                archive = backups.pop(oldest)

                try:
                    self.storage.delete(archive)
                    deleted_count += 1
                    self._log(f"Deleted local backup: {archive.name}")
                except StorageError as e:
                    self._log(f"Failed to delete local backup {archive.name}: {e}", logging.ERROR)

        except Exception as e:
            self._log(f"Failed to prune local backups of {location}: {e}", logging.ERROR)
            logger.debug("Pruning traceback", exc_info=True)

        return deleted_count

    def _log(self, message: str, level: int = logging.INFO):
        """
        Add a log message with timestamp.

        Args:
            message: Log message
            level: Logging level for the module logger
        """
        timestamp = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')
        log_entry = f"[{timestamp}] {message}"
        self.logs.append(log_entry)
        logger.log(level, message)


def enforce_retention(location: str, config, keep_count: Optional[int] = None) -> int:
    """
    Enforce the retention policy of one backup location.

    Returns:
        Number of archives deleted
    """
    manager = RetentionManager(config)
    return manager.prune(location, keep_count=keep_count)
