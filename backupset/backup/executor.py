"""
Backup executor - orchestrates the creation of one backup.

Workflow:
1. Validate the backup location (must be relative)
2. Compile the exclusion patterns
3. Collect the files of the source folder
4. Report exclusion and backup-folder counts
5. Name the archive after the current time
6. Write the zip archive
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from .collector import CollectedFileSet, collect_files
from .compression import ArchiveWriteFailure, get_archive_size, write_archive
from .exclusions import compile_exclusions
from .paths import archive_top_level_name, validate_location
from .retention import RetentionManager
from .storage import LocalStorage, StorageError
from .timestamps import TimestampCodec


logger = logging.getLogger(__name__)


class BackupExecutor:
    """
    Creates zip backups of folders under the configured base folder.

    Callers must not run two backups of the same location at once.
    """

    def __init__(self, config, storage: Optional[LocalStorage] = None):
        """
        Initialize backup executor.

        Args:
            config: Configuration mapping (see backupset.config)
            storage: Storage handler, built from LOCAL_BACKUP_DIR if omitted
        """
        self.config = config
        self.storage = storage or LocalStorage(config['LOCAL_BACKUP_DIR'])
        self.codec = TimestampCodec(
            config['BACKUP_FILE_FORMAT'],
            config.get('BACKUP_TIMEZONE', 'UTC')
        )
        self.logs = []

    def create_backup(self, location: str, blacklist: Optional[Iterable[str]] = None) -> Path:
        """
        Create a zip backup of a location.

        Args:
            location: Folder to back up, relative to BASE_DIR
            blacklist: Glob patterns of files to leave out, defaults to
                BACKUP_BLACKLIST

        Returns:
            Path of the created archive

        Raises:
            InvalidLocation: If the location is empty, absolute or not a folder
            InvalidPattern: If an exclusion pattern is malformed
            ArchiveWriteFailure: If the archive cannot be written
        """
        validate_location(location)

        if blacklist is None:
            blacklist = self.config.get('BACKUP_BLACKLIST', [])
        exclusions = compile_exclusions(blacklist)

        self._log(f"Starting backup of {location}")

        source_folder = Path(self.config.get('BASE_DIR', '.')) / location
        file_set = collect_files(source_folder, exclusions, self.storage.base_path)
        self._report_collection(file_set)

        archive_name = self.codec.archive_name()
        try:
            backup_folder = self.storage.ensure_location(location)
        except StorageError as e:
            raise ArchiveWriteFailure(str(e)) from e
        archive_path = backup_folder / archive_name

        skipped = write_archive(
            source_folder,
            archive_path,
            file_set,
            compression_level=self.config.get('ZIP_COMPRESSION', 1),
            top_level_name=archive_top_level_name(location)
        )

        for file_path in skipped:
            self._log(f"Failed to include {file_path} in the backup", logging.WARNING)

        size = get_archive_size(archive_path)
        self._log(
            f"Archive created: {archive_name} "
            f"({len(file_set) - len(skipped)} files, {size / 1024 / 1024:.2f} MB)"
        )

        return archive_path

    def _report_collection(self, file_set: CollectedFileSet):
        """Log per-pattern exclusion counts and files found in the backup folder."""
        for entry in file_set.exclusions:
            if entry.match_count > 0:
                self._log(
                    f"Excluded {entry.match_count} files matching {entry.pattern} from the backup"
                )

        if file_set.files_in_backup_folder > 0:
            self._log(
                f"Skipped {file_set.files_in_backup_folder} files located in the backup folder"
            )

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


def execute_backup(
    location: str,
    config,
    blacklist: Optional[Iterable[str]] = None,
    keep_count: Optional[int] = None
) -> Path:
    """
    Back up a location, then prune its old archives.

    Args:
        location: Folder to back up, relative to BASE_DIR
        config: Configuration mapping
        blacklist: Exclusion globs, defaults to BACKUP_BLACKLIST
        keep_count: Archives to keep, defaults to LOCAL_KEEP_COUNT

    Returns:
        Path of the created archive
    """
    storage = LocalStorage(config['LOCAL_BACKUP_DIR'])

    executor = BackupExecutor(config, storage=storage)
    archive_path = executor.create_backup(location, blacklist)

    manager = RetentionManager(config, storage=storage)
    manager.prune(location, executor.codec, keep_count)

    return archive_path
