"""
Backup module for backupset.

This module handles the core backup functionality including:
- Path safety (location escaping, base folder detection)
- File name timestamps
- Exclusion patterns
- File collection
- Zip archive writing
- Local storage and retention policy enforcement
"""

from .executor import BackupExecutor, execute_backup
from .collector import CollectedFileSet, collect_files
from .compression import write_archive, ArchiveWriteFailure
from .exclusions import compile_exclusions, compile_glob, ExclusionEntry, InvalidPattern
from .paths import escape_backup_location, is_base_folder, InvalidLocation
from .retention import RetentionManager, enforce_retention
from .storage import LocalStorage, StorageError
from .timestamps import TimestampCodec, FormatMismatch

__all__ = [
    'BackupExecutor',
    'execute_backup',
    'CollectedFileSet',
    'collect_files',
    'write_archive',
    'ArchiveWriteFailure',
    'compile_exclusions',
    'compile_glob',
    'ExclusionEntry',
    'InvalidPattern',
    'escape_backup_location',
    'is_base_folder',
    'InvalidLocation',
    'RetentionManager',
    'enforce_retention',
    'LocalStorage',
    'StorageError',
    'TimestampCodec',
    'FormatMismatch'
]
