"""
Zip archive writer for backups.

Streams a collected set of files into a single zip archive. Files that
cannot be read are skipped so one locked or vanished file never costs the
whole backup.
"""

import logging
import os
import zipfile
from pathlib import Path
from typing import List, Optional

from .paths import archive_top_level_name


logger = logging.getLogger(__name__)

ARCHIVE_EXTENSION = '.zip'

# Lock files are always held open by their owner, so failures on them are expected
LOCK_FILE_SUFFIX = '.lock'

CHUNK_SIZE = 64 * 1024


class ArchiveWriteFailure(Exception):
    """Raised when the archive itself cannot be created or finalized."""
    pass


class _SourceReadError(Exception):
    """A source file failed while being streamed into its entry."""

    def __init__(self, error: OSError):
        super().__init__(str(error))
        self.error = error


def write_archive(
    source_folder,
    archive_path,
    file_set,
    compression_level: int = 1,
    top_level_name: Optional[str] = None
) -> List[str]:
    """
    Write the collected files of source_folder into a zip archive.

    Every entry is named ``<top_level_name>/<relative path>``.

    Args:
        source_folder: Folder the relative paths in file_set refer to
        archive_path: Path of the zip file to create
        file_set: CollectedFileSet produced by the collector
        compression_level: Deflate level, 0 (store) to 9 (smallest)
        top_level_name: Name of the top-level directory inside the archive,
            defaults to the last segment of source_folder or 'root'

    Returns:
        Paths of files that could not be included, lock files omitted

    Raises:
        ArchiveWriteFailure: If the archive cannot be written. The partial
            archive is removed.
        ValueError: If compression_level is out of range
    """
    if not isinstance(compression_level, int) or not 0 <= compression_level <= 9:
        raise ValueError(
            f"Invalid compression level: {compression_level}. "
            f"Valid options: 0-9"
        )

    if top_level_name is None:
        top_level_name = archive_top_level_name(str(source_folder))

    source = Path(source_folder)
    skipped = []

    try:
        with zipfile.ZipFile(
            archive_path, 'w', zipfile.ZIP_DEFLATED, compresslevel=compression_level
        ) as zipf:
            for relative_path in file_set.relative_paths:
                file_path = source / relative_path
                entry_name = f"{top_level_name}/{relative_path}"

                try:
                    _add_file_to_zip(zipf, file_path, entry_name)
                except _SourceReadError as e:
                    if str(file_path).endswith(LOCK_FILE_SUFFIX):
                        logger.debug(f"Skipped locked file {file_path}: {e}")
                        continue
                    logger.warning(f"Failed to include {file_path} in backup: {e}")
                    skipped.append(str(file_path))
    except Exception as e:
        # Clean up partial archive on failure
        if os.path.exists(archive_path):
            try:
                os.remove(archive_path)
            except OSError:
                logger.warning(f"Failed to remove partial archive {archive_path}")
        raise ArchiveWriteFailure(f"Failed to create archive {archive_path}: {e}") from e

    return skipped


def _add_file_to_zip(zipf: zipfile.ZipFile, file_path: Path, entry_name: str):
    """
    Stream one file into a new archive entry.

    The source is opened before the entry is created, so a file that can't
    be opened leaves no entry behind. A read failure part way through
    leaves a truncated entry. Source errors raise _SourceReadError; errors
    writing the archive propagate unchanged.
    """
    try:
        src = open(file_path, 'rb')
    except OSError as e:
        raise _SourceReadError(e) from e

    with src:
        try:
            size = os.fstat(src.fileno()).st_size
        except OSError as e:
            raise _SourceReadError(e) from e

        with zipf.open(entry_name, 'w', force_zip64=size > zipfile.ZIP64_LIMIT) as dest:
            while True:
                try:
                    chunk = src.read(CHUNK_SIZE)
                except OSError as e:
                    raise _SourceReadError(e) from e
                if not chunk:
                    break
                dest.write(chunk)


def strip_archive_extension(filename: str) -> str:
    """
    Strip the archive extension from a file name.

    Names without the extension are returned unchanged.
    """
    if filename.endswith(ARCHIVE_EXTENSION):
        return filename[:-len(ARCHIVE_EXTENSION)]
    return filename


def get_archive_size(archive_path) -> int:
    """
    Get the size of an archive file in bytes.

    Raises:
        ArchiveWriteFailure: If the file doesn't exist or cannot be accessed
    """
    try:
        return os.path.getsize(archive_path)
    except FileNotFoundError:
        raise ArchiveWriteFailure(f"Archive not found: {archive_path}")
    except OSError as e:
        raise ArchiveWriteFailure(f"Failed to get archive size: {e}")
