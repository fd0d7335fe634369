"""
Collects the files that go into a backup.

Walks a source folder depth first and keeps every regular file that is
neither excluded by a pattern nor stored inside the backup storage root.
"""

import logging
import os
from pathlib import Path
from typing import List, Tuple

from .exclusions import ExclusionEntry, match_exclusion
from .paths import InvalidLocation, is_within


logger = logging.getLogger(__name__)


class CollectedFileSet:
    """
    The files to put into one archive.

    Attributes:
        relative_paths: Unique paths relative to the source folder, with
            forward slashes, in walk order
        files_in_backup_folder: Files skipped because they live inside the
            backup storage root
        exclusions: The exclusion entries with their match counts
    """

    def __init__(
        self,
        relative_paths: Tuple[str, ...],
        files_in_backup_folder: int,
        exclusions: List[ExclusionEntry]
    ):
        self.relative_paths = tuple(relative_paths)
        self.files_in_backup_folder = files_in_backup_folder
        self.exclusions = exclusions

    def __len__(self):
        return len(self.relative_paths)

    def __repr__(self):
        return (
            f'<CollectedFileSet files={len(self.relative_paths)} '
            f'in_backup_folder={self.files_in_backup_folder}>'
        )


def collect_files(source_folder, exclusions: List[ExclusionEntry], backup_storage_root) -> CollectedFileSet:
    """
    Build the list of files to back up from source_folder.

    Directories are always descended into, even when every file below them
    ends up excluded; exclusions only ever apply to files.

    Args:
        source_folder: Folder to back up
        exclusions: Compiled exclusion entries, counted in place
        backup_storage_root: Root folder holding all backups

    Returns:
        CollectedFileSet

    Raises:
        InvalidLocation: If source_folder is not a directory
    """
    root = Path(source_folder)
    if not root.is_dir():
        raise InvalidLocation(f"Backup source is not a folder: {source_folder}")

    storage_root = os.path.realpath(backup_storage_root)

    collected = {}
    files_in_backup_folder = 0
    visited = {os.path.realpath(root)}

    # Entries of a folder are pushed in reverse so they pop in name order
    stack = [root]

    while stack:
        current = stack.pop()

        if current.is_dir():
            try:
                children = sorted(current.iterdir(), key=lambda child: child.name)
            except OSError as e:
                logger.warning(f"Cannot read folder {current}: {e}")
                continue

            for child in reversed(children):
                if child.is_dir():
                    real_child = os.path.realpath(child)
                    if real_child in visited:
                        logger.debug(f"Skipping already visited folder {child}")
                        continue
                    visited.add(real_child)
                stack.append(child)
            continue

        if not current.is_file():
            continue

        # Never back up previous backups
        if is_within(current, storage_root):
            files_in_backup_folder += 1
            continue

        relative_path = current.relative_to(root).as_posix()

        if match_exclusion(exclusions, relative_path) is not None:
            continue

        collected.setdefault(relative_path, None)

    return CollectedFileSet(
        relative_paths=tuple(collected),
        files_in_backup_folder=files_in_backup_folder,
        exclusions=exclusions
    )
