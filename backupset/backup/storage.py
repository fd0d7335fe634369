"""
Local storage for backup archives.

Archives of a backup location live directly inside one sub-folder of the
storage root:
{base_path}/{escaped location or 'root'}/{archive name}.zip
"""

from pathlib import Path
from typing import List

from .compression import ARCHIVE_EXTENSION
from .paths import backup_folder_name, escape_backup_location


class StorageError(Exception):
    """Raised when storage operation fails."""
    pass


class LocalStorage:
    """
    Handler for backups kept in the local filesystem.

    Every path it hands out is built from an escaped location, so nothing
    it touches lies outside base_path.
    """

    def __init__(self, base_path):
        """
        Initialize local storage handler.

        Args:
            base_path: Base directory for local backups
        """
        # Archive paths handed out by list_archives are rooted here, so a
        # relative root would be prefixed twice when they come back to delete
        self.base_path = Path(base_path).absolute()

        # Create base directory if it doesn't exist
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create local storage directory: {e}")

    def location_path(self, location: str) -> Path:
        """Folder holding the archives of a backup location."""
        return self.base_path / backup_folder_name(location)

    def ensure_location(self, location: str) -> Path:
        """
        Create the folder of a backup location if needed.

        Raises:
            StorageError: If the folder cannot be created
        """
        path = self.location_path(location)

        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create backup folder {path}: {e}")

        return path

    def list_archives(self, location: str) -> List[Path]:
        """
        List the archives stored for a backup location.

        Only files directly inside the location folder are considered.

        Returns:
            Archive paths sorted by file name

        Raises:
            StorageError: If listing fails
        """
        path = self.location_path(location)

        if not path.exists():
            return []

        try:
            return sorted(
                (
                    item for item in path.iterdir()
                    if item.name.endswith(ARCHIVE_EXTENSION) and item.is_file()
                ),
                key=lambda item: item.name
            )
        except OSError as e:
            raise StorageError(f"Failed to list local files: {e}")

    def delete(self, path):
        """
        Delete an archive.

        Args:
            path: Archive path, absolute or relative to base_path

        Raises:
            StorageError: If deletion fails
        """
        full_path = Path(path)
        if not full_path.is_absolute():
            full_path = self.get_full_path(str(path))

        try:
            full_path.unlink()
        except PermissionError as e:
            raise StorageError(f"Permission denied deleting {full_path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to delete local file {full_path}: {e}")

    def get_full_path(self, relative_path: str) -> Path:
        """
        Get full filesystem path from relative path.

        Args:
            relative_path: Relative path from base_path

        Returns:
            Full filesystem path
        """
        return self.base_path / escape_backup_location(relative_path)
