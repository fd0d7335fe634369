"""
Path helpers that keep backup operations confined beneath the storage root.

Backup locations are user-supplied relative paths. They name both the
folder to back up and the sub-folder of the storage root that holds its
archives, so they must be escaped before being joined with the root.
"""

import os
import re
import shutil
from pathlib import Path
from typing import List

from .exclusions import compile_glob


BASE_FOLDER_NAME = 'root'

# A ".." segment: at the start of the string or right after a separator,
# followed by a separator or the end of the string.
_PARENT_SEGMENT = re.compile(r'(?<![^/\\])\.\.(?:[/\\]|$)')


class InvalidLocation(ValueError):
    """Raised when a backup location is absolute or otherwise disallowed."""
    pass


def escape_backup_location(location: str) -> str:
    """
    Strip parent-directory segments from a backup location.

    This is a textual defense, not a canonicalization. It runs until no
    ".." segment is left, so the result is stable under repeated calls.

    Args:
        location: The unescaped location

    Returns:
        The escaped location
    """
    escaped = location
    while _PARENT_SEGMENT.search(escaped):
        escaped = _PARENT_SEGMENT.sub('', escaped)
    return escaped


def is_base_folder(folder_path: str) -> bool:
    """Whether the path denotes the base folder the process runs from."""
    return os.path.normpath(str(folder_path)) == '.'


def is_absolute_location(location: str) -> bool:
    """
    Whether a raw location is rooted.

    Both separators count so a location written for another platform is
    rejected too.
    """
    location = str(location)
    if location.startswith(('/', '\\')):
        return True
    return os.path.isabs(location) or bool(re.match(r'^[A-Za-z]:[/\\]', location))


def validate_location(location: str) -> str:
    """
    Reject locations that may never be used as a backup source.

    Raises:
        InvalidLocation: If the location is empty or absolute
    """
    if not location:
        raise InvalidLocation("Backup location must not be empty")
    if is_absolute_location(location):
        raise InvalidLocation(f"Backup location must be relative: {location}")
    return location


def backup_folder_name(location: str) -> str:
    """Name of the storage sub-folder holding the archives of a location."""
    escaped = escape_backup_location(location)
    # "..", "../" and "./.." escape to nothing and would land in the root itself
    if is_base_folder(location) or is_base_folder(escaped) or not escaped.strip('/\\'):
        return BASE_FOLDER_NAME
    return escaped


def archive_top_level_name(source_folder: str) -> str:
    """Name of the top-level directory entry inside an archive."""
    if is_base_folder(source_folder):
        return BASE_FOLDER_NAME
    name = Path(os.path.normpath(str(source_folder))).name
    # Entry names must never climb out of the extraction folder
    if name in ('', '.', '..'):
        return BASE_FOLDER_NAME
    return name


def is_within(path, root) -> bool:
    """
    Whether the canonical form of path lies underneath the canonical root.

    Containment is checked per path segment, so "/backups2/a" is not inside
    "/backups".
    """
    real_path = os.path.realpath(path)
    real_root = os.path.realpath(root)
    try:
        return os.path.commonpath([real_path, real_root]) == real_root
    except ValueError:
        # Different drives on Windows
        return False


def find_folders(glob: str, root_path) -> List[Path]:
    """
    Find all folders under root_path whose relative path matches a glob.

    Relative paths are written as "./<path>" and the glob is prefixed the
    same way, so "world*" matches top-level folders only while "**" searches
    the whole tree.

    Args:
        glob: The glob to search for
        root_path: The folder to start searching from

    Returns:
        Matching folders, in walk order. Empty if the tree can't be read.
    """
    matcher = compile_glob('./' + glob)
    root = Path(root_path)
    found = []

    if not root.is_dir():
        return found

    try:
        for current, dirnames, _ in os.walk(root, onerror=_raise):
            dirnames.sort()
            current_path = Path(current)
            relative = current_path.relative_to(root).as_posix()
            candidate = '.' if relative == '.' else f'./{relative}'
            if matcher.matches(candidate):
                found.append(current_path)
    except OSError:
        return []

    return found


def delete_folder(folder) -> bool:
    """
    Recursively delete a folder.

    Returns:
        Whether deleting the folder was successful
    """
    try:
        shutil.rmtree(folder)
        return True
    except OSError:
        return False


def _raise(error: OSError):
    raise error
