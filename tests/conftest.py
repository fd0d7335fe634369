"""
Shared pytest fixtures for backupset tests.

This module provides fixtures for:
- Test configuration with temporary storage and base folders
- Source folder trees to back up
- Pre-existing archives for retention tests
"""

import os
import zipfile
from datetime import datetime, timedelta, timezone

import pytest

from backupset import load_config
from backupset.backup.storage import LocalStorage
from backupset.backup.timestamps import TimestampCodec


@pytest.fixture(scope='function')
def base_dir(tmp_path):
    """Base folder that backup locations are relative to."""
    path = tmp_path / 'server'
    path.mkdir()
    return path


@pytest.fixture(scope='function')
def config(tmp_path, base_dir):
    """
    Testing configuration.

    Backups are stored in <tmp>/backups, outside the base folder.
    """
    return load_config(
        'testing',
        LOCAL_BACKUP_DIR=str(tmp_path / 'backups'),
        BASE_DIR=str(base_dir),
        LOG_DIR=str(tmp_path / 'logs'),
        BACKUP_FILE_FORMAT='Backup-%Y-%m-%d--%H-%M-%S',
        BACKUP_TIMEZONE='UTC',
        ZIP_COMPRESSION=6,
        LOCAL_KEEP_COUNT=3,
    )


@pytest.fixture(scope='function')
def storage(config):
    """LocalStorage rooted at the configured backup folder."""
    return LocalStorage(config['LOCAL_BACKUP_DIR'])


@pytest.fixture(scope='function')
def codec(config):
    """TimestampCodec for the configured file name format."""
    return TimestampCodec(config['BACKUP_FILE_FORMAT'], config['BACKUP_TIMEZONE'])


@pytest.fixture
def temp_files(base_dir):
    """
    Create a world folder to back up.

    Creates:
    - world/level.dat
    - world/server.log
    - world/session.lock
    - world/region/r.0.0.mca
    - world/logs/latest.log
    """
    world = base_dir / 'world'
    (world / 'region').mkdir(parents=True)
    (world / 'logs').mkdir()

    (world / 'level.dat').write_bytes(b'level data')
    (world / 'server.log').write_text('server log')
    (world / 'session.lock').write_bytes(b'lock')
    (world / 'region' / 'r.0.0.mca').write_bytes(b'region data' * 100)
    (world / 'logs' / 'latest.log').write_text('latest log')

    return world


@pytest.fixture
def make_archives(storage, codec):
    """
    Factory creating archives for a location, one per hour, oldest first.

    Returns:
        Function(location, count, start=None) -> list of archive paths
    """
    def _make(location, count, start=None):
        start = start or datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        folder = storage.ensure_location(location)
        paths = []

        for i in range(count):
            moment = start + timedelta(hours=i)
            path = folder / codec.archive_name(moment)
            with zipfile.ZipFile(path, 'w') as zipf:
                zipf.writestr(f'{location}/file.txt', f'backup {i}')
            paths.append(path)

        return paths

    return _make


@pytest.fixture
def set_mtime():
    """Function setting the modification time of a file to an aware datetime."""
    def _set(path, moment):
        stamp = moment.timestamp()
        os.utime(path, (stamp, stamp))

    return _set
