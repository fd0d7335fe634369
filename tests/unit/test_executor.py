"""
Unit tests for backup executor (backupset/backup/executor.py).

Tests the complete creation workflow against real folders.
"""

import logging
import zipfile
from pathlib import Path
from unittest.mock import patch

import pytest
from freezegun import freeze_time

from backupset import load_config
from backupset.backup.collector import CollectedFileSet
from backupset.backup.compression import ArchiveWriteFailure
from backupset.backup.exclusions import InvalidPattern
from backupset.backup.executor import BackupExecutor, execute_backup
from backupset.backup.paths import InvalidLocation


def names_in(archive_path):
    with zipfile.ZipFile(archive_path) as zipf:
        return zipf.namelist()


class TestCreateBackup:
    """Test BackupExecutor.create_backup."""

    def test_executor_initialization(self, config):
        """Test BackupExecutor initializes correctly."""
        executor = BackupExecutor(config)

        assert executor.logs == []
        assert executor.codec.pattern == config['BACKUP_FILE_FORMAT']

    def test_create_backup(self, config, temp_files):
        """Test backing up a folder into its storage sub-folder."""
        executor = BackupExecutor(config)

        archive_path = executor.create_backup('world')

        assert archive_path.parent == Path(config['LOCAL_BACKUP_DIR']) / 'world'
        assert archive_path.name.endswith('.zip')
        assert 'world/level.dat' in names_in(archive_path)
        assert 'world/region/r.0.0.mca' in names_in(archive_path)
        assert any('Archive created' in line for line in executor.logs)

    @freeze_time("2024-01-15 12:30:00")
    def test_create_backup_name_from_time(self, config, temp_files):
        """Test that the archive is named after the current time."""
        archive_path = BackupExecutor(config).create_backup('world')

        assert archive_path.name == 'Backup-2024-01-15--12-30-00.zip'

    def test_create_backup_with_blacklist(self, config, temp_files):
        """Test that blacklisted files are left out and counted."""
        executor = BackupExecutor(config)

        archive_path = executor.create_backup('world', blacklist=['*.log'])

        names = names_in(archive_path)
        assert 'world/server.log' not in names
        assert 'world/logs/latest.log' in names
        assert any('Excluded 1 files matching *.log' in line for line in executor.logs)

    def test_create_backup_default_blacklist(self, tmp_path, base_dir, temp_files):
        """Test that BACKUP_BLACKLIST is used when no blacklist is given."""
        config = load_config(
            'testing',
            LOCAL_BACKUP_DIR=str(tmp_path / 'backups'),
            BASE_DIR=str(base_dir),
            BACKUP_BLACKLIST=['**.log', 'session.lock'],
        )

        archive_path = BackupExecutor(config).create_backup('world')

        assert sorted(names_in(archive_path)) == ['world/level.dat', 'world/region/r.0.0.mca']

    def test_create_backup_base_folder(self, config, temp_files):
        """Test that the base folder is archived under 'root'."""
        archive_path = BackupExecutor(config).create_backup('.')

        assert archive_path.parent.name == 'root'
        assert 'root/world/level.dat' in names_in(archive_path)

    def test_create_backup_skips_previous_backups(self, tmp_path, base_dir, temp_files):
        """Test that archives inside the base folder are never backed up again."""
        config = load_config(
            'testing',
            LOCAL_BACKUP_DIR=str(base_dir / 'backups'),
            BASE_DIR=str(base_dir),
            BACKUP_FILE_FORMAT='Backup-%Y-%m-%d--%H-%M-%S',
        )

        with freeze_time("2024-01-15 12:00:00"):
            first = BackupExecutor(config).create_backup('.')

        executor = BackupExecutor(config)
        with freeze_time("2024-01-15 13:00:00"):
            second = executor.create_backup('.')

        assert first.exists()
        assert not any(name.startswith('root/backups/') for name in names_in(second))
        assert any('Skipped 1 files located in the backup folder' in line for line in executor.logs)

    def test_create_backup_traversal_stays_in_storage(self, config, temp_files):
        """Test that '..' in the location can't move the archive out of storage."""
        storage_root = Path(config['LOCAL_BACKUP_DIR'])

        archive_path = BackupExecutor(config).create_backup('../server/world')

        assert archive_path.parent == storage_root / 'server' / 'world'
        assert 'world/level.dat' in names_in(archive_path)

    def test_create_backup_reports_skipped_files(self, config, temp_files, caplog):
        """Test that files that couldn't be read are reported."""
        file_set = CollectedFileSet(('level.dat', 'vanished.dat'), 0, [])
        executor = BackupExecutor(config)

        with patch('backupset.backup.executor.collect_files', return_value=file_set):
            with caplog.at_level(logging.WARNING, logger='backupset.backup.executor'):
                archive_path = executor.create_backup('world')

        assert names_in(archive_path) == ['world/level.dat']
        assert 'vanished.dat' in caplog.text
        assert any('Failed to include' in line for line in executor.logs)


class TestCreateBackupErrors:
    """Test error handling in create_backup."""

    @pytest.mark.parametrize('location', ['/world', '\\world', 'C:\\world', ''])
    def test_absolute_location_rejected(self, config, location):
        """Test that absolute locations fail before any I/O."""
        executor = BackupExecutor(config)

        with patch('backupset.backup.executor.collect_files') as mock_collect:
            with pytest.raises(InvalidLocation):
                executor.create_backup(location)

        mock_collect.assert_not_called()
        assert list(Path(config['LOCAL_BACKUP_DIR']).iterdir()) == []

    def test_invalid_pattern_rejected(self, config, temp_files):
        """Test that a malformed blacklist aborts before collecting files."""
        executor = BackupExecutor(config)

        with patch('backupset.backup.executor.collect_files') as mock_collect:
            with pytest.raises(InvalidPattern):
                executor.create_backup('world', blacklist=['*.log', '[oops'])

        mock_collect.assert_not_called()

    def test_missing_source_folder(self, config):
        """Test that a location without a source folder is rejected."""
        with pytest.raises(InvalidLocation):
            BackupExecutor(config).create_backup('no_such_world')

        assert not (Path(config['LOCAL_BACKUP_DIR']) / 'no_such_world').exists()

    def test_archive_failure_propagates(self, config, temp_files):
        """Test that archive level failures reach the caller."""
        with patch('backupset.backup.executor.write_archive', side_effect=ArchiveWriteFailure('disk full')):
            with pytest.raises(ArchiveWriteFailure, match='disk full'):
                BackupExecutor(config).create_backup('world')


class TestExecuteBackup:
    """Test execute_backup helper."""

    def test_execute_backup_prunes_old_archives(self, config, temp_files, make_archives):
        """Test that creating a backup also enforces retention."""
        old = make_archives('world', 4)

        archive_path = execute_backup('world', config)

        remaining = sorted(p.name for p in archive_path.parent.iterdir())
        assert len(remaining) == 3
        assert archive_path.exists()
        assert not old[0].exists()
        assert not old[1].exists()

    def test_execute_backup_explicit_keep_count(self, config, temp_files, make_archives):
        """Test overriding the configured keep count."""
        make_archives('world', 2)

        archive_path = execute_backup('world', config, keep_count=-1)

        assert len(list(archive_path.parent.iterdir())) == 3

    def test_execute_backup_positional_arguments(self, config, temp_files, make_archives):
        """Test the location, config, blacklist, keep_count argument order."""
        make_archives('world', 4)

        archive_path = execute_backup('world', config, ['*.log'], -1)

        assert 'world/server.log' not in names_in(archive_path)
        assert len(list(archive_path.parent.iterdir())) == 5
