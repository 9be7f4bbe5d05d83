"""End-to-end tests for target backups, restores and results."""

import shutil
import time
from pathlib import Path

import pytest

from conftest import list_files, set_mtime, write_tree
from backup_rat.config.settings import BackupConfig, BackupTarget
from backup_rat.destinations import (
    LocalCopyBackend,
    NetworkBackend,
    UnsupportedBackendError,
    get_backend,
    sync_target,
)
from backup_rat.destinations import local
from backup_rat.sync import backup_manager
from backup_rat.sync.backup_manager import BackupManager
from backup_rat.sync.retention import RetentionError


def _target(source, destination, **kwargs):
    return BackupTarget(path=source, target_path=destination, **kwargs)


def test_single_file_backup(tmp_path, backup_root):
    source = tmp_path / 'report.txt'
    source.write_bytes(b'0123456789')

    report = sync_target(_target(source, backup_root))

    assert report.files_copied == 1
    assert (backup_root / 'report.txt').read_bytes() == b'0123456789'


@pytest.mark.parametrize('threads', [1, 4])
def test_regex_ignore(tmp_path, backup_root, threads):
    source = write_tree(tmp_path / 'a', {'x.log': 'log', 'y.txt': 'text'})

    report = sync_target(_target(source, backup_root, ignore_files=[r'r#\.log$']), threads)

    assert report.files_copied == 1
    assert list_files(backup_root / 'a') == {'y.txt'}


def test_snapshot_retention_over_three_runs(tmp_path, backup_root):
    source = write_tree(tmp_path / 'a', {'x.txt': 'x', 'sub/y.txt': 'y'})
    target = _target(source, backup_root, keep_num=2)
    runs = ['2024-01-01 00:00:01', '2024-01-01 00:00:02', '2024-01-01 00:00:03']

    for name in runs:
        report = sync_target(target, 1, snapshot_name=name)
        assert report.files_copied == 2

    assert sorted(p.name for p in (backup_root / 'a').iterdir() if p.is_dir()) == runs[1:]
    assert list_files(backup_root / 'a' / runs[2]) == {'x.txt', 'sub/y.txt'}


def test_snapshots_always_copy_everything(tmp_path, backup_root):
    source = write_tree(tmp_path / 'a', {'x.txt': 'x'})
    target = _target(source, backup_root, keep_num=3)

    assert sync_target(target, 1, snapshot_name='2024-01-01 00:00:01').files_copied == 1
    assert sync_target(target, 1, snapshot_name='2024-01-01 00:00:02').files_copied == 1


def test_missing_destination(tmp_path, source_tree):
    with pytest.raises(FileNotFoundError):
        sync_target(_target(source_tree, tmp_path / 'missing'))
    assert not (tmp_path / 'missing').exists()


def test_missing_source(tmp_path, backup_root):
    with pytest.raises(FileNotFoundError):
        sync_target(_target(tmp_path / 'missing', backup_root), 4)


def test_unchanged_files_are_not_recopied(tmp_path, backup_root):
    source = write_tree(tmp_path / 'a', {'x.txt': 'x', 'y.txt': 'y'})
    target = _target(source, backup_root)

    assert sync_target(target).files_copied == 2
    assert sync_target(target).files_copied == 0

    set_mtime(source / 'x.txt', time.time() + 100)
    assert sync_target(target).files_copied == 1


def test_always_copy_recopies(tmp_path, backup_root):
    source = write_tree(tmp_path / 'a', {'x.txt': 'x', 'y.txt': 'y'})
    target = _target(source, backup_root, always_copy=True)

    sync_target(target)
    assert sync_target(target).files_copied == 2


@pytest.mark.parametrize('options', [
    {'always_copy': True},
    {'keep_num': 2},
    {},
])
def test_exact_name_is_never_copied(source_tree, backup_root, options):
    target = _target(source_tree, backup_root, ignore_files=['y.txt'], **options)
    sync_target(target, 1, snapshot_name='2024-01-01 00:00:00')
    assert not any(p.name == 'y.txt' for p in backup_root.rglob('*'))


def test_serial_and_parallel_produce_same_files(tmp_path, source_tree):
    serial_root = tmp_path / 'serial'
    parallel_root = tmp_path / 'parallel'
    serial_root.mkdir()
    parallel_root.mkdir()
    options = {'ignore_folders': ['docs/cache'], 'ignore_files': ['x.log']}

    serial = sync_target(_target(source_tree, serial_root, **options), 1)
    parallel = sync_target(_target(source_tree, parallel_root, **options), 5)

    assert serial.files_copied == parallel.files_copied == 4
    assert list_files(serial_root) == list_files(parallel_root)


def test_lone_file_with_threads(tmp_path, backup_root):
    source = tmp_path / 'report.txt'
    source.write_text('data')
    assert sync_target(_target(source, backup_root), 8).files_copied == 1


def test_retention_error_keeps_count(tmp_path, backup_root, monkeypatch):
    source = write_tree(tmp_path / 'a', {'x.txt': 'x'})

    def fail(root, keep_count):
        raise RetentionError(f"Could not read snapshot folder {root}")

    monkeypatch.setattr(local, 'prune', fail)
    report = sync_target(_target(source, backup_root, keep_num=2), 1, '2024-01-01 00:00:00')

    assert report.files_copied == 1
    assert 'Could not read snapshot folder' in report.retention_error


def test_parent_reference_source_stays_under_destination(tmp_path):
    write_tree(tmp_path / 'data', {'f.txt': 'f', 'sub/g.txt': 'g'})
    destination = tmp_path / 'backups' / 'b'
    destination.mkdir(parents=True)

    report = sync_target(_target(tmp_path / 'data' / 'sub' / '..', destination))

    assert report.files_copied == 2
    assert list_files(tmp_path / 'backups') == {'b/data/f.txt', 'b/data/sub/g.txt'}


def test_current_folder_source_keeps_other_backups(tmp_path, backup_root, monkeypatch):
    source = write_tree(tmp_path / 'a', {'x.txt': 'x'})
    (backup_root / 'other').mkdir()
    (backup_root / 'another').mkdir()
    monkeypatch.chdir(source)

    report = sync_target(_target(Path('.'), backup_root, keep_num=2),
                         snapshot_name='2024-01-01 00:00:01')

    assert report.files_copied == 1
    assert sorted(p.name for p in backup_root.iterdir()) == ['a', 'another', 'other']
    assert (backup_root / 'a' / '2024-01-01 00:00:01' / 'x.txt').is_file()


def test_source_without_a_name_is_rejected(backup_root):
    with pytest.raises(ValueError):
        sync_target(_target(Path('/'), backup_root, keep_num=2))
    assert list(backup_root.iterdir()) == []


def test_backend_selection(tmp_path):
    assert isinstance(get_backend(_target(tmp_path, tmp_path)), LocalCopyBackend)
    network = _target(tmp_path, tmp_path, url='www.test.com', password='test')
    assert isinstance(get_backend(network), NetworkBackend)
    with pytest.raises(UnsupportedBackendError):
        get_backend(network).run(network, 1)


class TestBackupManager:

    def _config(self, *targets, **kwargs):
        return BackupConfig(targets=list(targets), **kwargs)

    def test_run_target_result(self, source_tree, backup_root):
        manager = BackupManager(self._config())
        result = manager.run_target(_target(source_tree, backup_root, tag='docs'))

        assert result['status'] == 'completed'
        assert result['target'] == 'docs'
        assert result['files_copied'] == 6
        assert result['errors'] == []

    def test_failed_target_result(self, source_tree, tmp_path):
        manager = BackupManager(self._config())
        result = manager.run_target(_target(source_tree, tmp_path / 'missing'))

        assert result['status'] == 'failed'
        assert result['files_copied'] == 0
        assert 'destination is unavailable' in result['errors'][0]

    def test_network_target_fails(self, source_tree, backup_root):
        manager = BackupManager(self._config())
        result = manager.run_target(_target(source_tree, backup_root, url='www.test.com'))

        assert result['status'] == 'failed'
        assert 'not supported' in result['errors'][0]
        assert list(backup_root.iterdir()) == []

    def test_copy_failures_are_reported(self, tmp_path, backup_root, monkeypatch):
        source = write_tree(tmp_path / 'a', {'x.txt': 'x', 'y.txt': 'y'})

        real_copy2 = shutil.copy2

        def flaky_copy2(src, dst, *args, **kwargs):
            if str(src).endswith('x.txt'):
                raise PermissionError("read-only destination")
            return real_copy2(src, dst, *args, **kwargs)

        monkeypatch.setattr(shutil, 'copy2', flaky_copy2)
        result = BackupManager(self._config()).run_target(_target(source, backup_root))

        assert result['status'] == 'completed'
        assert result['files_copied'] == 1
        assert len(result['failures']) == 1
        assert 'read-only destination' in result['failures'][0]

    def test_run_targets_skips_optional(self, tmp_path, source_tree, backup_root):
        lone = tmp_path / 'lone.txt'
        lone.write_text('lone')
        config = self._config(
            _target(source_tree, backup_root, tag='docs'),
            _target(lone, backup_root, tag='extra', optional=True),
        )
        manager = BackupManager(config)

        results = manager.run_targets()
        assert [r['target'] for r in results] == ['docs']

        results = manager.run_targets('extra')
        assert [r['target'] for r in results] == ['extra']
        assert (backup_root / 'lone.txt').exists()

        assert manager.run_targets('unknown') == []

    def test_targets_share_snapshot(self, tmp_path, backup_root):
        first = write_tree(tmp_path / 'first', {'a.txt': 'a'})
        second = write_tree(tmp_path / 'second', {'b.txt': 'b'})
        config = self._config(
            _target(first, backup_root, keep_num=2),
            _target(second, backup_root, keep_num=2),
        )

        BackupManager(config).run_targets()

        first_snapshots = [p.name for p in (backup_root / 'first').iterdir() if p.is_dir()]
        second_snapshots = [p.name for p in (backup_root / 'second').iterdir() if p.is_dir()]
        assert len(first_snapshots) == 1
        assert first_snapshots == second_snapshots

    def test_restore_directory(self, source_tree, backup_root):
        target = _target(source_tree, backup_root, tag='docs', always_copy=True)
        manager = BackupManager(self._config(target))
        manager.run_target(target)

        (source_tree / 'y.txt').unlink()
        (source_tree / 'src' / 'main.py').write_text('changed')

        result = manager.restore_target(target)

        assert result['status'] == 'completed'
        assert (source_tree / 'y.txt').read_text() == 'hello'
        assert (source_tree / 'src' / 'main.py').read_text() == 'print(1)'

    def test_restore_newest_snapshot(self, tmp_path, backup_root):
        source = write_tree(tmp_path / 'a', {'x.txt': 'one'})
        target = _target(source, backup_root, keep_num=3, always_copy=True)
        manager = BackupManager(self._config(target))

        manager.run_target(target, '2024-01-01 00:00:01')
        (source / 'x.txt').write_text('two')
        manager.run_target(target, '2024-01-01 00:00:02')
        (source / 'x.txt').write_text('three')

        result = manager.restore_target(target)

        assert result['files_copied'] == 1
        assert (source / 'x.txt').read_text() == 'two'
        assert not (tmp_path / '2024-01-01 00:00:02').exists()

    def test_restore_lone_file_snapshot(self, tmp_path, backup_root):
        source = tmp_path / 'report.txt'
        source.write_text('v1')
        target = _target(source, backup_root, keep_num=2)
        manager = BackupManager(self._config(target))
        manager.run_target(target, '2024-01-01 00:00:01')
        source.unlink()

        result = manager.restore_target(target)

        assert result['status'] == 'completed'
        assert source.read_text() == 'v1'

    def test_restore_folder_holding_a_file_of_its_own_name(self, tmp_path, backup_root):
        source = write_tree(tmp_path / 'a', {'a': 'inner'})
        target = _target(source, backup_root, keep_num=2)
        manager = BackupManager(self._config(target))
        manager.run_target(target, '2024-01-01 00:00:01')
        shutil.rmtree(source)

        result = manager.restore_target(target)

        assert result['status'] == 'completed'
        assert source.is_dir()
        assert (source / 'a').read_text() == 'inner'

    def test_restore_without_snapshots(self, tmp_path, backup_root):
        target = _target(tmp_path / 'a', backup_root, keep_num=2)
        result = BackupManager(self._config(target)).restore_target(target)

        assert result['status'] == 'failed'
        assert 'No snapshots' in result['errors'][0]

    def test_summary(self, source_tree, tmp_path, backup_root):
        manager = BackupManager(self._config())
        results = [
            manager.run_target(_target(source_tree, backup_root)),
            manager.run_target(_target(source_tree, tmp_path / 'missing')),
        ]

        summary = manager.get_backup_summary(results)

        assert summary['total_targets'] == 2
        assert summary['successful_targets'] == 1
        assert summary['failed_targets'] == 1
        assert summary['total_files_copied'] == 6
        assert summary['did_backup'] is True
        assert manager.get_backup_summary([])['did_backup'] is False

    def test_daemon_repeats_backups(self, source_tree, backup_root, monkeypatch):
        sleeps = []
        monkeypatch.setattr(backup_manager.time, 'sleep', sleeps.append)
        manager = BackupManager(self._config(_target(source_tree, backup_root)))
        batches = []

        runs = manager.run_daemon(5, on_results=batches.append, max_runs=3)

        assert runs == 3
        assert sleeps == [5, 5]
        assert [batch[0]['files_copied'] for batch in batches] == [6, 0, 0]

    def test_daemon_needs_an_interval(self):
        with pytest.raises(ValueError):
            BackupManager(self._config()).run_daemon(0)
