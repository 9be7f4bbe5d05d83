"""Main backup manager orchestrating the backup process."""

import logging
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..config.settings import BackupConfig, BackupTarget
from .. import destinations
from ..utils.logging import ContextualLogger, TimedOperation
from .traversal import mirrored_root_name, recorded_source_kind, snapshot_root, snapshot_timestamp

# Module logger
logger = logging.getLogger(__name__)


class BackupManager:
    """Main backup manager that runs targets and collects their results."""

    def __init__(self, config: BackupConfig):
        """Initialize backup manager.

        Args:
            config: Backup configuration
        """
        self.config = config

    def _new_results(self, target: BackupTarget, operation: str) -> Dict[str, Any]:
        return {
            'target': target.display_name,
            'operation': operation,
            'status': 'started',
            'files_copied': 0,
            'bytes_copied': 0,
            'errors': [],
            'failures': [],
            'duration': 0.0,
        }

    def _run(self, target: BackupTarget, operation: str, snapshot_name: Optional[str] = None,
             root_name: Optional[str] = None) -> Dict[str, Any]:
        """Run one target through its backend and convert errors into results."""
        results = self._new_results(target, operation)
        target_logger = ContextualLogger(logger, {'target': target.display_name})
        threads = target.effective_threads(self.config)

        timer = TimedOperation(target_logger, operation)
        try:
            with timer:
                report = destinations.get_backend(target).run(
                    target,
                    threads,
                    snapshot_name=snapshot_name,
                    root_name=root_name,
                    preserve_timestamps=self.config.preserve_timestamps,
                )
        except Exception as e:
            results['status'] = 'failed'
            results['errors'].append(str(e))
        else:
            results['status'] = 'completed'
            results['files_copied'] = report.files_copied
            results['bytes_copied'] = report.bytes_copied
            results['failures'] = [
                f"{failure.job.source}: {failure.error}" for failure in report.failures
            ]
            if report.retention_error:
                results['errors'].append(report.retention_error)
            target_logger.info(
                f"{report.files_copied} files copied, {len(report.failures)} failed"
            )
        results['duration'] = timer.duration
        return results

    def run_target(self, target: BackupTarget, snapshot_name: Optional[str] = None) -> Dict[str, Any]:
        """Back up a single target.

        Args:
            target: Target to back up
            snapshot_name: Snapshot folder name, generated when omitted

        Returns:
            Dictionary with backup results
        """
        if snapshot_name is None and target.keep_num > 1:
            snapshot_name = snapshot_timestamp()
        return self._run(target, 'backup', snapshot_name=snapshot_name)

    def run_targets(self, tag: Optional[str] = None) -> List[Dict[str, Any]]:
        """Back up every non-optional target, or every target with ``tag``.

        All targets of one run share a single snapshot timestamp.

        Returns:
            List of target results
        """
        if tag is None:
            targets = self.config.get_default_targets()
        else:
            targets = self.config.get_targets_by_tag(tag)
        logger.info(f"Running {len(targets)} backup targets")

        snapshot_name = snapshot_timestamp()
        return [self.run_target(target, snapshot_name) for target in targets]

    def restore_target(self, target: BackupTarget) -> Dict[str, Any]:
        """Copy a target's backup back to where its source lives.

        Snapshot targets restore their newest snapshot.

        Args:
            target: Target to restore

        Returns:
            Dictionary with restore results
        """
        source = Path(os.path.abspath(target.path))
        results = self._new_results(target, 'restore')
        try:
            name = mirrored_root_name(source)
        except ValueError as e:
            results['status'] = 'failed'
            results['errors'].append(str(e))
            return results
        backup_root = snapshot_root(target.target_path, name)

        if target.keep_num > 1:
            snapshots = sorted(p for p in backup_root.iterdir() if p.is_dir()) if backup_root.is_dir() else []
            if not snapshots:
                results['status'] = 'failed'
                results['errors'].append(f"No snapshots found in {backup_root}")
                return results
            kind = recorded_source_kind(backup_root)
            if kind is None:
                kind = 'file' if source.is_file() else 'folder'
            backup_root = snapshots[-1]
            if kind == 'file':
                backup_root = backup_root / name

        restore = target.model_copy(update={
            'path': backup_root,
            'target_path': source.parent,
            'keep_num': 1,
        })
        return self._run(restore, 'restore', root_name=name)

    def run_daemon(self, interval: float,
                   on_results: Optional[Callable[[List[Dict[str, Any]]], None]] = None,
                   max_runs: Optional[int] = None) -> int:
        """Back up the non-optional targets every ``interval`` seconds.

        Args:
            interval: Seconds to wait between runs
            on_results: Called with the results of each run
            max_runs: Stop after this many runs, never when omitted

        Returns:
            Number of runs made
        """
        if interval <= 0:
            raise ValueError("daemon_interval must be a positive number of seconds")

        runs = 0
        while max_runs is None or runs < max_runs:
            if runs:
                time.sleep(interval)
            results = self.run_targets()
            runs += 1
            if on_results:
                on_results(results)
        return runs

    def get_backup_summary(self, results: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Generate summary of backup results.

        Args:
            results: List of target results

        Returns:
            Summary dictionary
        """
        successful = len([r for r in results if r.get('status') == 'completed'])
        failed = len([r for r in results if r.get('status') == 'failed'])

        return {
            'total_targets': len(results),
            'successful_targets': successful,
            'failed_targets': failed,
            'total_files_copied': sum(r.get('files_copied', 0) for r in results),
            'total_bytes_copied': sum(r.get('bytes_copied', 0) for r in results),
            'total_errors': sum(len(r.get('errors', [])) for r in results),
            'total_failures': sum(len(r.get('failures', [])) for r in results),
            'did_backup': successful > 0,
            'backup_time': datetime.now().isoformat(),
        }
