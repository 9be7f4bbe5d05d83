"""Sync engine for backup operations."""

from .backup_manager import BackupManager
from .change_detection import should_copy
from .dispatcher import CopyFailure, CopyReport, parallel_copy, serial_copy
from .ignore import is_ignored
from .retention import RetentionError, prune
from .traversal import CopyJob, iter_copy_jobs, snapshot_timestamp

__all__ = [
    "BackupManager",
    "CopyFailure",
    "CopyJob",
    "CopyReport",
    "RetentionError",
    "is_ignored",
    "iter_copy_jobs",
    "parallel_copy",
    "prune",
    "serial_copy",
    "should_copy",
    "snapshot_timestamp",
]
