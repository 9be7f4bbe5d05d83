"""Local filesystem destination."""

import logging
from pathlib import Path
from typing import Optional

from ..config.settings import BackupTarget
from ..sync.dispatcher import CopyReport, parallel_copy, serial_copy
from ..sync.retention import RetentionError, prune
from ..sync.traversal import (
    iter_copy_jobs,
    mirrored_root_name,
    record_source_kind,
    snapshot_root,
    snapshot_timestamp,
)
from .base import CopyBackend

logger = logging.getLogger(__name__)


def sync_target(
    target: BackupTarget,
    threads: int = 1,
    snapshot_name: Optional[str] = None,
    root_name: Optional[str] = None,
    preserve_timestamps: bool = True,
) -> CopyReport:
    """Copy a target's source into its destination folder.

    Args:
        target: Target to back up
        threads: Effective thread count; above 1 a worker pool is used for
            directory sources
        snapshot_name: Snapshot folder for this run, generated when omitted
        root_name: Name of the mirrored root, defaults to the source's name
        preserve_timestamps: Also copy file metadata

    Returns:
        Copy report

    Raises:
        FileNotFoundError: If the destination folder is unavailable
        OSError: If the source cannot be read
        ValueError: If no backup folder name can be derived from the source
    """
    source = Path(target.path)
    destination_root = Path(target.target_path)
    root_name = mirrored_root_name(source, root_name)

    if not destination_root.is_dir():
        raise FileNotFoundError(f"The destination is unavailable: {destination_root}")

    if target.keep_num > 1 and not snapshot_name:
        snapshot_name = snapshot_timestamp()

    jobs = iter_copy_jobs(
        source,
        destination_root,
        keep_num=target.keep_num,
        check_timestamps=target.check_timestamps,
        ignore_files=target.ignore_files,
        ignore_folders=target.ignore_folders,
        snapshot_name=snapshot_name,
        root_name=root_name,
    )

    if threads > 1 and source.is_dir():
        logger.debug(f"Copying {source} with {threads} threads")
        report = parallel_copy(jobs, threads, preserve_timestamps)
    else:
        report = serial_copy(jobs, preserve_timestamps)

    if target.keep_num > 1:
        root = snapshot_root(destination_root, root_name)
        try:
            if root.is_dir():
                record_source_kind(root, source)
        except OSError as e:
            logger.warning(f"Could not record the source kind in {root}: {e}")
        try:
            prune(root, target.keep_num)
        except RetentionError as e:
            # Copies already made still count
            logger.error(str(e))
            report.retention_error = str(e)

    return report


class LocalCopyBackend(CopyBackend):
    """Copies files between locally mounted folders."""

    name = "local"

    def run(self, target, threads, snapshot_name=None, root_name=None,
            preserve_timestamps=True) -> CopyReport:
        return sync_target(target, threads, snapshot_name, root_name, preserve_timestamps)
