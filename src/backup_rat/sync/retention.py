"""Snapshot retention: keep only the newest snapshots of a target."""

import logging
import shutil
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)


class RetentionError(OSError):
    """Raised when the snapshot folder cannot be scanned."""


def prune(snapshot_root: Path, keep_count: int) -> List[str]:
    """Delete the oldest snapshots beyond ``keep_count``.

    Only sub-folders are snapshots. Their names are fixed-format timestamps,
    so the lexicographically smallest name is the oldest snapshot.

    Args:
        snapshot_root: Folder holding one sub-folder per snapshot
        keep_count: Number of snapshots to keep

    Returns:
        Names of the snapshots that were removed

    Raises:
        RetentionError: If the snapshot folder cannot be read
    """
    snapshot_root = Path(snapshot_root)
    if not snapshot_root.exists() or snapshot_root.is_file():
        return []

    try:
        names = sorted(entry.name for entry in snapshot_root.iterdir() if entry.is_dir())
    except OSError as e:
        raise RetentionError(f"Could not read snapshot folder {snapshot_root}: {e}") from e

    if len(names) < 2:
        return []

    removed = []
    while len(names) > keep_count:
        oldest = names.pop(0)
        try:
            shutil.rmtree(snapshot_root / oldest)
        except OSError as e:
            # An extra snapshot is left behind rather than failing the run
            logger.warning(f"Could not remove snapshot {snapshot_root / oldest}: {e}")
            continue
        logger.info(f"Removed old snapshot {snapshot_root / oldest}")
        removed.append(oldest)

    return removed
