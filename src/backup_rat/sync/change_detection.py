"""Timestamp based change detection."""

import os
from pathlib import Path
from typing import Optional


def should_copy(
    source_stat: os.stat_result,
    destination_stat: Optional[os.stat_result],
    check_timestamps: bool,
) -> bool:
    """Decide whether a file needs copying.

    Args:
        source_stat: Metadata of the source file
        destination_stat: Metadata of the existing copy, None if missing
        check_timestamps: Whether unchanged files are skipped

    Returns:
        True unless the existing copy is at least as new as the source
    """
    if not check_timestamps or destination_stat is None:
        return True
    return source_stat.st_mtime_ns > destination_stat.st_mtime_ns


def stat_if_exists(path: Path) -> Optional[os.stat_result]:
    """Stat a path, returning None when it cannot be read."""
    try:
        return path.stat()
    except OSError:
        return None
