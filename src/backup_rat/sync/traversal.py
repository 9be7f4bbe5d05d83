"""Source tree enumeration.

The walk is iterative and breadth-first over an explicit work list, so
deeply nested trees cannot exhaust the call stack. Folders are expanded one
level at a time as they are popped, and the destination folders are created
on the way down.
"""

import logging
import os
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Deque, Iterator, Optional, Sequence, Tuple

from ..utils.file_utils import FileHelper
from .change_detection import should_copy, stat_if_exists
from .ignore import is_ignored

logger = logging.getLogger(__name__)

SNAPSHOT_FORMAT = "%Y-%m-%d %H:%M:%S"

# Kept beside the snapshots; records whether they hold a file or a folder
SOURCE_KIND_NAME = ".source-kind"


@dataclass(frozen=True)
class CopyJob:
    """A single file awaiting copy."""
    source: Path
    destination: Path


def snapshot_timestamp(now: Optional[datetime] = None) -> str:
    """Name of the snapshot folder for a run started at ``now`` (UTC)."""
    now = now or datetime.now(timezone.utc)
    return now.strftime(SNAPSHOT_FORMAT)


def mirrored_root_name(source: Path, root_name: Optional[str] = None) -> str:
    """Name of the folder mirroring ``source`` under the destination root.

    The source is normalised first, so `.` and `..` components name the
    folder they refer to.

    Raises:
        ValueError: If the name is empty or would leave the destination root
    """
    name = root_name or Path(os.path.abspath(source)).name
    if name in ("", os.curdir, os.pardir) or "/" in name or os.sep in name:
        raise ValueError(f"Cannot derive a backup folder name from {source}")
    return name


def record_source_kind(root: Path, source: Path) -> None:
    """Note in a snapshot folder whether ``source`` is a file or a folder."""
    kind = "folder" if Path(source).is_dir() else "file"
    (Path(root) / SOURCE_KIND_NAME).write_text(kind)


def recorded_source_kind(root: Path) -> Optional[str]:
    try:
        return (Path(root) / SOURCE_KIND_NAME).read_text().strip()
    except FileNotFoundError:
        return None


def snapshot_root(destination_root: Path, root_name: str) -> Path:
    """Folder holding every snapshot of a source."""
    return Path(destination_root) / root_name


def mapped_root(destination_root: Path, root_name: str, keep_num: int,
                snapshot_name: Optional[str]) -> Path:
    """Destination folder that mirrors the source root for this run."""
    root = snapshot_root(destination_root, root_name)
    if keep_num > 1:
        if not snapshot_name:
            raise ValueError("A snapshot name is required when keep_num > 1")
        root = root / snapshot_name
    return root


def file_destination(source: Path, destination_root: Path, root_name: str,
                     keep_num: int, snapshot_name: Optional[str]) -> Path:
    """Destination of a lone source file.

    Snapshot runs place the file inside ``<root_name>/<snapshot>`` so that
    retention works on the same folder as for a directory source.
    """
    if keep_num > 1:
        return mapped_root(destination_root, root_name, keep_num, snapshot_name) / root_name
    return Path(destination_root) / root_name


def iter_copy_jobs(
    source: Path,
    destination_root: Path,
    *,
    keep_num: int = 1,
    check_timestamps: bool = True,
    ignore_files: Sequence[str] = (),
    ignore_folders: Sequence[str] = (),
    snapshot_name: Optional[str] = None,
    root_name: Optional[str] = None,
) -> Iterator[CopyJob]:
    """Enumerate the files that need copying.

    Ignore rules are applied first, then the timestamp check. Destination
    folders for directories that are not ignored are created as the walk
    reaches them.

    Args:
        source: Source file or directory
        destination_root: Existing folder receiving the backup
        keep_num: Number of snapshots kept; above 1 a snapshot folder is used
        check_timestamps: Skip files whose copy is at least as new
        ignore_files: Patterns for file base names
        ignore_folders: Patterns for root-relative folder paths
        snapshot_name: Snapshot folder name for this run
        root_name: Name of the mirrored root, defaults to the source's name

    Yields:
        Copy jobs in traversal order

    Raises:
        OSError: If the source root cannot be read
        ValueError: If no backup folder name can be derived from the source
    """
    source = Path(source)
    root_name = mirrored_root_name(source, root_name)
    source_stat = source.stat()

    if not source.is_dir():
        if is_ignored(source, False, ignore_files, ignore_folders):
            logger.debug(f"Ignoring {source}")
            return
        destination = file_destination(source, destination_root, root_name, keep_num, snapshot_name)
        if should_copy(source_stat, stat_if_exists(destination), check_timestamps):
            destination.parent.mkdir(parents=True, exist_ok=True)
            yield CopyJob(source, destination)
        return

    root = mapped_root(destination_root, root_name, keep_num, snapshot_name)

    work: Deque[Tuple[os.DirEntry, Path]] = deque()
    with os.scandir(source) as entries:
        for entry in entries:
            work.append((entry, root / entry.name))

    root.mkdir(parents=True, exist_ok=True)

    while work:
        entry, destination = work.popleft()
        entry_path = Path(entry.path)
        try:
            is_dir = entry.is_dir()
        except OSError as e:
            logger.debug(f"Skipping unreadable entry {entry_path}: {e}")
            continue

        if is_dir:
            relative = FileHelper.get_relative_path(entry_path, source)
            if is_ignored(relative, True, ignore_files, ignore_folders):
                logger.debug(f"Ignoring folder {relative}")
                continue
            try:
                destination.mkdir(exist_ok=True)
                with os.scandir(entry_path) as children:
                    for child in children:
                        work.append((child, destination / child.name))
            except OSError as e:
                logger.debug(f"Skipping folder {entry_path}: {e}")
            continue

        if is_ignored(entry_path, False, ignore_files, ignore_folders):
            logger.debug(f"Ignoring {entry_path}")
            continue
        try:
            entry_stat = entry.stat()
        except OSError as e:
            logger.debug(f"Skipping unreadable file {entry_path}: {e}")
            continue
        if should_copy(entry_stat, stat_if_exists(destination), check_timestamps):
            yield CopyJob(entry_path, destination)
