"""Copy execution: serially on the calling thread or through a worker pool.

Copies are best effort. A file that cannot be written is not counted and is
recorded as a ``CopyFailure``; it never aborts the run.
"""

import logging
import queue
import shutil
import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union

from .traversal import CopyJob

logger = logging.getLogger(__name__)


@dataclass
class CopyFailure:
    """A job whose copy failed."""
    job: CopyJob
    error: str


@dataclass
class CopyReport:
    """Outcome of copying a batch of jobs."""
    files_copied: int = 0
    bytes_copied: int = 0
    failures: List[CopyFailure] = field(default_factory=list)
    retention_error: Optional[str] = None

    def merge(self, other: "CopyReport") -> None:
        self.files_copied += other.files_copied
        self.bytes_copied += other.bytes_copied
        self.failures.extend(other.failures)


@dataclass(frozen=True)
class CopyCommand:
    job: CopyJob


class Terminate:
    """Tells a worker to stop."""


TERMINATE = Terminate()

Command = Union[CopyCommand, Terminate]


def copy_file(job: CopyJob, preserve_timestamps: bool = True) -> int:
    """Copy one file, creating its destination folder first.

    Args:
        job: File to copy
        preserve_timestamps: Also copy the file's metadata (mtime, mode)

    Returns:
        Number of bytes copied

    Raises:
        OSError: If the copy fails
    """
    job.destination.parent.mkdir(parents=True, exist_ok=True)
    if preserve_timestamps:
        shutil.copy2(job.source, job.destination)
    else:
        shutil.copyfile(job.source, job.destination)
    return job.destination.stat().st_size


def _attempt_copy(job: CopyJob, report: CopyReport, preserve_timestamps: bool) -> None:
    try:
        size = copy_file(job, preserve_timestamps)
    except OSError as e:
        logger.debug(f"Failed to copy {job.source} -> {job.destination}: {e}")
        report.failures.append(CopyFailure(job, str(e)))
        return
    report.files_copied += 1
    report.bytes_copied += size


def serial_copy(jobs: Iterable[CopyJob], preserve_timestamps: bool = True) -> CopyReport:
    """Copy every job on the calling thread, in traversal order."""
    report = CopyReport()
    for job in jobs:
        _attempt_copy(job, report, preserve_timestamps)
    return report


class CopyWorker(threading.Thread):
    """Long-lived worker consuming copy commands from a shared queue."""

    def __init__(self, commands: "queue.Queue[Command]", preserve_timestamps: bool = True,
                 name: Optional[str] = None):
        super().__init__(name=name, daemon=True)
        self.commands = commands
        self.preserve_timestamps = preserve_timestamps
        self.report = CopyReport()

    def run(self):
        while True:
            command = self.commands.get()
            try:
                if isinstance(command, Terminate):
                    break
                _attempt_copy(command.job, self.report, self.preserve_timestamps)
            finally:
                self.commands.task_done()


def parallel_copy(jobs: Iterable[CopyJob], worker_count: int,
                  preserve_timestamps: bool = True) -> CopyReport:
    """Copy jobs with a pool of ``worker_count - 1`` worker threads.

    The calling thread enumerates ``jobs`` and enqueues them, then sends one
    terminate command per worker and waits for all of them. It never copies
    anything itself. The queue is unbounded, so enumeration never blocks on
    slow workers.

    Args:
        jobs: Copy jobs, typically a lazy traversal
        worker_count: Total thread count including the calling thread
        preserve_timestamps: Also copy file metadata

    Returns:
        Sum of every worker's report
    """
    if worker_count < 2:
        raise ValueError("parallel_copy needs a worker_count of at least 2")

    commands: "queue.Queue[Command]" = queue.Queue()
    workers = [
        CopyWorker(commands, preserve_timestamps, name=f"copy-worker-{i}")
        for i in range(1, worker_count)
    ]
    for worker in workers:
        worker.start()

    queued = 0
    try:
        for job in jobs:
            commands.put(CopyCommand(job))
            queued += 1
    finally:
        # Workers must always be released, even when enumeration fails
        for _ in workers:
            commands.put(TERMINATE)
        for worker in workers:
            worker.join()

    report = CopyReport()
    for worker in workers:
        report.merge(worker.report)
    logger.debug(f"{len(workers)} workers copied {report.files_copied} of {queued} files")
    return report
