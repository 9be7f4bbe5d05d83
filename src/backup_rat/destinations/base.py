"""Backend interface shared by every destination type."""

from abc import ABC, abstractmethod
from typing import Optional

from ..config.settings import BackupTarget
from ..sync.dispatcher import CopyReport


class CopyBackend(ABC):
    """Copies a target's source to its destination."""

    name = "base"

    @abstractmethod
    def run(
        self,
        target: BackupTarget,
        threads: int,
        snapshot_name: Optional[str] = None,
        root_name: Optional[str] = None,
        preserve_timestamps: bool = True,
    ) -> CopyReport:
        """Back up one target.

        Args:
            target: Target to back up
            threads: Effective thread count, 1 for serial copying
            snapshot_name: Snapshot folder name shared by the whole run
            root_name: Name of the mirrored root, defaults to the source's name
            preserve_timestamps: Also copy file metadata

        Returns:
            Copy report for the target
        """
