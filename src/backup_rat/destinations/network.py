"""Network destination.

Selected by a target's ``url`` option. Transfers are not implemented; running
the backend raises ``UnsupportedBackendError`` instead of skipping the target.
"""

from .base import CopyBackend


class UnsupportedBackendError(NotImplementedError):
    """Raised when a target selects a backend that cannot run."""


class NetworkBackend(CopyBackend):
    """Backs up to a remote server (not yet supported)."""

    name = "network"

    def run(self, target, threads, snapshot_name=None, root_name=None,
            preserve_timestamps=True):
        raise UnsupportedBackendError(
            f"Network targets are not supported yet ({target.url})"
        )
