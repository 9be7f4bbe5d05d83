"""Destination backends."""

from ..config.settings import BackupTarget, DestinationType
from .base import CopyBackend
from .local import LocalCopyBackend, sync_target
from .network import NetworkBackend, UnsupportedBackendError

_BACKENDS = {
    DestinationType.LOCAL: LocalCopyBackend,
    DestinationType.NETWORK: NetworkBackend,
}


def get_backend(target: BackupTarget) -> CopyBackend:
    """Get the backend selected by a target's options."""
    return _BACKENDS[target.destination_type]()


__all__ = [
    "CopyBackend",
    "LocalCopyBackend",
    "NetworkBackend",
    "UnsupportedBackendError",
    "get_backend",
    "sync_target",
]
