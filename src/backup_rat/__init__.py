"""
Backup Rat

A versatile backup program: copies files and folders to backup locations,
skipping unchanged files and keeping a bounded number of timestamped
snapshots.
"""

__version__ = "0.6.0"
__author__ = "System.rat"
__description__ = "A versatile backup program"

from .config.settings import BackupConfig, BackupTarget
from .sync.backup_manager import BackupManager

__all__ = ["BackupConfig", "BackupTarget", "BackupManager"]
