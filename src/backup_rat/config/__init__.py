"""Configuration management for the backup application."""

from .settings import BackupConfig, BackupTarget, DestinationType, load_config

__all__ = ["BackupConfig", "BackupTarget", "DestinationType", "load_config"]
