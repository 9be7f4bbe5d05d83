"""Configuration settings and models for the backup application."""

import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

import click
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

APP_NAME = "backup-rat"


class DestinationType(str, Enum):
    """Supported destination backends."""
    LOCAL = "local"
    NETWORK = "network"


def default_runtime_folder() -> Path:
    """Folder holding log files and other runtime state."""
    return Path.home() / ".backup_rat"


def get_config_folder() -> Path:
    """Get the per-user configuration folder."""
    return Path(click.get_app_dir(APP_NAME))


def default_config_path() -> Path:
    return get_config_folder() / "config.yaml"


class BackupTarget(BaseModel):
    """A source/destination pair plus its backup policy."""
    tag: Optional[str] = None
    path: Path
    target_path: Path
    ignore_files: List[str] = Field(default_factory=list)
    ignore_folders: List[str] = Field(default_factory=list)
    optional: bool = False
    keep_num: int = 1
    always_copy: bool = False
    threads: Optional[int] = None  # Overrides the global thread count

    # Network backend (not implemented yet)
    url: Optional[str] = None
    password: Optional[str] = None

    model_config = {"frozen": True}

    @field_validator('keep_num')
    @classmethod
    def validate_keep_num(cls, v):
        if v < 1:
            raise ValueError('keep_num must be at least 1')
        return v

    @property
    def destination_type(self) -> DestinationType:
        return DestinationType.NETWORK if self.url else DestinationType.LOCAL

    @property
    def check_timestamps(self) -> bool:
        """Whether unchanged files are skipped.

        Snapshot targets (keep_num > 1) always write a fresh copy.
        """
        return self.keep_num == 1 and not self.always_copy

    @property
    def display_name(self) -> str:
        return self.tag if self.tag else str(self.path)

    def effective_threads(self, config: "BackupConfig") -> int:
        """Get the thread count for this target.

        Args:
            config: Global configuration providing the default

        Returns:
            Thread count, at least 1
        """
        if self.threads is not None:
            threads = self.threads
        elif config.multi_threaded:
            threads = config.threads
        else:
            threads = 1
        return max(1, threads)


class BackupConfig(BaseModel):
    """Main configuration class."""
    targets: List[BackupTarget] = Field(default_factory=list, alias="target")
    multi_threaded: bool = True
    threads: int = 4
    daemon_interval: int = 0  # seconds, 0 disables daemon mode
    color: bool = True
    fancy_text: bool = True
    verbose: bool = False
    runtime_folder: Path = Field(default_factory=default_runtime_folder)
    preserve_timestamps: bool = True

    model_config = {"populate_by_name": True}

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "BackupConfig":
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    def to_yaml(self, config_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(mode='json', by_alias=True, exclude_none=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f, default_flow_style=False, indent=2, sort_keys=False)

    def get_targets_by_tag(self, tag: str) -> List[BackupTarget]:
        """Get every target carrying the given tag."""
        return [target for target in self.targets if target.tag == tag]

    def get_default_targets(self) -> List[BackupTarget]:
        """Get the targets backed up when no tag is given."""
        return [target for target in self.targets if not target.optional]


def load_config(config_path: Union[str, Path]) -> BackupConfig:
    """Load the config file, falling back to the defaults.

    A missing or invalid file yields the default configuration.

    Args:
        config_path: Path to the YAML config file

    Returns:
        Loaded configuration
    """
    try:
        return BackupConfig.from_yaml(config_path)
    except FileNotFoundError:
        logger.warning(f"Configuration file not found: {config_path}, using defaults")
    except (yaml.YAMLError, ValidationError, TypeError) as e:
        logger.warning(f"Invalid configuration in {config_path}, using defaults: {e}")
    return BackupConfig()
