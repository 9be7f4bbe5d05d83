"""Utility functions and helpers."""

from .file_utils import FileHelper
from .logging import setup_logging

__all__ = ["setup_logging", "FileHelper"]
