"""File utility functions."""

from pathlib import Path, PurePosixPath
from typing import Union


class FileHelper:
    """Helper class for file operations."""

    @staticmethod
    def format_file_size(size_bytes: Union[int, float]) -> str:
        """Format file size in human readable format.

        Args:
            size_bytes: Size in bytes

        Returns:
            Formatted size string
        """
        if size_bytes == 0:
            return "0 B"

        size_names = ["B", "KB", "MB", "GB", "TB", "PB"]
        i = 0

        while size_bytes >= 1024 and i < len(size_names) - 1:
            size_bytes /= 1024.0
            i += 1

        return f"{size_bytes:.1f} {size_names[i]}"

    @staticmethod
    def get_relative_path(file_path: Path, base_path: Path) -> str:
        """Get relative path from base path, with '/' separators.

        Args:
            file_path: Full file path
            base_path: Base path to calculate relative from

        Returns:
            Relative path as string
        """
        try:
            relative = Path(file_path).relative_to(base_path)
        except ValueError:
            # If paths are not related, return the full path
            return str(file_path)
        return str(PurePosixPath(*relative.parts))
