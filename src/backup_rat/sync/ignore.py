"""Ignore rules for files and folders.

A pattern is either a literal name, compared for equality, or a regular
expression prefixed with ``r#`` that may match anywhere in the candidate.
File patterns are tested against the file's base name; folder patterns
against the folder's path relative to the source root.
"""

import logging
import re
from functools import lru_cache
from pathlib import PurePath
from typing import Optional, Pattern, Sequence, Union

logger = logging.getLogger(__name__)

REGEX_MARKER = "r#"


@lru_cache(maxsize=256)
def _compile(expression: str) -> Optional[Pattern]:
    try:
        return re.compile(expression)
    except re.error as e:
        logger.debug(f"Invalid ignore pattern {expression!r}: {e}")
        return None


def matches_pattern(candidate: str, pattern: str) -> bool:
    """Check a single pattern against a candidate string.

    An invalid regular expression never matches.
    """
    if pattern.startswith(REGEX_MARKER):
        regex = _compile(pattern[len(REGEX_MARKER):])
        return regex is not None and regex.search(candidate) is not None
    return candidate == pattern


def is_ignored(
    path: Union[str, PurePath],
    is_directory: bool,
    file_patterns: Sequence[str],
    dir_patterns: Sequence[str],
) -> bool:
    """Check if a file or folder is ignored.

    Args:
        path: File path, or folder path relative to the source root
        is_directory: Whether ``path`` names a folder
        file_patterns: Patterns for file base names
        dir_patterns: Patterns for root-relative folder paths

    Returns:
        True if any pattern matches
    """
    if is_directory:
        candidate = PurePath(path).as_posix()
        patterns = dir_patterns
    else:
        candidate = PurePath(path).name
        patterns = file_patterns

    return any(matches_pattern(candidate, pattern) for pattern in patterns)
