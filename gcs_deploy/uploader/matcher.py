"""
Glob matching for deploy sources.

Resolves an include pattern and a list of exclude patterns into the ordered
list of local paths a run will consider. Patterns support ``*``, ``?``,
``[...]`` character classes and a recursive ``**`` segment matching any
number of directories (including none).

Example:
    >>> resolve_matches("build/**", ["build/**/*.map"])
    ['build', 'build/app.js', 'build/img', 'build/img/logo.png']
"""

import glob
import os
from typing import Iterable, List, Sequence, Set

from gcs_deploy.utils.errors import MatchError
from gcs_deploy.utils.logging import get_logger, log_function_call

logger = get_logger(__name__)


def _validate_pattern(pattern: str) -> None:
    """
    Reject patterns glob would silently treat as literals.

    Raises:
        MatchError: If the pattern is empty or has an unterminated ``[``
    """
    if not pattern or not pattern.strip():
        raise MatchError("Glob pattern must not be empty", pattern=pattern)

    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "[":
            j = i + 1
            # A leading ! or ] belongs to the class
            if j < len(pattern) and pattern[j] == "!":
                j += 1
            if j < len(pattern) and pattern[j] == "]":
                j += 1
            while j < len(pattern) and pattern[j] != "]":
                if pattern[j] == "/":
                    break
                j += 1
            if j >= len(pattern) or pattern[j] != "]":
                raise MatchError(
                    f"Invalid glob pattern {pattern!r}: unterminated character class",
                    pattern=pattern,
                )
            i = j
        i += 1


def _normalize(path: str) -> str:
    return os.path.normpath(path)


def expand(pattern: str) -> List[str]:
    """
    Expand a single glob pattern.

    Results are sorted, stripped of trailing separators and de-duplicated so
    a run is reproducible across filesystems.

    Raises:
        MatchError: If the pattern is invalid or expansion fails
    """
    _validate_pattern(pattern)

    try:
        # Dotfiles and dot-directories match like any other name
        paths = glob.glob(pattern, recursive=True, include_hidden=True)
    except (OSError, ValueError) as e:
        raise MatchError(f"Could not expand {pattern!r}: {e}", pattern=pattern) from e

    expanded: List[str] = []
    seen: Set[str] = set()
    for path in sorted(paths):
        # "dir/**" yields "dir/" for the directory itself
        if len(path) > 1:
            path = path.rstrip("/" + os.sep) or path
        key = _normalize(path)
        if key in seen:
            continue
        seen.add(key)
        expanded.append(path)
    return expanded


def _exclusion_set(patterns: Iterable[str]) -> Set[str]:
    excluded: Set[str] = set()
    for pattern in patterns:
        excluded.update(_normalize(path) for path in expand(pattern))
    return excluded


@log_function_call
def resolve_matches(include: str, excludes: Sequence[str] = ()) -> List[str]:
    """
    Resolve include/exclude patterns into the ordered candidate list.

    Args:
        include: Glob pattern selecting candidate paths
        excludes: Glob patterns whose matches are dropped

    Returns:
        Paths matched by ``include`` and by none of ``excludes``, in include
        expansion order, each exactly once. May contain directories.

    Raises:
        MatchError: If any pattern is invalid
    """
    matches = expand(include)
    if not excludes:
        return matches

    excluded = _exclusion_set(excludes)
    included = [path for path in matches if _normalize(path) not in excluded]

    logger.debug(
        f"Matched {len(matches)} paths, excluded {len(matches) - len(included)}"
    )
    return included
