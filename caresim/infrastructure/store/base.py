# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Document store interface.

The application reads all of its data from a hierarchical key-path store
(Firebase Realtime Database in production). Aggregation code depends only on
the DocumentStore interface defined here, so an in-memory store can stand in
for the real database in tests and local development.

Paths are slash-separated keys, e.g. ``users/abc123/lmsAssessments``.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Optional

# Characters Firebase does not allow in keys
_INVALID_KEY_CHARS = re.compile(r"[.$#\[\]]")


class StoreError(Exception):
    """Exception raised for document store failures.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying error, if any.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the store error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class StoreUnavailableError(StoreError):
    """Raised when a read fails at the infrastructure level.

    Never converted into empty data: callers either propagate it or exclude
    the affected record explicitly.
    """

    pass


class InvalidPathError(StoreError, ValueError):
    """Raised when a key path contains characters the store rejects."""

    pass


def normalize_path(path: str) -> str:
    """Normalize a key path.

    Strips leading/trailing slashes and collapses empty segments.

    Args:
        path: Slash-separated key path. An empty path addresses the root.

    Returns:
        Normalized path without leading or trailing slashes.

    Raises:
        InvalidPathError: If any segment contains a forbidden character.
    """
    segments = [segment for segment in path.split("/") if segment]
    for segment in segments:
        if _INVALID_KEY_CHARS.search(segment):
            raise InvalidPathError(f"Invalid key in path {path!r}: {segment!r}")
    return "/".join(segments)


def children_of(value: Any) -> dict[str, Any]:
    """Return the first-level children of a stored value keyed by name.

    Firebase returns objects whose keys are small consecutive integers as
    JSON arrays with null holes (``lessons/1..6`` arrives as
    ``[null, {...}, ...]``). This flattens both shapes into a mapping and
    drops null entries.

    Args:
        value: A value returned by DocumentStore.read().

    Returns:
        Mapping of child key to child value. Empty for scalars and None.
    """
    if isinstance(value, dict):
        return {str(key): child for key, child in value.items() if child is not None}
    if isinstance(value, list):
        return {str(index): child for index, child in enumerate(value) if child is not None}
    return {}


class DocumentStore(ABC):
    """Read interface over a hierarchical key-path store.

    Every read is a point-in-time snapshot of one path; no consistency is
    guaranteed across separate reads.
    """

    @abstractmethod
    async def read(self, path: str) -> Any:
        """Read the value stored at a path.

        Args:
            path: Slash-separated key path.

        Returns:
            The nested value (mapping, list or scalar), or None if absent.

        Raises:
            StoreUnavailableError: If the store cannot be reached.
        """

    @abstractmethod
    async def keys(self, path: str) -> list[str]:
        """List the first-level child names under a path.

        Args:
            path: Slash-separated key path.

        Returns:
            Child names, empty if the path is absent or holds a scalar.

        Raises:
            StoreUnavailableError: If the store cannot be reached.
        """

    async def close(self) -> None:
        """Release any resources held by the store."""
        return None
