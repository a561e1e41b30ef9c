# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory document store.

Holds a nested dict tree in process. Used by tests and by local development
(``STORE_BACKEND=memory``), optionally seeded from a JSON export of the
Firebase database.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any

from caresim.infrastructure.store.base import DocumentStore, children_of, normalize_path

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """DocumentStore backed by a nested dict.

    Reads return deep copies so callers can never mutate the stored tree.

    Example:
        >>> store = InMemoryDocumentStore({"lessons": {"1": {"lessonTitle": "Intro"}}})
        >>> await store.read("lessons/1/lessonTitle")
        'Intro'
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        """Initialize the store.

        Args:
            data: Initial tree. Copied, not referenced.
        """
        self._data: dict[str, Any] = copy.deepcopy(data) if data else {}

    @classmethod
    def from_json_file(cls, path: str | Path) -> "InMemoryDocumentStore":
        """Create a store seeded from a JSON export.

        Args:
            path: Path to a JSON file holding the whole database tree.

        Returns:
            Seeded store.
        """
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle)
        logger.info("Seeded in-memory store from %s (%d root keys)", path, len(data))
        return cls(data)

    def _lookup(self, path: str) -> Any:
        node: Any = self._data
        normalized = normalize_path(path)
        if not normalized:
            return node
        for segment in normalized.split("/"):
            node = children_of(node).get(segment)
            if node is None:
                return None
        return node

    async def read(self, path: str) -> Any:
        value = self._lookup(path)
        if value == {}:
            return None
        return copy.deepcopy(value)

    async def keys(self, path: str) -> list[str]:
        return list(children_of(self._lookup(path)).keys())
