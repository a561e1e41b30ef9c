# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application-wide document store lifecycle.

Example:
    from caresim.infrastructure.store import init_store, get_store, close_store

    # Initialize at application startup
    await init_store(settings)

    store = get_store()
    lessons = await store.read("lessons")

    # Cleanup at shutdown
    await close_store()
"""

import logging
from typing import TYPE_CHECKING, Optional

from caresim.infrastructure.store.base import DocumentStore, StoreError
from caresim.infrastructure.store.firebase import FirebaseRealtimeStore
from caresim.infrastructure.store.memory import InMemoryDocumentStore

if TYPE_CHECKING:
    from caresim.core.config.settings import Settings

logger = logging.getLogger(__name__)

# Module-level state
_store: Optional[DocumentStore] = None


def build_store(settings: "Settings") -> DocumentStore:
    """Create the DocumentStore selected by settings.

    Args:
        settings: Application settings.

    Returns:
        A new store instance.
    """
    if settings.store.backend == "memory":
        if settings.store.seed_file:
            return InMemoryDocumentStore.from_json_file(settings.store.seed_file)
        return InMemoryDocumentStore()
    return FirebaseRealtimeStore(settings.firebase)


async def init_store(settings: "Settings") -> None:
    """Initialize the global document store.

    This should be called once at application startup.

    Args:
        settings: Application settings containing store configuration.
    """
    global _store

    if _store is not None:
        return
    _store = build_store(settings)
    logger.info("Document store initialized: backend=%s", settings.store.backend)


async def close_store() -> None:
    """Close the global document store.

    This should be called at application shutdown.
    """
    global _store

    if _store is not None:
        await _store.close()
        _store = None


def get_store() -> DocumentStore:
    """Get the global document store.

    Returns:
        The DocumentStore instance.

    Raises:
        StoreError: If the store has not been initialized.
    """
    if _store is None:
        raise StoreError("Document store not initialized. Call init_store() first.")
    return _store
