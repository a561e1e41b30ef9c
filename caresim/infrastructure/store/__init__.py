# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Document store infrastructure.

This package provides the DocumentStore interface and its implementations:
- FirebaseRealtimeStore: Firebase Realtime Database over REST
- InMemoryDocumentStore: nested dict tree for tests and local development
"""

from caresim.infrastructure.store.base import (
    DocumentStore,
    InvalidPathError,
    StoreError,
    StoreUnavailableError,
    children_of,
    normalize_path,
)
from caresim.infrastructure.store.firebase import FirebaseRealtimeStore
from caresim.infrastructure.store.memory import InMemoryDocumentStore
from caresim.infrastructure.store.provider import (
    build_store,
    close_store,
    get_store,
    init_store,
)

__all__ = [
    "DocumentStore",
    "InvalidPathError",
    "StoreError",
    "StoreUnavailableError",
    "children_of",
    "normalize_path",
    "FirebaseRealtimeStore",
    "InMemoryDocumentStore",
    "build_store",
    "close_store",
    "get_store",
    "init_store",
]
