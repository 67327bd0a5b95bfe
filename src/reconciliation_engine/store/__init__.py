"""Document store adapters."""

from reconciliation_engine.store.base import (
    COLLECTION_NAMES,
    Collection,
    DocumentNotFoundError,
    DocumentStore,
    EmployeeDirectory,
)
from reconciliation_engine.store.memory import InMemoryCollection, InMemoryDocumentStore
from reconciliation_engine.store.sql import SqlCollection, SqlDocumentStore, UnknownFieldError

__all__ = [
    "COLLECTION_NAMES",
    "Collection",
    "DocumentNotFoundError",
    "DocumentStore",
    "EmployeeDirectory",
    "InMemoryCollection",
    "InMemoryDocumentStore",
    "SqlCollection",
    "SqlDocumentStore",
    "UnknownFieldError",
]
