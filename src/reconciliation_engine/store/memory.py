"""In-memory document store for local development and testing.

Replace with the SQL store (or another adapter) for production.
"""

from __future__ import annotations

import copy
import uuid
from typing import Any

from reconciliation_engine.store.base import (
    COLLECTION_NAMES,
    DocumentNotFoundError,
    DocumentStore,
)


class InMemoryCollection:
    """Dict-backed collection. Listing order is insertion order."""

    def __init__(self, name: str, documents: list[dict[str, Any]] | None = None):
        self.name = name
        self._documents: dict[str, dict[str, Any]] = {}
        # Call counters let tests assert on store traffic
        self.add_calls = 0
        self.update_calls = 0
        for doc in documents or []:
            self.seed(doc)

    def seed(self, document: dict[str, Any]) -> str:
        """Insert a document keeping its ``id`` if it has one."""
        doc = copy.deepcopy(document)
        document_id = doc.pop("id", None) or uuid.uuid4().hex
        self._documents[document_id] = doc
        return document_id

    async def list_all(self) -> list[dict[str, Any]]:
        return [self._export(doc_id, doc) for doc_id, doc in self._documents.items()]

    async def get_by_id(self, document_id: str) -> dict[str, Any] | None:
        doc = self._documents.get(document_id)
        return self._export(document_id, doc) if doc is not None else None

    async def add(self, document: dict[str, Any]) -> str:
        self.add_calls += 1
        doc = copy.deepcopy(document)
        doc.pop("id", None)
        document_id = uuid.uuid4().hex
        self._documents[document_id] = doc
        return document_id

    async def update(self, document_id: str, fields: dict[str, Any]) -> None:
        if document_id not in self._documents:
            raise DocumentNotFoundError(self.name, document_id)
        self.update_calls += 1
        changes = copy.deepcopy(fields)
        changes.pop("id", None)
        self._documents[document_id].update(changes)

    async def query(self, filters: dict[str, Any]) -> list[dict[str, Any]]:
        return [
            self._export(doc_id, doc)
            for doc_id, doc in self._documents.items()
            if all(doc.get(key) == value for key, value in filters.items())
        ]

    def __len__(self) -> int:
        return len(self._documents)

    @staticmethod
    def _export(document_id: str, doc: dict[str, Any]) -> dict[str, Any]:
        exported = copy.deepcopy(doc)
        exported["id"] = document_id
        return exported


class InMemoryDocumentStore(DocumentStore):
    """Document store with every collection held in memory."""

    def __init__(self, seed: dict[str, list[dict[str, Any]]] | None = None):
        seed = seed or {}
        unknown = set(seed) - set(COLLECTION_NAMES)
        if unknown:
            raise KeyError(f"Unknown collections: {sorted(unknown)}")
        super().__init__(
            **{name: InMemoryCollection(name, seed.get(name)) for name in COLLECTION_NAMES}
        )
