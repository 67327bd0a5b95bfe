"""Document store interface.

The engine talks to persistence only through per-collection operations:
list, get, add, update and equality query. Documents are plain dicts
keyed by field name, with dates kept as text the way they were written.
"""

from __future__ import annotations

from typing import Any, Protocol

from reconciliation_engine.domain.types import Employee, RateEntry, Site

COLLECTION_NAMES = (
    "employees",
    "sites",
    "rate_entries",
    "timesheets",
    "invoices",
    "payroll",
    "reminders",
)


class DocumentNotFoundError(Exception):
    """Raised when updating a document that does not exist."""

    def __init__(self, collection: str, document_id: str):
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"No document {document_id} in collection {collection}")


class Collection(Protocol):
    """Protocol for a single document collection.

    Implementations must list documents in a stable natural order
    (insertion order) and must return copies, never live state.
    """

    name: str

    async def list_all(self) -> list[dict[str, Any]]:
        """Return every document, each including its ``id``."""
        ...

    async def get_by_id(self, document_id: str) -> dict[str, Any] | None:
        """Return one document or None."""
        ...

    async def add(self, document: dict[str, Any]) -> str:
        """Insert a document (without id) and return its new id."""
        ...

    async def update(self, document_id: str, fields: dict[str, Any]) -> None:
        """Apply a partial update.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        ...

    async def query(self, filters: dict[str, Any]) -> list[dict[str, Any]]:
        """Return documents whose fields equal every filter value."""
        ...


class DocumentStore:
    """The set of collections the engine reads and writes."""

    def __init__(
        self,
        *,
        employees: Collection,
        sites: Collection,
        rate_entries: Collection,
        timesheets: Collection,
        invoices: Collection,
        payroll: Collection,
        reminders: Collection,
    ):
        self.employees = employees
        self.sites = sites
        self.rate_entries = rate_entries
        self.timesheets = timesheets
        self.invoices = invoices
        self.payroll = payroll
        self.reminders = reminders

    async def ping(self) -> bool:
        """Check the backing store is reachable."""
        return True


class EmployeeDirectory:
    """Read-only lookups of employees, sites and pay rates."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get_employee(self, employee_id: str) -> Employee | None:
        """Find an employee by document id, then by linked user id."""
        doc = await self.store.employees.get_by_id(employee_id)
        if doc is None:
            matches = await self.store.employees.query({"user_id": employee_id})
            doc = matches[0] if matches else None
        return Employee.from_document(doc) if doc is not None else None

    async def all_employees(self) -> list[Employee]:
        """Every employee, in listing order."""
        return [Employee.from_document(doc) for doc in await self.store.employees.list_all()]

    async def get_site(self, site_id: str) -> Site | None:
        doc = await self.store.sites.get_by_id(site_id)
        return Site.from_document(doc) if doc is not None else None

    async def rates_for(self, employee_id: str) -> list[RateEntry]:
        """Rate entries for an employee, ordered by site name."""
        docs = await self.store.rate_entries.query({"employee_id": employee_id})
        rates = [RateEntry.from_document(doc) for doc in docs]
        return sorted(rates, key=lambda r: r.site_name or "")
