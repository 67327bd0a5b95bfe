"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from reconciliation_engine.config import get_settings
from reconciliation_engine.services.notifications import Notifier, notifier_from_settings
from reconciliation_engine.services.orchestrator import ReconciliationOrchestrator
from reconciliation_engine.store.base import DocumentStore


def get_store(request: Request) -> DocumentStore:
    """Document store attached to the application at startup."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Document store not initialized",
        )
    return store


def get_notifier(request: Request) -> Notifier:
    notifier = getattr(request.app.state, "notifier", None)
    return notifier or notifier_from_settings(get_settings())


Store = Annotated[DocumentStore, Depends(get_store)]


def get_orchestrator(
    store: Store,
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> ReconciliationOrchestrator:
    """Orchestrator configured from settings for one request."""
    return ReconciliationOrchestrator.from_settings(store, get_settings(), notifier=notifier)


# Type aliases for cleaner dependency injection
Orchestrator = Annotated[ReconciliationOrchestrator, Depends(get_orchestrator)]
