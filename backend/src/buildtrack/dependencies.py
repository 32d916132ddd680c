"""Request-scoped FastAPI dependencies for the workflow protocol.

- get_storage: the object storage adapter created at startup (app.state.storage)
- get_coordinator: a fresh TransactionCoordinator per request
- get_relocator: a BlobRelocator bound to the storage adapter
- get_registry: the real-time connection registry (app.state.registry)
"""

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import sessionmaker

from .config import get_settings
from .database import get_session_factory
from .domain.storage.object_storage_port import ObjectStoragePort
from .domain.workflow.relocation import BlobRelocator
from .domain.workflow.transaction import TransactionCoordinator
from .realtime.registry import ConnectionRegistry


def get_storage(request: Request) -> ObjectStoragePort:
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Object storage is not configured",
        )
    return storage


def get_coordinator(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> TransactionCoordinator:
    """New coordinator per request; it never outlives the request's unit of work."""
    return TransactionCoordinator(session_factory)


def get_relocator(storage: ObjectStoragePort = Depends(get_storage)) -> BlobRelocator:
    return BlobRelocator(storage, staging_prefix=get_settings().STAGING_PREFIX)


def get_registry(request: Request) -> ConnectionRegistry:
    return getattr(request.app.state, "registry", None)
