import logging

from fastapi import HTTPException, status

from ..domain.errors import (
    CapacityError,
    ConflictError,
    DomainError,
    NotFoundError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def http_error(exc: DomainError) -> HTTPException:
    """Translate a domain error into the HTTP error shown to the caller."""
    if isinstance(exc, ValidationError):
        detail = {"message": exc.message, "field": exc.field}
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, CapacityError):
        detail = {"message": exc.message, "available": exc.available, "requested": exc.requested}
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
    if isinstance(exc, ConflictError):
        detail = {"message": exc.message, "admins": exc.admins, "slot_ids": exc.slot_ids}
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
    if isinstance(exc, StorageError):
        logger.error("storage error surfaced to caller: %s", exc.message)
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="The booking service is temporarily unavailable",
        )
    logger.error("unmapped domain error: %r", exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal error")
