"""
Typed failures raised by the floor coordinator services.

Every rejected mutation raises one of these and leaves the affected rows in
their prior state. The HTTP boundary maps them to responses through
``coordinator_exception_handler``.
"""
import functools
import logging

from django.db import DatabaseError, IntegrityError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class CoordinatorError(Exception):
    """Base exception for floor coordinator errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    kind = "coordinator_error"
    retryable = False

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(CoordinatorError):
    """Raised for an illegal state transition or an invalid input shape."""

    status_code = status.HTTP_400_BAD_REQUEST
    kind = "validation_error"


class NotFoundError(CoordinatorError):
    """Raised when a referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"

    def __init__(self, entity, entity_id, message=None):
        self.entity = entity
        self.entity_id = entity_id
        if message is None:
            message = f"{entity} {entity_id} not found"
        super().__init__(message, details={"entity": entity, "id": str(entity_id)})


class ConflictError(CoordinatorError):
    """Raised on a concurrent-write collision or an unmet delete/split precondition."""

    status_code = status.HTTP_409_CONFLICT
    kind = "conflict"


class PersistenceError(CoordinatorError):
    """Raised when the underlying store is unavailable or timed out."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    kind = "persistence_error"
    retryable = True


def translate_database_errors(func):
    """
    Surface driver-level failures as coordinator errors.

    IntegrityError means another writer got there first (unique table number,
    order number race) and becomes a ConflictError. Any other DatabaseError is
    a PersistenceError the caller may retry.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError as exc:
            logger.warning(f"{func.__qualname__}: integrity violation: {exc}")
            raise ConflictError(f"Concurrent write collision: {exc}") from exc
        except DatabaseError as exc:
            logger.error(f"{func.__qualname__}: persistence failure: {exc}")
            raise PersistenceError(f"Store unavailable: {exc}") from exc

    return wrapper


def coordinator_exception_handler(exc, context):
    """
    DRF exception handler that renders coordinator errors with their mapped status.
    """
    if isinstance(exc, CoordinatorError):
        request = context.get("request") if context else None
        if request is not None:
            logger.info(
                f"Rejected {request.method} {request.path}: {exc.kind}: {exc.message}"
            )
        return Response(
            {"error": exc.kind, "message": exc.message, "details": exc.details},
            status=exc.status_code,
        )

    return exception_handler(exc, context)
