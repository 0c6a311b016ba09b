"""
Error taxonomy shared by the stores and the order service.

Absence is never an error here: lookups return ``None`` and removals report
``RemovalResult.NOT_FOUND``. What remains is a uniqueness violation
(``DuplicateKeyError``), a business-rule veto (``RemovalResult.BLOCKED``) and
anything the backend itself failed at (``StorageFailure``).
"""
from enum import Enum
from functools import wraps

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from shared.observability.metrics import erp_storage_failures_total

logger = structlog.get_logger(__name__)


class ErpError(Exception):
    """Base class for every error raised by the persistence core."""


class DuplicateKeyError(ErpError):
    def __init__(self, entity: str, field: str, value):
        super().__init__(f"A {entity} with {field} {value!r} already exists")
        self.entity = entity
        self.field = field
        self.value = value


class StorageFailure(ErpError):
    """The backend was unreachable, rejected a statement, or failed unexpectedly."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.message = message
        self.operation = operation


class DataIntegrityError(StorageFailure):
    """Stored rows reference something that no longer exists."""


class SchemaInitializationError(StorageFailure):
    """The schema could not be created; the process cannot continue."""


class RemovalResult(str, Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    BLOCKED = "blocked"


def storage_operation(operation: str):
    """Decorate a repository coroutine so backend faults surface as ``StorageFailure``.

    A stored row that no longer passes domain validation is reported as
    ``DataIntegrityError``.
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                erp_storage_failures_total.labels(operation=operation).inc()
                logger.error("storage_failure", operation=operation, error=str(e))
                raise StorageFailure(f"{operation} failed: {e}", operation=operation) from e
            except ValidationError as e:
                erp_storage_failures_total.labels(operation=operation).inc()
                logger.error("invalid_stored_row", operation=operation, error=str(e))
                raise DataIntegrityError(f"{operation} read an invalid row: {e}", operation=operation) from e

        return wrapper

    return decorator
