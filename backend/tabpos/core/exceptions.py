"""Domain exceptions raised by services and mapped to HTTP responses in main."""

from fastapi import Request, status
from fastapi.responses import JSONResponse


class TabPosError(Exception):
    """Base class for errors that abort a single user action."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationFailed(TabPosError):
    """Input rejected before any write took place."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFound(TabPosError):
    """A looked-up member, account, table, order or tenant does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class PermissionDenied(TabPosError):
    """Caller lacks the role or capability for this action."""

    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(TabPosError):
    """An order changed since the caller last read it."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, order_id: str, expected: int, current: int):
        self.order_id = order_id
        self.expected = expected
        self.current = current
        super().__init__(
            f"Order {order_id} was modified by someone else "
            f"(expected version {expected}, current {current})"
        )


async def tabpos_error_handler(request: Request, exc: TabPosError) -> JSONResponse:
    """Render a domain error as ``{"detail": ...}`` with its status code."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
