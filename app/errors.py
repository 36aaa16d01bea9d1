"""Error taxonomy for the alumni portal and its HTTP mapping."""

from __future__ import annotations

import logging
from typing import Iterable, List

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("alumni.errors")


class PortalError(Exception):
    """Base class for failures that are reported to API clients."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def client_payload(self) -> dict:
        return {"detail": str(self)}


class ValidationError(PortalError):
    """The request is missing data the client can supply."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, fields: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.fields: List[str] = list(fields)

    @classmethod
    def missing(cls, fields: Iterable[str]) -> "ValidationError":
        names = list(fields)
        return cls(f"Missing required fields: {', '.join(names)}", names)

    def client_payload(self) -> dict:
        return {"detail": str(self), "fields": self.fields}


class ConflictError(PortalError):
    """The resource being created already exists."""

    status_code = status.HTTP_409_CONFLICT


class InvalidCredentials(PortalError):
    """Login failed. The message never reveals which credential was wrong."""

    status_code = status.HTTP_401_UNAUTHORIZED
    MESSAGE = "Invalid email or password."

    def __init__(self) -> None:
        super().__init__(self.MESSAGE)


class StorageError(PortalError):
    """The record store is unavailable or failed to complete an operation."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    CLIENT_MESSAGE = "The service is temporarily unavailable."

    def client_payload(self) -> dict:
        return {"detail": self.CLIENT_MESSAGE}


async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    if isinstance(exc, StorageError):
        logger.error(
            "Storage failure while handling %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.client_payload())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted(
        {
            str(error["loc"][-1])
            for error in exc.errors()
            if error.get("loc") and error["loc"][0] in {"body", "query"} and len(error["loc"]) > 1
        }
    )
    if fields:
        message = f"Invalid values for fields: {', '.join(fields)}"
    else:
        message = "Request body must be a JSON object"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": message, "fields": fields},
    )


__all__ = [
    "ConflictError",
    "InvalidCredentials",
    "PortalError",
    "StorageError",
    "ValidationError",
    "portal_error_handler",
    "request_validation_handler",
]
