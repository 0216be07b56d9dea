"""Render service-layer errors as JSON responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from addressbook.services.errors import AddressBookError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Map AddressBookError subclasses to their status code and error code."""

    @app.exception_handler(AddressBookError)
    async def handle_addressbook_error(
        request: Request, exc: AddressBookError
    ) -> JSONResponse:
        log_fn = logger.error if exc.status_code >= 500 else logger.info
        log_fn(
            "%s %s -> %s %s: %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.error_code,
            exc.message,
        )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.error_code},
            headers=headers,
        )
