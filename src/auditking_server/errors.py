"""Global exception handlers — map SDK exceptions to HTTP status codes.

The SDK raises ``ValueError`` for not-found, conflict and validation
conditions; the handler inspects the message and picks the status code.
Validation failures (400) reach the client verbatim; not-found and
conflict messages carry row ids, so those stay in the server log and the
client gets a generic description.

Specific handlers:
    InspectionIncompleteError → 422 with the missing question labels
    PermissionError           → 403
    ExtractionError           → 502
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from auditking.extraction import ExtractionError
from auditking.service import InspectionIncompleteError

logger = logging.getLogger(__name__)

# Checked in order; first match wins.
_VALUE_ERROR_PATTERNS: list[tuple[str, int]] = [
    # ReportError: template gone or without questions
    ("nothing to export", 422),
    # Inspection already submitted
    ("already", 409),
    ("not found", 404),
]

_SAFE_MESSAGES: dict[int, str] = {
    404: "Resource not found",
    409: "Request conflicts with the current state of the resource",
    422: "Nothing to export",
    400: "Invalid request",
}


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Map SDK ``ValueError`` to 404, 409, 422 or 400 by message."""
    msg = str(exc)
    status = 400
    for pattern, code in _VALUE_ERROR_PATTERNS:
        if pattern in msg.lower():
            status = code
            break

    logger.warning("ValueError [%d] at %s: %s", status, request.url, msg)
    detail = msg if status == 400 and msg else _SAFE_MESSAGES.get(status, "Invalid request")
    return JSONResponse(status_code=status, content={"detail": detail})


async def incomplete_handler(request: Request, exc: InspectionIncompleteError) -> JSONResponse:
    """Submission rejected: tell the inspector which questions are missing."""
    logger.info("Incomplete submission at %s: %d missing", request.url, len(exc.missing_labels))
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "missing": exc.missing_labels},
    )


async def permission_error_handler(request: Request, exc: PermissionError) -> JSONResponse:
    logger.warning("PermissionError at %s: %s", request.url, exc)
    return JSONResponse(status_code=403, content={"detail": str(exc) or "Permission denied"})


async def extraction_error_handler(request: Request, exc: ExtractionError) -> JSONResponse:
    logger.error("ExtractionError at %s: %s", request.url, exc)
    return JSONResponse(
        status_code=502,
        content={"detail": "AI template extraction failed; try again or build the template manually"},
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
