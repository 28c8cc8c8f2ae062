# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
API Error Handling — Unified error structure.

Every failure renders as {"success": false, "error": <human message>, ...}.
Details and exception text are only included in dev mode.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hub_portal.core.config import settings
from hub_portal.core.errors import PortalError

logger = logging.getLogger("hub.api")


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", None) or str(uuid.uuid4())


def error_body(
    request: Request,
    message: str,
    code: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    body = {
        "success": False,
        "error": message,
        "code": code,
        "trace_id": _trace_id(request),
    }
    if details and settings.is_dev:
        body["details"] = details
    return body


async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    """Global exception handler for PortalError."""
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.message, exc.code, exc.details),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed or missing caller input → 400."""
    errors = jsonable_encoder(exc.errors())
    fields = [".".join(str(p) for p in err.get("loc", ())[1:]) for err in errors]
    message = "Missing or invalid fields: " + ", ".join(f for f in fields if f) if fields else "Invalid request"
    return JSONResponse(
        status_code=400,
        content=error_body(request, message, "VALIDATION_ERROR", {"errors": errors}),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and message == "Not Found":
        message = "Route not found"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, message, f"HTTP_{exc.status_code}"),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = error_body(request, "Something went wrong!", "INTERNAL_ERROR")
    if settings.is_dev:
        body["details"] = {"exception": repr(exc)}
    return JSONResponse(status_code=500, content=body)
