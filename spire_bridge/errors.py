"""
Error taxonomy for the storage bridge.

Hard errors are raised as ``BridgeError`` and reach the caller as an error
reply. Best-effort failures (grant persistence, external viewer) never raise
out of the bridge; they are logged and degrade to ``None``/``False``.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode:
    BUSY = "BUSY"
    INVALID_ARGS = "INVALID_ARGS"
    COPY_FAILED = "COPY_FAILED"
    # Reply code used by the channel when a handler raises unexpectedly
    UNEXPECTED = "error"
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"


# HTTP status used when a channel error crosses the HTTP surface
HTTP_STATUS_BY_CODE = {
    ErrorCode.BUSY: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_ARGS: status.HTTP_400_BAD_REQUEST,
    ErrorCode.COPY_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.NOT_IMPLEMENTED: status.HTTP_404_NOT_FOUND,
}


class BridgeError(Exception):
    """A structured failure delivered to the caller as an error reply"""

    def __init__(self, code: str, message: Optional[str] = None, details: Any = None):
        super().__init__(message or code)
        self.code = code
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class BusyError(BridgeError):
    def __init__(self):
        super().__init__(ErrorCode.BUSY, "Folder picker already in progress")


class InvalidArgumentsError(BridgeError):
    def __init__(self, details: Any = None):
        super().__init__(ErrorCode.INVALID_ARGS, "Missing arguments", details)


class CopyFailedError(BridgeError):
    def __init__(self, message: Optional[str]):
        super().__init__(ErrorCode.COPY_FAILED, message)


async def bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
    """Render a bridge error as the JSON error envelope of the HTTP channel"""
    status_code = HTTP_STATUS_BY_CODE.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.warning(f"[{status_code}] {request.method} {request.url.path} -> {exc.code}: {exc.message}")
    content = exc.to_dict()
    content["timestamp"] = datetime.now(timezone.utc).isoformat()
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the bridge exception handlers with a FastAPI app

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(BridgeError, bridge_error_handler)
    logger.debug("Bridge exception handlers registered")
