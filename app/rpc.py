# -*- coding: utf-8 -*-
from __future__ import annotations
import logging
import time
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from app.errors import GenerationError
from app.event_log import EventLog
from app.schemas import RPCErrorData, RPCErrorResponse, RPCErrorShape

log = logging.getLogger(__name__)

RPC_PREFIX = "/api/trpc"

# tRPC-style error codes -> HTTP status
HTTP_STATUS = {
    "BAD_REQUEST": 400,
    "NOT_FOUND": 404,
    "METHOD_NOT_SUPPORTED": 405,
    "INTERNAL_SERVER_ERROR": 500,
}


class RPCError(Exception):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code if code in HTTP_STATUS else "INTERNAL_SERVER_ERROR"
        self.message = message

    @property
    def http_status(self) -> int:
        return HTTP_STATUS[self.code]


def ok(data: Any) -> Dict[str, Any]:
    return {"result": {"data": data}}


def procedure_path(request: Request) -> Optional[str]:
    path = request.url.path
    if path.startswith(RPC_PREFIX + "/"):
        return path[len(RPC_PREFIX) + 1:] or None
    return None


def error_response(request: Request, code: str, message: str) -> JSONResponse:
    status = HTTP_STATUS.get(code, 500)
    body = RPCErrorResponse(
        error=RPCErrorShape(
            message=message,
            code=code,
            data=RPCErrorData(code=code, httpStatus=status, path=procedure_path(request)),
        )
    )
    return JSONResponse(status_code=status, content=body.model_dump())


def validation_message(errors: List[Dict[str, Any]]) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid input"


def install_error_handlers(app: FastAPI, event_log: EventLog) -> None:
    """Translate every failure into the RPC error envelope; internals never reach the caller."""

    @app.exception_handler(RPCError)
    async def _rpc_error(request: Request, exc: RPCError):
        return error_response(request, exc.code, exc.message)

    @app.exception_handler(GenerationError)
    async def _generation_error(request: Request, exc: GenerationError):
        return error_response(request, "INTERNAL_SERVER_ERROR", exc.message)

    @app.exception_handler(RequestValidationError)
    async def _invalid_input(request: Request, exc: RequestValidationError):
        message = validation_message(list(exc.errors()))
        event_log.log("rpc.rejected", {"path": procedure_path(request), "code": "BAD_REQUEST", "detail": message})
        return error_response(request, "BAD_REQUEST", message)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        code = {404: "NOT_FOUND", 405: "METHOD_NOT_SUPPORTED", 400: "BAD_REQUEST"}.get(exc.status_code, "INTERNAL_SERVER_ERROR")
        return error_response(request, code, str(exc.detail))

    # Uniform fallback: print the trace to the server log, return a generic message.
    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        log.exception("Unhandled error on %s", request.url.path)
        return error_response(request, "INTERNAL_SERVER_ERROR", "Internal server error")


class CallTrace:
    """Times one procedure call and writes the outcome to the event log."""

    def __init__(self, event_log: EventLog, path: str, kind: str) -> None:
        self.event_log = event_log
        self.path = path
        self.kind = kind
        self._t0 = 0.0

    def __enter__(self) -> "CallTrace":
        self._t0 = time.perf_counter()
        log.info("RPC %s %s", self.kind, self.path)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        entry: Dict[str, Any] = {
            "path": self.path,
            "type": self.kind,
            "ok": exc is None,
            "ms": round((time.perf_counter() - self._t0) * 1000, 1),
        }
        if exc is not None:
            entry["code"] = exc.code if isinstance(exc, RPCError) else "INTERNAL_SERVER_ERROR"
            entry["error"] = str(exc)
            log.error("RPC %s failed: %s", self.path, exc)
        self.event_log.log("rpc.call", entry)
        return False
