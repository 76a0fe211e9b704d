"""
FarmTrace Backend — Request Logging Middleware
================================================

What:  One access line per ledger request, correlating the HTTP call with
       the ledger transaction it produced.
How:   Times the downstream call, then reads the ledger headers the invoker
       set on the response (X-Transaction-ID on writes, X-Total-Count on
       the full scan). /health is not logged.

Example lines:
    GET /add_produce/6-Apples-... 201 12.4ms [a1b2c3d4] tx=5f0c... from 10.0.0.7
    GET /get_all_produce 200 3.1ms [9e8f7a6b] records=5 from 10.0.0.7
    GET /get_produce/42 404 1.9ms [c0ffee00] from 10.0.0.7
"""

import logging
import time
from typing import Any, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from farmtrace.middleware.request_id import request_id_var

logger = logging.getLogger("farmtrace.access")

UNLOGGED_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


def _ledger_fields(response: Response) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    tx_id = response.headers.get("X-Transaction-ID")
    if tx_id:
        fields["tx_id"] = tx_id
    total = response.headers.get("X-Total-Count")
    if total is not None:
        fields["records"] = int(total)
    return fields


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in UNLOGGED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        ledger = _ledger_fields(response)
        suffix = "".join(
            f" {label}={ledger[name]}" for name, label in (("tx_id", "tx"), ("records", "records")) if name in ledger
        )
        client = request.client.host if request.client else "unknown"

        logger.log(
            _level_for(response.status_code),
            "%s %s %d %.1fms [%s]%s from %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id_var.get(""),
            suffix,
            client,
            extra={
                "request_id": request_id_var.get(""),
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(elapsed_ms, 2),
                "client_ip": client,
                **ledger,
            },
        )
        return response
