"""
Request timing middleware.

Every response gets ``X-Request-ID`` (echoed from the caller when supplied)
and ``X-Request-Duration-Ms``.  One access line is logged per request:
WARNING when slower than ``SLOW_THRESHOLD_MS``, ERROR on 5xx, DEBUG otherwise.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

_QUIET_PATHS = frozenset({"/api/v1/health"})

SLOW_THRESHOLD_MS = 1000


def _level_for(status: int, duration_ms: float) -> int:
    if duration_ms > SLOW_THRESHOLD_MS:
        return logging.WARNING
    if status >= 500:
        return logging.ERROR
    return logging.DEBUG


def _access_extra(response, duration_ms: float) -> dict:
    view_args = request.view_args or {}
    return {
        "method": request.method,
        "path": request.path,
        "status": response.status_code,
        "duration_ms": duration_ms,
        "remote_addr": request.remote_addr,
        "request_id": g.request_id,
        "file_id": view_args.get("file_id"),
        "manager_id": view_args.get("manager_id"),
    }


def init_request_timing(app: Flask):
    """Register the before/after request hooks."""

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _log_request(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"

        if request.path in _QUIET_PATHS:
            return response

        level = _level_for(response.status_code, duration_ms)
        logger.log(
            level, "%s %s %d (%.0fms)",
            request.method, request.path, response.status_code, duration_ms,
            extra=_access_extra(response, duration_ms),
        )
        return response
