"""Read-only HTTP surface over the published records via FastAPI.

Serves the current [PublishedStore][instances_api.core.store.PublishedStore]
snapshot as a sorted JSON export. Handlers only ever read one snapshot, so a
response reflects exactly one completed refresh cycle (or nothing before the
first).

Routes:

* ``GET /instances.json?sort_by=<keys>&pretty=1``: array of
  ``[host, record]`` pairs in presentation order. An unknown sort key gives
  ``400``.
* ``GET /health``: liveness plus the store version and size.
* Anything else redirects to ``/instances.json``.

The HTTP server runs as a background ``asyncio.Task`` alongside the standard
``run_forever()`` cycle. Each ``run()`` cycle logs request statistics and
updates Prometheus metrics.

See Also:
    [sort_records()][instances_api.services.common.sorting.sort_records]:
        Presentation ordering.
    [BaseService][instances_api.core.base_service.BaseService]: Abstract
        base class providing lifecycle and metrics.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import TYPE_CHECKING, Any, ClassVar

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from instances_api.core.base_service import BaseService
from instances_api.core.exceptions import SortKeyError
from instances_api.models.constants import ServiceName
from instances_api.services.common.sorting import sort_records, to_json

from .configs import ApiConfig


if TYPE_CHECKING:
    from types import TracebackType

    from instances_api.core.store import PublishedStore

_HTTP_ERROR_THRESHOLD = 400
_EXPORT_PATH = "/instances.json"
_JSON_CONTENT_TYPE = "application/json; charset=utf-8"


class Api(BaseService[ApiConfig]):
    """HTTP service exposing the published records read-only.

    Lifecycle:
        1. ``__aenter__``: build the FastAPI app, start uvicorn.
        2. ``run()``: log statistics and update Prometheus gauges.
        3. ``__aexit__``: cancel the HTTP server task.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.API
    CONFIG_CLASS: ClassVar[type[ApiConfig]] = ApiConfig

    def __init__(self, store: PublishedStore, config: ApiConfig | None = None) -> None:
        super().__init__(store, config)
        self._server_task: asyncio.Task[None] | None = None
        self._requests_total = 0
        self._requests_failed = 0

    async def __aenter__(self) -> Api:
        await super().__aenter__()

        app = self._build_app()
        self._server_task = asyncio.create_task(self._run_server(app))
        self._logger.info(
            "http_server_started",
            host=self._config.host,
            port=self._config.port,
        )

        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        if self._server_task is not None:
            self._server_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._server_task
            self._server_task = None
        self._logger.info("http_server_stopped")
        await super().__aexit__(_exc_type, _exc_val, _exc_tb)

    async def run(self) -> None:
        """Log request stats and update Prometheus counters."""
        if self._server_task is not None and self._server_task.done():
            exc = self._server_task.exception() if not self._server_task.cancelled() else None
            self._logger.error("http_server_crashed", error=str(exc) if exc else "cancelled")
            raise RuntimeError("HTTP server task has stopped unexpectedly") from exc

        total = self._requests_total
        failed = self._requests_failed
        self._requests_total = 0
        self._requests_failed = 0

        snapshot = self._store.snapshot()
        self._logger.info(
            "cycle_stats",
            requests_total=total,
            requests_failed=failed,
            instances=len(snapshot),
            store_version=snapshot.version,
        )
        self.inc_counter("requests_total", total)
        self.inc_counter("requests_failed", failed)
        self.set_gauge("instances_served", len(snapshot))

    def _security_headers(self) -> dict[str, str]:
        headers = {
            "X-XSS-Protection": "1; mode=block",
            "X-Content-Type-Options": "nosniff",
            "Referrer-Policy": "same-origin",
        }
        if self._config.hsts:
            headers["Strict-Transport-Security"] = self._config.hsts
        return headers

    def _build_app(self) -> FastAPI:
        """Construct the FastAPI application."""
        app = FastAPI(title="instances-api", docs_url=None, redoc_url=None, openapi_url=None)
        security_headers = self._security_headers()

        @app.middleware("http")
        async def log_requests(request: Request, call_next: Any) -> Response:
            start = time.monotonic()
            try:
                response: Response = await call_next(request)
            except Exception as exc:  # HTTP request error boundary
                self._logger.error(
                    "unhandled_error",
                    error=str(exc),
                    path=request.url.path,
                )
                response = JSONResponse(
                    {"error": "Internal server error"},
                    status_code=500,
                )
            response.headers.update(security_headers)

            duration_ms = (time.monotonic() - start) * 1000
            self._requests_total += 1
            if response.status_code >= _HTTP_ERROR_THRESHOLD:
                self._requests_failed += 1
                self._logger.warning(
                    "request_failed",
                    method=request.method,
                    path=request.url.path,
                    status=response.status_code,
                    duration_ms=round(duration_ms, 1),
                )
            else:
                self._logger.debug(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status=response.status_code,
                    duration_ms=round(duration_ms, 1),
                )
            return response

        @app.exception_handler(404)
        async def redirect_unknown(_request: Request, _exc: Exception) -> Response:
            return RedirectResponse(_EXPORT_PATH, status_code=302)

        @app.get("/health")
        async def health() -> dict[str, Any]:
            snapshot = self._store.snapshot()
            return {"status": "ok", "version": snapshot.version, "instances": len(snapshot)}

        @app.get(_EXPORT_PATH)
        async def instances(sort_by: str | None = None, pretty: str | None = None) -> Response:
            snapshot = self._store.snapshot()
            try:
                ordered = sort_records(snapshot.records, sort_by or self._config.default_sort)
            except SortKeyError as e:
                return JSONResponse(
                    {"error": str(e)},
                    status_code=400,
                    headers={"Access-Control-Allow-Origin": "*"},
                )
            return Response(
                content=to_json(ordered, pretty=pretty == "1"),
                headers={
                    "Access-Control-Allow-Origin": "*",
                    "Content-Type": _JSON_CONTENT_TYPE,
                },
            )

        return app

    async def _run_server(self, app: FastAPI) -> None:
        """Run uvicorn as an asyncio server."""
        config = uvicorn.Config(
            app,
            host=self._config.host,
            port=self._config.port,
            log_level="warning",
            access_log=False,
        )
        server = uvicorn.Server(config)
        await server.serve()
