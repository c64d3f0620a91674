# src/zapforge/server/http.py
"""Starlette application and uvicorn runner for the metadata server.

Serves a read-only view of the metadata store to the UI window (or to a
supervising process when running headless).

Usage:
    server = MetadataServer(host="127.0.0.1")
    port = await server.start(store, 0, package_id=1, template_package_id=2)
    ...
    await server.stop()
"""

import asyncio
import html
import socket
from typing import Any

import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from zapforge import __version__
from zapforge.contracts.enums import PackageType
from zapforge.contracts.errors import ServerStartError
from zapforge.core.store.database import MetadataStore
from zapforge.core.store.queries import latest_package_id, list_clusters, list_templates

logger = structlog.get_logger(__name__)

_STARTUP_POLL_SECONDS = 0.01


def create_app(
    store: MetadataStore,
    *,
    package_id: int | None = None,
    template_package_id: int | None = None,
) -> Starlette:
    """Build the ASGI app over an open store.

    Package ids default to the most recently loaded package of each kind,
    resolved per request. Store queries run in the threadpool so they do not
    block the event loop.
    """

    def _package(explicit: int | None, package_type: PackageType) -> int | None:
        if explicit is not None:
            return explicit
        return latest_package_id(store, package_type)

    def _clusters() -> list[dict[str, Any]]:
        resolved = _package(package_id, PackageType.ZCL_PROPERTIES)
        return [] if resolved is None else list_clusters(store, resolved)

    def _templates() -> list[dict[str, Any]]:
        resolved = _package(template_package_id, PackageType.GEN_TEMPLATES)
        return [] if resolved is None else list_templates(store, resolved)

    async def health(request: Request) -> Response:
        return JSONResponse({"status": "ok", "version": __version__, "store": str(store.path)})

    async def clusters(request: Request) -> Response:
        return JSONResponse({"clusters": await run_in_threadpool(_clusters)})

    async def templates(request: Request) -> Response:
        return JSONResponse({"templates": await run_in_threadpool(_templates)})

    async def index(request: Request) -> Response:
        ui_mode = request.query_params.get("uiMode", "")
        rows = await run_in_threadpool(_clusters)
        items = "\n".join(f"    <li>0x{c['code']:04X} {html.escape(c['name'])} ({len(c['attributes'])} attributes)</li>" for c in rows)
        body = (
            "<!DOCTYPE html>\n"
            f'<html data-ui-mode="{html.escape(ui_mode)}">\n'
            f"<head><title>zapforge {__version__}</title></head>\n"
            "<body>\n"
            "  <h1>Clusters</h1>\n"
            f"  <ul>\n{items}\n  </ul>\n"
            "</body>\n"
            "</html>\n"
        )
        return HTMLResponse(body)

    async def root(request: Request) -> Response:
        return RedirectResponse("/index.html")

    return Starlette(
        routes=[
            Route("/", root, methods=["GET"]),
            Route("/index.html", index, methods=["GET"]),
            Route("/health", health, methods=["GET"]),
            Route("/api/clusters", clusters, methods=["GET"]),
            Route("/api/templates", templates, methods=["GET"]),
        ]
    )


class MetadataServer:
    """Runs the metadata app under uvicorn inside the current event loop.

    The listening socket is bound here rather than by uvicorn so that a busy
    port surfaces as ServerStartError instead of uvicorn's sys.exit().
    """

    def __init__(self, *, host: str = "127.0.0.1") -> None:
        self._host = host
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task[None] | None = None
        self._bound_port: int | None = None

    @property
    def bound_port(self) -> int:
        """Port actually bound; differs from the requested one when that was 0."""
        if self._bound_port is None:
            raise RuntimeError("Server not started")
        return self._bound_port

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _bind(self, port: int) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self._host, port))
        except OSError as e:
            sock.close()
            raise ServerStartError(f"Cannot bind {self._host}:{port}: {e}") from e
        return sock

    async def start(
        self,
        store: MetadataStore,
        port: int,
        *,
        package_id: int | None = None,
        template_package_id: int | None = None,
    ) -> int:
        """Start serving and wait until uvicorn reports it is accepting connections.

        Args:
            store: Open metadata store
            port: Port to bind, 0 for an ephemeral port

        Returns:
            The bound port

        Raises:
            ServerStartError: If binding fails or uvicorn stops during startup
        """
        if self._task is not None:
            raise ServerStartError("Server already started")

        sock = self._bind(port)
        app = create_app(store, package_id=package_id, template_package_id=template_package_id)
        config = uvicorn.Config(app, log_config=None, lifespan="off", access_log=False)
        self._server = uvicorn.Server(config)
        self._task = asyncio.create_task(self._server.serve(sockets=[sock]))

        while not self._server.started:
            if self._task.done():
                sock.close()
                raise ServerStartError(f"Server on {self._host}:{port} stopped during startup")
            await asyncio.sleep(_STARTUP_POLL_SECONDS)

        self._bound_port = sock.getsockname()[1]
        logger.info("HTTP server started", host=self._host, port=self._bound_port)
        return self._bound_port

    async def stop(self) -> None:
        """Ask uvicorn to exit and wait for it. No-op if not running."""
        if self._server is None or self._task is None:
            return
        self._server.should_exit = True
        await self._task
        self._task = None
        self._server = None
        logger.info("HTTP server stopped", port=self._bound_port)
