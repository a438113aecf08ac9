"""aiohttp application: SSE change stream, static files and tracker lifecycle."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path

from aiohttp import web

from kollpaspar.broadcast import Broadcaster
from kollpaspar.client import VasttrafikClient
from kollpaspar.config import TrackerConfig
from kollpaspar.lines import LineCatalog
from kollpaspar.tracking.tracker import PositionSource, Tracker

_logger = logging.getLogger(__name__)

BROADCASTER_KEY = web.AppKey("broadcaster", Broadcaster)
CONFIG_KEY = web.AppKey("config", TrackerConfig)
TRACKER_KEY = web.AppKey("tracker", Tracker)
CATALOG_KEY = web.AppKey("catalog", LineCatalog)

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def format_sse_frame(payload: bytes) -> bytes:
    """Wrap one payload in a server-sent-event ``data`` frame."""
    return b"data: " + payload + b"\n\n"


async def handle_events(request: web.Request) -> web.StreamResponse:
    """Stream change events until the client leaves or the server stops."""
    broadcaster = request.app[BROADCASTER_KEY]
    response = web.StreamResponse(status=200, headers=SSE_HEADERS)
    await response.prepare(request)

    subscription = broadcaster.subscribe()
    _logger.info("Subscriber connected from %s", request.remote)
    try:
        async for payload in subscription:
            await response.write(format_sse_frame(payload))
    except ConnectionResetError:
        _logger.debug("Subscriber %s went away", request.remote)
    finally:
        broadcaster.unsubscribe(subscription)
        _logger.info("Subscriber disconnected from %s", request.remote)
    return response


async def handle_lines(request: web.Request) -> web.Response:
    """Serve the line reference data as JSON."""
    catalog = request.app[CATALOG_KEY]
    return web.json_response(text=catalog.model_dump_json(by_alias=True))


def _static_handler(root: Path) -> Callable[[web.Request], Awaitable[web.FileResponse]]:
    root = root.resolve()

    async def handle_static(request: web.Request) -> web.FileResponse:
        relative = request.match_info.get("path", "")
        target = (root / relative).resolve()
        if not target.is_relative_to(root):
            raise web.HTTPNotFound()
        if target.is_dir():
            target = target / "index.html"
        if not target.is_file():
            raise web.HTTPNotFound()
        return web.FileResponse(target)

    return handle_static


def _tracker_context(tracker: Tracker) -> Callable[[web.Application], AsyncIterator[None]]:
    async def tracker_ctx(app: web.Application) -> AsyncIterator[None]:
        stop = asyncio.Event()
        # Seed before serving: an upstream that is down at startup is fatal.
        await tracker.seed()
        task = asyncio.create_task(tracker.run(stop), name="kollpaspar-tracker")
        yield
        stop.set()
        await task
        app[BROADCASTER_KEY].close()

    return tracker_ctx


def _client_context(client: VasttrafikClient) -> Callable[[web.Application], AsyncIterator[None]]:
    async def client_ctx(_app: web.Application) -> AsyncIterator[None]:
        async with client:
            yield

    return client_ctx


async def _close_subscribers(app: web.Application) -> None:
    # Open SSE responses keep the server from shutting down until they end.
    app[BROADCASTER_KEY].close()


def create_app(
    config: TrackerConfig,
    *,
    source: PositionSource | None = None,
    broadcaster: Broadcaster | None = None,
    catalog: LineCatalog | None = None,
) -> web.Application:
    """Build the application.

    Parameters
    ----------
    config : TrackerConfig
        Process configuration.
    source : PositionSource, optional
        Position provider; defaults to a :class:`VasttrafikClient` bound to
        the configured area and lines.
    broadcaster : Broadcaster, optional
        Shared hub; one is created from the config when omitted.
    catalog : LineCatalog, optional
        Line reference data served at ``/lines``.
    """
    app = web.Application()
    if broadcaster is None:
        broadcaster = Broadcaster(
            queue_size=config.subscriber_queue_size,
            overflow_policy=config.overflow_policy,
        )
    app[CONFIG_KEY] = config
    app[BROADCASTER_KEY] = broadcaster

    if source is None:
        client = VasttrafikClient(config)
        app.cleanup_ctx.append(_client_context(client))
        source = client.positions_source()

    tracker = Tracker(
        source,
        broadcaster,
        poll_interval=config.poll_interval,
        ignore_last_seen=config.diff_ignore_last_seen,
    )
    app[TRACKER_KEY] = tracker
    app.cleanup_ctx.append(_tracker_context(tracker))
    app.on_shutdown.append(_close_subscribers)

    app.router.add_get("/events", handle_events)
    if catalog is not None:
        app[CATALOG_KEY] = catalog
        app.router.add_get("/lines", handle_lines)
    if config.static_dir is not None:
        handler = _static_handler(Path(config.static_dir))
        app.router.add_get("/", handler)
        app.router.add_get("/{path:.+}", handler)
    return app
