from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path

import pytest
from aiohttp.test_utils import TestClient, TestServer

from kollpaspar.broadcast import Broadcaster
from kollpaspar.config import TrackerConfig
from kollpaspar.exceptions import TrackerSetupError, VasttrafikTransportError
from kollpaspar.lines import LineCatalog
from kollpaspar.models.vehicle import LineInfo, Vehicle
from kollpaspar.web import TRACKER_KEY, create_app, format_sse_frame


class StaticSource:
    def __init__(self, vehicles: list[Vehicle] | None = None, error: Exception | None = None) -> None:
        self._vehicles = vehicles or []
        self._error = error

    async def fetch(self) -> list[Vehicle]:
        if self._error is not None:
            raise self._error
        return list(self._vehicles)


def _config(**overrides: object) -> TrackerConfig:
    # Long interval: these tests publish by hand and must not race the poll loop.
    return TrackerConfig(client_id="id", client_secret="secret", poll_interval=3600.0, **overrides)  # type: ignore[arg-type]


def _vehicle() -> Vehicle:
    return Vehicle(
        name="1",
        direction="Östra Sjukhuset",
        latitude=57.70,
        longitude=11.97,
        line=LineInfo(name="1", transport_mode="tram"),
    )


async def _wait_until(predicate: Callable[[], bool]) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout=2.0)


def test_format_sse_frame() -> None:
    assert format_sse_frame(b'{"delete":{"id":"A"}}') == b'data: {"delete":{"id":"A"}}\n\n'


@pytest.mark.asyncio
async def test_events_endpoint_streams_published_payloads() -> None:
    broadcaster = Broadcaster()
    app = create_app(_config(), source=StaticSource([_vehicle()]), broadcaster=broadcaster)

    async with TestClient(TestServer(app)) as client:
        resp = await client.get("/events")
        assert resp.status == 200
        assert resp.headers["Content-Type"].startswith("text/event-stream")
        assert resp.headers["Cache-Control"] == "no-cache"

        await _wait_until(lambda: broadcaster.subscriber_count == 1)
        broadcaster.publish(b'{"delete":{"id":"A"}}')

        line = await asyncio.wait_for(resp.content.readline(), timeout=2.0)
        blank = await asyncio.wait_for(resp.content.readline(), timeout=2.0)
        assert line == b'data: {"delete":{"id":"A"}}\n'
        assert blank == b"\n"
        resp.close()

    assert broadcaster.closed
    assert broadcaster.subscriber_count == 0


@pytest.mark.asyncio
async def test_app_startup_seeds_tracker_silently() -> None:
    broadcaster = Broadcaster()
    app = create_app(_config(), source=StaticSource([_vehicle()]), broadcaster=broadcaster)

    async with TestClient(TestServer(app)):
        assert len(app[TRACKER_KEY].tracked) == 1


@pytest.mark.asyncio
async def test_app_startup_fails_when_seed_fails() -> None:
    app = create_app(_config(), source=StaticSource(error=VasttrafikTransportError("HTTP 500", status_code=500)))

    with pytest.raises(TrackerSetupError):
        async with TestClient(TestServer(app)):
            pass


@pytest.mark.asyncio
async def test_static_files_are_served(tmp_path: Path) -> None:
    (tmp_path / "index.html").write_text("<h1>kollpåspår</h1>", encoding="utf-8")
    (tmp_path / "app.js").write_text("console.log('hi')", encoding="utf-8")
    app = create_app(_config(static_dir=str(tmp_path)), source=StaticSource())

    async with TestClient(TestServer(app)) as client:
        index = await client.get("/")
        assert index.status == 200
        assert "kollpåspår" in await index.text()

        script = await client.get("/app.js")
        assert script.status == 200

        missing = await client.get("/nope.css")
        assert missing.status == 404


@pytest.mark.asyncio
async def test_lines_endpoint_serves_catalog() -> None:
    catalog = LineCatalog.from_json(
        json.dumps(
            [
                {
                    "lineInfo": {"name": "1", "transportMode": "tram", "backgroundColor": "#fff"},
                    "route": [{"Lat": 57.7, "Long": 11.9}],
                }
            ]
        )
    )
    app = create_app(_config(), source=StaticSource(), catalog=catalog)

    async with TestClient(TestServer(app)) as client:
        resp = await client.get("/lines")
        assert resp.status == 200
        body = await resp.json()

    assert body["lines"][0]["lineInfo"]["transportMode"] == "tram"
    assert body["lines"][0]["route"] == [{"lat": 57.7, "long": 11.9}]
