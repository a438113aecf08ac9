from __future__ import annotations

import asyncio
import itertools
import json
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from kollpaspar.exceptions import TrackerSetupError, VasttrafikTransportError
from kollpaspar.models.vehicle import LineInfo, Vehicle
from kollpaspar.tracking.tracker import Tracker

_T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


def _vehicle(line: str = "5", direction: str = "Östra Sjukhuset", lat: float = 57.70, lon: float = 11.97) -> Vehicle:
    return Vehicle(
        name=line,
        direction=direction,
        latitude=lat,
        longitude=lon,
        line=LineInfo(name=line, transport_mode="tram"),
    )


@dataclass
class FakeSource:
    """Returns scripted snapshots; an exception entry is raised instead. The last entry repeats."""

    responses: list[list[Vehicle] | Exception]
    calls: int = 0

    async def fetch(self) -> list[Vehicle]:
        index = min(self.calls, len(self.responses) - 1)
        self.calls += 1
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        return list(response)


@dataclass
class RecordingSink:
    payloads: list[bytes] = field(default_factory=list)

    def publish(self, payload: bytes) -> int:
        self.payloads.append(payload)
        return 1

    def decoded(self) -> list[dict[str, Any]]:
        return [json.loads(p) for p in self.payloads]


def _ticking_clock() -> Callable[[], datetime]:
    counter = itertools.count()
    return lambda: _T0 + timedelta(seconds=next(counter))


def _ids() -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"veh-{next(counter)}"


def _tracker(source: FakeSource, sink: RecordingSink, **kwargs: Any) -> Tracker:
    kwargs.setdefault("clock", _ticking_clock())
    kwargs.setdefault("id_factory", _ids())
    return Tracker(source, sink, **kwargs)


@pytest.mark.asyncio
async def test_seed_populates_without_emitting() -> None:
    sink = RecordingSink()
    tracker = _tracker(FakeSource([[_vehicle(), _vehicle(line="7", direction="Bergsjön")]]), sink)

    await tracker.seed()

    assert [v.id for v in tracker.tracked] == ["veh-1", "veh-2"]
    assert sink.payloads == []


@pytest.mark.asyncio
async def test_seed_failure_is_fatal() -> None:
    tracker = _tracker(FakeSource([VasttrafikTransportError("HTTP 503", status_code=503)]), RecordingSink())

    with pytest.raises(TrackerSetupError, match="HTTP 503"):
        await tracker.seed()


@pytest.mark.asyncio
async def test_poll_publishes_movement_under_the_same_identifier() -> None:
    sink = RecordingSink()
    source = FakeSource([[_vehicle(lat=57.70)], [_vehicle(lat=57.7004)]])
    tracker = _tracker(source, sink)
    await tracker.seed()

    changes = await tracker.poll()

    assert changes is not None and len(changes) == 1
    assert sink.decoded()[0]["update"]["id"] == "veh-1"
    assert sink.decoded()[0]["update"]["latitude"] == pytest.approx(57.7004)
    assert tracker.tracked[0].latitude == pytest.approx(57.7004)


@pytest.mark.asyncio
async def test_unchanged_vehicle_is_republished_because_last_seen_moves() -> None:
    sink = RecordingSink()
    tracker = _tracker(FakeSource([[_vehicle()]]), sink)
    await tracker.seed()

    await tracker.poll()

    assert len(sink.payloads) == 1
    assert "update" in sink.decoded()[0]


@pytest.mark.asyncio
async def test_unchanged_vehicle_is_quiet_when_last_seen_ignored() -> None:
    sink = RecordingSink()
    tracker = _tracker(FakeSource([[_vehicle()]]), sink, ignore_last_seen=True)
    await tracker.seed()

    assert await tracker.poll() == []
    assert sink.payloads == []


@pytest.mark.asyncio
async def test_vanished_vehicle_is_deleted() -> None:
    sink = RecordingSink()
    source = FakeSource([[_vehicle(), _vehicle(line="7", direction="Bergsjön", lat=57.72)], [_vehicle()]])
    tracker = _tracker(source, sink, ignore_last_seen=True)
    await tracker.seed()

    await tracker.poll()

    assert sink.decoded() == [{"delete": {"id": "veh-2"}}]
    assert [v.id for v in tracker.tracked] == ["veh-1"]


@pytest.mark.asyncio
async def test_outage_keeps_state_and_emits_nothing() -> None:
    sink = RecordingSink()
    outage = VasttrafikTransportError("connection reset")
    source = FakeSource([[_vehicle()], outage, outage, outage, [_vehicle(lat=57.7002)]])
    tracker = _tracker(source, sink)
    await tracker.seed()
    before = tracker.tracked

    for _ in range(3):
        assert await tracker.poll() is None

    assert tracker.tracked == before
    assert sink.payloads == []

    await tracker.poll()
    assert [p["update"]["id"] for p in sink.decoded()] == ["veh-1"]


@pytest.mark.asyncio
async def test_unencodable_event_is_skipped_not_fatal() -> None:
    sink = RecordingSink()
    broken = _vehicle(line="9", direction="Kungsten", lat=math.nan, lon=math.nan)
    source = FakeSource([[], [broken, _vehicle()]])
    tracker = _tracker(source, sink)
    await tracker.seed()

    changes = await tracker.poll()

    assert changes is not None and len(changes) == 2
    assert len(sink.payloads) == 1
    assert sink.decoded()[0]["update"]["name"] == "5"
    assert len(tracker.tracked) == 2


@pytest.mark.asyncio
async def test_run_polls_until_stopped() -> None:
    sink = RecordingSink()
    source = FakeSource([[_vehicle()]])
    tracker = _tracker(source, sink, poll_interval=0.01)
    stop = asyncio.Event()

    task = asyncio.create_task(tracker.run(stop))
    while source.calls < 4:
        await asyncio.sleep(0.01)
    stop.set()
    await asyncio.wait_for(task, timeout=1.0)

    assert task.exception() is None
    # one seed plus at least three ticks, each republishing the restamped vehicle
    assert len(sink.payloads) >= 3


@pytest.mark.asyncio
async def test_run_stops_while_fetch_is_pending() -> None:
    release = asyncio.Event()

    class HangingSource(FakeSource):
        async def fetch(self) -> list[Vehicle]:
            if self.calls:
                self.calls += 1
                await release.wait()
            return await super().fetch()

    source = HangingSource([[_vehicle()]])
    tracker = _tracker(source, RecordingSink(), poll_interval=0.01)
    stop = asyncio.Event()

    task = asyncio.create_task(tracker.run(stop))
    while source.calls < 2:
        await asyncio.sleep(0.01)
    stop.set()

    await asyncio.wait_for(task, timeout=1.0)
    assert not release.is_set()


@pytest.mark.asyncio
async def test_run_propagates_seed_failure() -> None:
    tracker = _tracker(FakeSource([VasttrafikTransportError("boom")]), RecordingSink())

    with pytest.raises(TrackerSetupError):
        await tracker.run(asyncio.Event())


def test_poll_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        Tracker(FakeSource([[]]), RecordingSink(), poll_interval=0)
