"""Poll loop turning position snapshots into a stream of change events."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Protocol

from kollpaspar.exceptions import ChangeEncodeError, TrackerSetupError
from kollpaspar.models.change import Change
from kollpaspar.models.vehicle import TrackedVehicle, Vehicle
from kollpaspar.tracking.diff import diff
from kollpaspar.tracking.reconcile import IdFactory, new_vehicle_id, reconcile

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PositionSource(Protocol):
    """Anything returning the current snapshot of vehicle positions."""

    async def fetch(self) -> list[Vehicle]:
        ...


class EventSink(Protocol):
    def publish(self, payload: bytes) -> int:
        ...


class Tracker:
    """Owns the tracked vehicle set and publishes how it changes.

    The tracked set is only read and replaced by this object, from the task
    running :meth:`run`; it is never mutated in place.

    Parameters
    ----------
    source : PositionSource
        Upstream snapshot provider.
    sink : EventSink
        Receives one encoded payload per change event.
    poll_interval : float
        Seconds between polls, on a fixed grid.
    ignore_last_seen : bool
        Passed to :func:`~kollpaspar.tracking.diff.diff`.
    clock : callable
        Returns the poll start time stamped on tracked vehicles.
    id_factory : callable
        Mints identifiers for new vehicles.
    """

    def __init__(
        self,
        source: PositionSource,
        sink: EventSink,
        *,
        poll_interval: float = 1.0,
        ignore_last_seen: bool = False,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: IdFactory = new_vehicle_id,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self._source = source
        self._sink = sink
        self._poll_interval = poll_interval
        self._ignore_last_seen = ignore_last_seen
        self._clock = clock
        self._id_factory = id_factory
        self._tracked: tuple[TrackedVehicle, ...] = ()
        self._seeded = False

    @property
    def tracked(self) -> tuple[TrackedVehicle, ...]:
        """Vehicles as of the last successful poll."""
        return self._tracked

    async def seed(self) -> None:
        """Populate the tracked set from a first fetch, without emitting events.

        Raises
        ------
        TrackerSetupError
            If the fetch fails.
        """
        try:
            observed = await self._source.fetch()
        except Exception as exc:
            raise TrackerSetupError(f"failed to list vehicles: {exc}") from exc

        seen_at = self._clock()
        self._tracked = tuple(
            TrackedVehicle.identify(vehicle, vehicle_id=self._id_factory(), seen_at=seen_at) for vehicle in observed
        )
        self._seeded = True
        _logger.info("Seeded tracker with %d vehicles", len(self._tracked))

    async def poll(self) -> list[Change] | None:
        """Run one fetch/reconcile/diff/publish cycle.

        A failed fetch is logged and leaves the tracked set untouched.

        Returns
        -------
        list of Change or None
            The changes of this cycle, or ``None`` when the fetch failed.
        """
        started = self._clock()
        try:
            observed = await self._source.fetch()
        except Exception:
            _logger.error("Failed to list vehicles", exc_info=True)
            return None

        reconciled = reconcile(self._tracked, observed, now=started, id_factory=self._id_factory)
        changes = diff(self._tracked, reconciled, ignore_last_seen=self._ignore_last_seen)
        published = self.publish(changes)
        self._tracked = tuple(reconciled)
        _logger.debug(
            "Poll: %d vehicles, %d changes, %d published",
            len(reconciled),
            len(changes),
            published,
        )
        return changes

    def publish(self, changes: Iterable[Change]) -> int:
        """Encode and publish each change; unencodable ones are logged and skipped."""
        published = 0
        for change in changes:
            try:
                payload = change.to_json_bytes()
            except ChangeEncodeError:
                _logger.error("Failed to encode change for %s", change.vehicle_id, exc_info=True)
                continue
            self._sink.publish(payload)
            published += 1
        return published

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Seed, then poll every ``poll_interval`` seconds until *stop* is set.

        Returns without error once *stop* fires, interrupting a pending
        fetch if needed.

        Raises
        ------
        TrackerSetupError
            If seeding fails.
        """
        if not self._seeded:
            await self.seed()
        if stop is None:
            stop = asyncio.Event()
        if stop.is_set():
            return

        loop_task = asyncio.create_task(self._poll_forever(), name="kollpaspar-poll-loop")
        stop_task = asyncio.create_task(stop.wait(), name="kollpaspar-poll-stop")
        try:
            await asyncio.wait({loop_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (loop_task, stop_task):
                task.cancel()
            for task in (loop_task, stop_task):
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        _logger.info("Tracker stopped")

    async def _poll_forever(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self._poll_interval
        next_tick = loop.time() + interval
        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            await self.poll()
            next_tick += interval
            now = loop.time()
            if next_tick < now:
                # Ticks stay on a fixed grid; a slow poll skips the ones it overran.
                next_tick += math.ceil((now - next_tick) / interval) * interval
