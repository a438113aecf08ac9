"""Identity reconciliation, change detection and the poll loop.

The ``reconcile`` and ``diff`` submodules keep their own names here; import
their functions from the submodules.
"""

from kollpaspar.tracking.tracker import EventSink, PositionSource, Tracker

__all__ = [
    "EventSink",
    "PositionSource",
    "Tracker",
]
