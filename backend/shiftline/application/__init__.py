"""Application layer: composition root and background refreshers."""

from .engine import ShiftEngine, build_engine
from .refreshers import MetricsPoller, SlotTicker

__all__ = ["MetricsPoller", "ShiftEngine", "SlotTicker", "build_engine"]
