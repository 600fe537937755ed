"""Prometheus exporter: metrics collector and sweep scheduler."""

from oltmon.exporter.metrics import OnuMetrics, SweepStats
from oltmon.exporter.scheduler import SweepScheduler

__all__ = ["OnuMetrics", "SweepScheduler", "SweepStats"]
