"""Prometheus collector exposing the latest ONU sweep snapshot."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterable, Iterator

from loguru import logger
from prometheus_client import CollectorRegistry
from prometheus_client.core import GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from oltmon.acquisition.decoders import PHASE_READY, STATUS_ONLINE, timestamp_to_epoch
from oltmon.acquisition.models import TerminalDetail
from oltmon.exceptions import DecodeError

TERMINAL_LABELS = ["board", "pon", "onu_id"]
INFO_LABELS = TERMINAL_LABELS + [
    "name",
    "serial_number",
    "onu_type",
    "description",
    "ip_address",
    "offline_reason",
    "phase_state",
]


@dataclass(frozen=True)
class SweepStats:
    duration: float = 0.0
    terminals: int = 0
    errors: int = 0


def reports_power(detail: TerminalDetail) -> bool:
    """Power readings are only meaningful for an ONU that is ranged and online."""
    return detail.phase_state == PHASE_READY or detail.status == STATUS_ONLINE


class OnuMetrics(Collector):
    """Custom collector over an atomically swapped snapshot.

    The scheduler builds a full list of TerminalDetail per sweep and calls
    ``publish``; scrapes (on the exposition thread) render whatever snapshot
    is current, so series of ONUs gone since the last sweep disappear.
    """

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        namespace: str = "olt",
        power_ceiling: float = 100.0,
    ) -> None:
        self.namespace = namespace
        self.power_ceiling = power_ceiling
        self._lock = threading.Lock()
        self._details: list[TerminalDetail] = []
        self._stats = SweepStats()
        self.registry = registry if registry is not None else CollectorRegistry()
        self.registry.register(self)

    def publish(self, details: Iterable[TerminalDetail], stats: SweepStats | None = None) -> None:
        snapshot = list(details)
        with self._lock:
            self._details = snapshot
            self._stats = stats or SweepStats(terminals=len(snapshot))
        logger.debug(f"Published metrics snapshot with {len(snapshot)} ONUs")

    def snapshot(self) -> tuple[list[TerminalDetail], SweepStats]:
        with self._lock:
            return list(self._details), self._stats

    def _gauge(self, name: str, documentation: str, labels: list[str] | None = None) -> GaugeMetricFamily:
        return GaugeMetricFamily(f"{self.namespace}_{name}", documentation, labels=labels)

    def collect(self) -> Iterator[Metric]:
        details, stats = self.snapshot()

        info = self._gauge("onu_info", "ONU inventory information (value is always 1)", INFO_LABELS)
        status = self._gauge("onu_status", "ONU status (1 = Online, 0 = Offline)", TERMINAL_LABELS)
        rx_power = self._gauge("onu_rx_power_dbm", "ONU received optical power in dBm", TERMINAL_LABELS)
        tx_power = self._gauge("onu_tx_power_dbm", "ONU transmitted optical power in dBm", TERMINAL_LABELS)
        uptime = self._gauge("onu_uptime_seconds", "Time since the ONU last came online", TERMINAL_LABELS)
        last_down = self._gauge(
            "onu_last_down_duration_seconds", "Length of the ONU's last outage", TERMINAL_LABELS
        )
        last_online = self._gauge(
            "onu_last_online_timestamp_seconds", "Unix time the ONU last came online", TERMINAL_LABELS
        )
        last_offline = self._gauge(
            "onu_last_offline_timestamp_seconds", "Unix time the ONU last went offline", TERMINAL_LABELS
        )
        distance = self._gauge(
            "onu_gpon_optical_distance_meters", "Optical distance between OLT and ONU", TERMINAL_LABELS
        )

        for d in details:
            labels = [str(d.board), str(d.pon), str(d.onu_id)]
            info.add_metric(
                labels
                + [
                    d.name,
                    d.serial_number,
                    d.onu_type,
                    d.description,
                    d.ip_address,
                    d.offline_reason,
                    d.phase_state,
                ],
                1,
            )
            status.add_metric(labels, 1 if d.status == STATUS_ONLINE else 0)

            if reports_power(d):
                if d.rx_power is not None and d.rx_power < self.power_ceiling:
                    rx_power.add_metric(labels, d.rx_power)
                if d.tx_power is not None and d.tx_power < self.power_ceiling:
                    tx_power.add_metric(labels, d.tx_power)

            if d.uptime_seconds is not None:
                uptime.add_metric(labels, d.uptime_seconds)
            if d.last_down_duration_seconds is not None:
                last_down.add_metric(labels, d.last_down_duration_seconds)
            for gauge, text in ((last_online, d.last_online), (last_offline, d.last_offline)):
                if not text:
                    continue
                try:
                    gauge.add_metric(labels, timestamp_to_epoch(text))
                except DecodeError as e:
                    logger.warning(f"ONU {d.board}/{d.pon}/{d.onu_id}: {e}")
            if d.optical_distance is not None:
                distance.add_metric(labels, d.optical_distance)

        yield from (info, status, rx_power, tx_power, uptime, last_down, last_online, last_offline, distance)

        sweep_duration = self._gauge("sweep_duration_seconds", "Duration of the last completed sweep")
        sweep_duration.add_metric([], stats.duration)
        sweep_terminals = self._gauge("sweep_terminals", "ONUs published by the last completed sweep")
        sweep_terminals.add_metric([], stats.terminals)
        sweep_errors = self._gauge("sweep_errors", "Ports or ONUs skipped in the last completed sweep")
        sweep_errors.add_metric([], stats.errors)
        yield from (sweep_duration, sweep_terminals, sweep_errors)
