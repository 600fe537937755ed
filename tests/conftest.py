"""Shared fixtures for the oltmon test suite."""

from __future__ import annotations

from datetime import datetime

import pytest

from oltmon.acquisition.profiles import OidProfileResolver, OnuField
from oltmon.acquisition.service import AcquisitionService
from oltmon.cache.memory import MemoryCache
from oltmon.config import OltSettings, PortOids
from oltmon.transport.memory import MemoryTransport

BASE_OID_1 = "1.3.6.1.4.1.3902.1012"
BASE_OID_2 = "1.3.6.1.4.1.3902.1015"

# one table per field, indexed by board and pon
TEMPLATE = {
    "onu_id_name": ".1.{board}.{pon}",
    "onu_type": ".2.{board}.{pon}",
    "onu_serial_number": ".3.{board}.{pon}",
    "onu_rx_power": ".4.{board}.{pon}",
    "onu_tx_power": ".5.{board}.{pon}",
    "onu_status_id": ".6.{board}.{pon}",
    "onu_ip_address": ".7.{board}.{pon}",
    "onu_description": ".8.{board}.{pon}",
    "onu_last_online_time": ".9.{board}.{pon}",
    "onu_last_offline_time": ".10.{board}.{pon}",
    "onu_last_offline_reason": ".11.{board}.{pon}",
    "onu_gpon_optical_distance": ".12.{board}.{pon}",
}

# 2024-01-02 00:00:00 local device time
FIXED_NOW = datetime(2024, 1, 2, 0, 0, 0)


class FakeClock:
    """Monotonic clock stand-in that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def raw_power(dbm: float) -> int:
    """Inverse of the default power conversion (raw * 0.002 - 30)."""
    return round((dbm + 30.0) / 0.002)


# ── configuration / profiles ──────────────────────────────────────────


@pytest.fixture()
def olt_settings():
    """OltSettings with the test template over boards 1-2, pons 1-16."""
    return OltSettings(base_oid_1=BASE_OID_1, base_oid_2=BASE_OID_2, template=PortOids(**TEMPLATE))


@pytest.fixture()
def resolver(olt_settings):
    return OidProfileResolver.from_settings(olt_settings)


@pytest.fixture()
def profile(resolver):
    """OidProfile of board 1 pon 1."""
    return resolver.resolve(1, 1)


# ── transport / cache fakes ───────────────────────────────────────────


@pytest.fixture()
def transport():
    return MemoryTransport()


@pytest.fixture()
def fake_clock():
    return FakeClock()


@pytest.fixture()
def cache(fake_clock):
    return MemoryCache(clock=fake_clock)


@pytest.fixture()
def service(resolver, transport, cache):
    """AcquisitionService over the in-memory transport and cache, with a fixed wall clock."""
    return AcquisitionService(resolver, transport, cache, now=lambda: FIXED_NOW)


@pytest.fixture()
def seed_onu(transport, resolver):
    """Factory fixture registering one ONU (all fields) on the in-memory agent.

    Pass a field name with ``None`` to leave that OID unanswered.
    """

    def _seed(board: int = 1, pon: int = 1, onu_id: int = 1, **overrides):
        profile = resolver.resolve(board, pon)
        values = {
            "onu_id_name": f"ONU-{board}-{pon}-{onu_id}".encode(),
            "onu_type": b"F660",
            "onu_serial_number": f"1,ZTEGC0FFE{onu_id:03d}".encode(),
            "onu_rx_power": raw_power(-18.5),
            "onu_tx_power": raw_power(2.25),
            "onu_status_id": 4,
            "onu_ip_address": f"10.0.{pon}.{onu_id}",
            "onu_description": f"customer {onu_id}".encode(),
            "onu_last_online_time": "2024-01-01 00:00:00",
            "onu_last_offline_time": "2023-12-31 20:00:00",
            "onu_last_offline_reason": 2,
            "onu_gpon_optical_distance": 1234,
        }
        values.update(overrides)
        for field_name, value in values.items():
            if value is None:
                continue
            transport.set(profile.oid(OnuField(field_name), onu_id), value)
        return profile

    return _seed
