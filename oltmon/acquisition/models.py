"""Pydantic models for ONU inventory and telemetry."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

ONU_SLOTS_PER_PON = 128


class PortCoordinate(BaseModel):
    """A physical PON port addressed by board (slot) and PON number."""

    model_config = ConfigDict(frozen=True)

    board: int
    pon: int


class TerminalIdentity(BaseModel):
    """Natural key of an ONU: board, PON and slot id."""

    board: int
    pon: int
    onu_id: int


class FreeSlot(TerminalIdentity):
    """An ONU id with nothing registered on it."""


class TerminalSerial(TerminalIdentity):
    serial_number: str = ""


class TerminalSummary(TerminalIdentity):
    """Per-ONU row produced by a full-port listing."""

    name: str = ""
    onu_type: str = ""
    serial_number: str = ""
    rx_power: float | None = None
    status: str = ""


class TerminalDetail(TerminalSummary):
    """Complete per-ONU record including timestamps and derived durations."""

    description: str = ""
    tx_power: float | None = None
    ip_address: str = ""
    last_online: str = ""
    last_offline: str = ""
    uptime: str = ""
    uptime_seconds: int | None = None
    last_down_duration: str = ""
    last_down_duration_seconds: int | None = None
    offline_reason: str = ""
    optical_distance: float | None = None
    phase_state: str = ""


class TerminalPage(BaseModel):
    """One page of a paginated port listing."""

    items: list[TerminalSummary] = Field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 10
    page_count: int = 0
