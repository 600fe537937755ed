"""OID profiles per PON port and the resolver that looks them up."""

from __future__ import annotations

from enum import Enum
from typing import Mapping

from pydantic import BaseModel, ConfigDict

from oltmon.acquisition.models import ONU_SLOTS_PER_PON, PortCoordinate
from oltmon.config import OltSettings, PortOids
from oltmon.exceptions import InvalidCoordinate


class OnuField(str, Enum):
    """Per-ONU fields addressable on the device. Values match the config keys."""

    NAME = "onu_id_name"
    TYPE = "onu_type"
    SERIAL_NUMBER = "onu_serial_number"
    RX_POWER = "onu_rx_power"
    TX_POWER = "onu_tx_power"
    STATUS = "onu_status_id"
    PHASE_STATE = "onu_phase_state"
    IP_ADDRESS = "onu_ip_address"
    DESCRIPTION = "onu_description"
    LAST_ONLINE = "onu_last_online_time"
    LAST_OFFLINE = "onu_last_offline_time"
    OFFLINE_REASON = "onu_last_offline_reason"
    OPTICAL_DISTANCE = "onu_gpon_optical_distance"


# field -> (base OID category, instance suffix after the ONU id)
FIELD_LAYOUT: dict[OnuField, tuple[int, str]] = {
    OnuField.NAME: (1, ""),
    OnuField.TYPE: (2, ""),
    OnuField.SERIAL_NUMBER: (1, ""),
    OnuField.RX_POWER: (1, ".1"),
    OnuField.TX_POWER: (2, ".1"),
    OnuField.STATUS: (1, ""),
    OnuField.PHASE_STATE: (1, ""),
    OnuField.IP_ADDRESS: (2, ".1"),
    OnuField.DESCRIPTION: (1, ""),
    OnuField.LAST_ONLINE: (1, ""),
    OnuField.LAST_OFFLINE: (1, ""),
    OnuField.OFFLINE_REASON: (1, ""),
    OnuField.OPTICAL_DISTANCE: (1, ""),
}


def interface_index(board: int, pon: int) -> int:
    """GPON interface index used inside per-port OIDs (e.g. 1/1 -> 268501248)."""
    return 0x10000000 | (board << 16) | (pon << 8)


class OidProfile(BaseModel):
    """Immutable bundle of OIDs for every field of one PON port."""

    model_config = ConfigDict(frozen=True)

    coordinate: PortCoordinate
    base_oid_1: str
    base_oid_2: str
    suffixes: dict[OnuField, str]

    def base_for(self, field: OnuField) -> str:
        category, _ = FIELD_LAYOUT[field]
        return self.base_oid_1 if category == 1 else self.base_oid_2

    def oid(self, field: OnuField, onu_id: int | None = None) -> str:
        """Full OID of ``field``; the table root when ``onu_id`` is None."""
        _, instance = FIELD_LAYOUT[field]
        root = self.base_for(field) + self.suffixes[field]
        if onu_id is None:
            return root
        return f"{root}.{onu_id}{instance}"

    def identity_oid(self, onu_id: int | None = None) -> str:
        """OID of the name table, the subtree walked to discover ONUs."""
        return self.oid(OnuField.NAME, onu_id)


def _expand(oids: PortOids, board: int, pon: int) -> dict[OnuField, str]:
    values = oids.model_dump()
    if not values.get(OnuField.PHASE_STATE.value):
        values[OnuField.PHASE_STATE.value] = values[OnuField.STATUS.value]
    ifindex = interface_index(board, pon)
    return {
        field: values[field.value].format(board=board, pon=pon, ifindex=ifindex)
        for field in OnuField
    }


class OidProfileResolver:
    """Pure lookup from (board, pon) to an OidProfile."""

    def __init__(self, profiles: Mapping[PortCoordinate, OidProfile]) -> None:
        self._profiles: dict[PortCoordinate, OidProfile] = dict(profiles)

    @classmethod
    def from_settings(cls, olt: OltSettings) -> "OidProfileResolver":
        """Build the table from a template expanded over boards x pons, then explicit ports."""
        profiles: dict[PortCoordinate, OidProfile] = {}

        def _add(oids: PortOids, board: int, pon: int) -> None:
            coord = PortCoordinate(board=board, pon=pon)
            profiles[coord] = OidProfile(
                coordinate=coord,
                base_oid_1=olt.base_oid_1,
                base_oid_2=olt.base_oid_2,
                suffixes=_expand(oids, board, pon),
            )

        if olt.template is not None:
            for board in olt.template_boards:
                for pon in olt.template_pons:
                    _add(olt.template, board, pon)
        for port in olt.ports:
            _add(port, port.board, port.pon)

        return cls(profiles)

    def resolve(self, board: int, pon: int) -> OidProfile:
        """Return the profile for (board, pon).

        Raises:
            InvalidCoordinate: the port is not in the configured table.
        """
        profile = self._profiles.get(PortCoordinate(board=board, pon=pon))
        if profile is None:
            raise InvalidCoordinate(f"invalid board/pon {board}/{pon}", board=board, pon=pon)
        return profile

    def coordinates(self) -> list[PortCoordinate]:
        return sorted(self._profiles, key=lambda c: (c.board, c.pon))

    def __contains__(self, coord: object) -> bool:
        return coord in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)

    @staticmethod
    def validate_onu_id(onu_id: int, board: int | None = None, pon: int | None = None) -> None:
        if not 1 <= onu_id <= ONU_SLOTS_PER_PON:
            raise InvalidCoordinate(
                f"invalid onu id {onu_id} (expected 1..{ONU_SLOTS_PER_PON})",
                board=board,
                pon=pon,
                onu_id=onu_id,
            )
