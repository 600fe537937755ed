"""Decoders turning raw SNMP values into ONU fields.

Every decoder either returns a typed value or raises DecodeError; callers absorb
DecodeError per field. Serial number and timestamp encodings are vendor specific
and can be swapped via FieldDecoders.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from oltmon.exceptions import DecodeError

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

STATUS_ONLINE = "Online"
STATUS_OFFLINE = "Offline"
_STATUS_ONLINE_CODE = 4

PHASE_READY = "ready"
PHASE_STATES: dict[int, str] = {
    1: "logging",
    2: "los",
    3: "syncMib",
    4: PHASE_READY,
    5: "dyingGasp",
    6: "authFailed",
    7: "offline",
}

OFFLINE_REASONS: dict[int, str] = {
    1: "Unknown",
    2: "LOS",
    3: "LOSi",
    4: "LOFi",
    5: "sfi",
    6: "loki",
    7: "sufi",
    8: "AuthFail",
    9: "PowerOff",
    10: "deactiveSucc",
    11: "deactiveFail",
    12: "Reboot",
    13: "Shutdown",
}

_DURATION_RE = re.compile(r"(-?\d+) days (-?\d+) hours (-?\d+) minutes (-?\d+) seconds")


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise DecodeError(f"expected integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("ascii", errors="replace")
    try:
        return int(str(value).strip())
    except ValueError as e:
        raise DecodeError(f"expected integer, got {value!r}") from e


def extract_onu_id(oid_name: str) -> int:
    """Return the trailing numeric component of an OID name (the ONU slot id)."""
    last = oid_name.rstrip(".").rsplit(".", 1)[-1]
    if not last.isdigit():
        raise DecodeError(f"no numeric ONU id in {oid_name!r}")
    return int(last)


def decode_text(value: Any) -> str:
    """Decode an OCTET STRING, dropping non-printable padding."""
    if value is None:
        raise DecodeError("empty value")
    if isinstance(value, (bytes, bytearray)):
        text = bytes(value).decode("utf-8", errors="replace")
    else:
        text = str(value)
    return "".join(ch for ch in text if ch.isprintable()).strip()


def decode_serial_number(value: Any) -> str:
    """Decode a GPON serial number.

    Handles the ``"1,ZTEGC0FFEE01"`` text form and the raw 8-byte form
    (4 ASCII vendor bytes followed by 4 binary bytes rendered as hex).
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
        if len(raw) == 8 and all(0x41 <= b <= 0x5A for b in raw[:4]):
            tail = raw[4:]
            if not all(0x20 <= b < 0x7F for b in tail):
                return raw[:4].decode("ascii") + tail.hex().upper()
    text = decode_text(value)
    if "," in text:
        text = text.split(",", 1)[1].strip()
    if not text:
        raise DecodeError("empty serial number")
    return text


def decode_status(value: Any) -> str:
    return STATUS_ONLINE if _as_int(value) == _STATUS_ONLINE_CODE else STATUS_OFFLINE


def decode_phase_state(value: Any) -> str:
    return PHASE_STATES.get(_as_int(value), "unknown")


def decode_power(value: Any, scale: float = 0.002, offset: float = -30.0, ceiling: float = 100.0) -> float:
    """Convert a raw optical power reading to dBm.

    Readings at or above ``ceiling`` mean an unpopulated or faulty port.
    """
    dbm = round(_as_int(value) * scale + offset, 2)
    if dbm >= ceiling:
        raise DecodeError(f"power reading {dbm} dBm at or above ceiling {ceiling}")
    return dbm


def decode_date_and_time(value: Any) -> str:
    """Decode an RFC 2579 DateAndTime (or an already formatted string) to ``YYYY-MM-DD HH:MM:SS``."""
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), TIMESTAMP_FORMAT).strftime(TIMESTAMP_FORMAT)
        except ValueError as e:
            raise DecodeError(f"unparsable timestamp {value!r}") from e
    if not isinstance(value, (bytes, bytearray)) or len(value) < 7:
        raise DecodeError(f"not a DateAndTime value: {value!r}")
    raw = bytes(value)
    year = int.from_bytes(raw[0:2], "big")
    try:
        dt = datetime(year, raw[2], raw[3], raw[4], raw[5], raw[6])
    except ValueError as e:
        raise DecodeError(f"invalid DateAndTime {raw.hex()}: {e}") from e
    return dt.strftime(TIMESTAMP_FORMAT)


def decode_offline_reason(value: Any) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        return OFFLINE_REASONS.get(value, f"Unknown({value})")
    text = decode_text(value)
    if text.isdigit():
        code = int(text)
        return OFFLINE_REASONS.get(code, f"Unknown({code})")
    if not text:
        raise DecodeError("empty offline reason")
    return text


def decode_optical_distance(value: Any) -> float:
    """Optical distance in metres."""
    distance = float(_as_int(value))
    if distance < 0:
        raise DecodeError(f"negative optical distance {distance}")
    return distance


def parse_timestamp(text: str) -> datetime:
    try:
        return datetime.strptime(text, TIMESTAMP_FORMAT)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"unparsable timestamp {text!r}") from e


def timestamp_to_epoch(text: str) -> float:
    """Canonical timestamp (read as UTC) to Unix epoch seconds."""
    return parse_timestamp(text).replace(tzinfo=timezone.utc).timestamp()


def format_duration(seconds: float) -> str:
    """Render a span as ``D days H hours M minutes S seconds``; negative spans clamp to zero."""
    total = max(int(seconds), 0)
    days, total = divmod(total, 86400)
    hours, total = divmod(total, 3600)
    mins, secs = divmod(total, 60)
    return f"{days} days {hours} hours {mins} minutes {secs} seconds"


def parse_duration_seconds(text: str) -> int:
    m = _DURATION_RE.fullmatch(text.strip())
    if not m:
        raise DecodeError(f"unparsable duration {text!r}")
    days, hours, mins, secs = (int(g) for g in m.groups())
    return days * 86400 + hours * 3600 + mins * 60 + secs


@dataclass(frozen=True)
class FieldDecoders:
    """Decoder set used by the acquisition service.

    ``serial`` and ``timestamp`` are the device-specific codecs; the power
    parameters come from configuration.
    """

    serial: Callable[[Any], str] = decode_serial_number
    timestamp: Callable[[Any], str] = decode_date_and_time
    power_scale: float = 0.002
    power_offset: float = -30.0
    power_ceiling: float = 100.0

    def power(self, value: Any) -> float:
        return decode_power(value, self.power_scale, self.power_offset, self.power_ceiling)
