"""In-memory SNMP transport for tests and dry runs."""

from __future__ import annotations

import asyncio
from typing import Any

from oltmon.exceptions import ProtocolError
from oltmon.transport.base import BaseSnmpTransport, SnmpPdu, WalkVisitor, normalize_oid


def _oid_key(oid: str) -> tuple[int, ...]:
    return tuple(int(part) for part in oid.split("."))


class MemoryTransport(BaseSnmpTransport):
    """Dict-backed agent emulation.

    Records every call, can inject a per-call delay and fail chosen OIDs
    (an entry in ``failures`` also fails every OID below it).
    """

    def __init__(self, values: dict[str, Any] | None = None, delay: float = 0.0, host: str = "memory") -> None:
        super().__init__(host)
        self.values: dict[str, Any] = {}
        self.failures: dict[str, Exception] = {}
        self.delay = delay
        self.get_calls: list[str] = []
        self.walk_calls: list[str] = []
        self.sessions_opened = 0
        self.open_sessions = 0
        self.max_open_sessions = 0
        for oid, value in (values or {}).items():
            self.set(oid, value)

    def set(self, oid: str, value: Any) -> None:
        self.values[normalize_oid(oid)] = value

    def fail(self, oid: str, error: Exception | None = None) -> None:
        oid = normalize_oid(oid)
        self.failures[oid] = error or ProtocolError(f"SNMP request timeout on {oid}", oid=oid)

    def _failure_for(self, oid: str) -> Exception | None:
        for prefix, error in self.failures.items():
            if oid == prefix or oid.startswith(prefix + "."):
                return error
        return None

    async def _enter(self, oid: str) -> None:
        self.sessions_opened += 1
        self.open_sessions += 1
        self.max_open_sessions = max(self.max_open_sessions, self.open_sessions)
        if self.delay:
            await asyncio.sleep(self.delay)
        error = self._failure_for(oid)
        if error is not None:
            raise error

    async def get(self, oid: str) -> Any:
        oid = normalize_oid(oid)
        self.get_calls.append(oid)
        try:
            await self._enter(oid)
            if oid not in self.values:
                raise ProtocolError(f"SNMP get [{self.host}] {oid}: no such object", oid=oid)
            return self.values[oid]
        finally:
            self.open_sessions -= 1

    async def walk(self, oid: str, visit: WalkVisitor) -> None:
        oid = normalize_oid(oid)
        self.walk_calls.append(oid)
        try:
            await self._enter(oid)
            rows = sorted((k for k in self.values if k.startswith(oid + ".")), key=_oid_key)
            if not rows and oid in self.values:
                rows = [oid]
            for name in rows:
                if visit(SnmpPdu(name=name, value=self.values[name])) is False:
                    return
        finally:
            self.open_sessions -= 1
