"""pysnmp-backed SNMP v2c transport with one engine per call."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from loguru import logger
from pysnmp.error import PySnmpError
from pysnmp.hlapi.asyncio import (
    CommunityData,
    ContextData,
    ObjectIdentity,
    ObjectType,
    SnmpEngine,
    UdpTransportTarget,
    bulk_walk_cmd,
    get_cmd,
)
from pysnmp.proto.rfc1902 import IpAddress, ObjectName, OctetString
from pysnmp.proto.rfc1905 import EndOfMibView, NoSuchInstance, NoSuchObject

from oltmon.exceptions import ProtocolError
from oltmon.transport.base import BaseSnmpTransport, SnmpPdu, WalkVisitor, normalize_oid

_MISSING = object()
_TRANSPORT_ERRORS = (PySnmpError, OSError, asyncio.TimeoutError)


def _is_missing(val: Any) -> bool:
    return isinstance(val, (NoSuchObject, NoSuchInstance, EndOfMibView))


def _to_python(val: Any) -> Any:
    """Convert a pysnmp value to bytes / int / str."""
    if isinstance(val, IpAddress):
        return val.prettyPrint()
    if isinstance(val, OctetString):
        return bytes(val.asOctets())
    if isinstance(val, ObjectName):
        return str(val)
    try:
        return int(val)
    except (TypeError, ValueError):
        return val.prettyPrint()


def _oid_str(var_bind_oid: Any) -> str:
    """Numeric dotted form of a var-bind name (MIB resolution may have named it)."""
    if hasattr(var_bind_oid, "getOid"):
        return str(var_bind_oid.getOid())
    return normalize_oid(str(var_bind_oid))


class SnmpTransport(BaseSnmpTransport):
    """SNMP v2c client. Every get/walk builds its own engine and closes its dispatcher on exit."""

    max_repetitions = 25

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.sessions_opened = 0

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[tuple[Any, Any, Any]]:
        engine = SnmpEngine()
        try:
            try:
                target = await UdpTransportTarget.create(
                    (self.host, self.port), timeout=self.timeout, retries=self.retries
                )
            except _TRANSPORT_ERRORS as e:
                raise ProtocolError(f"SNMP connect to {self.host}:{self.port} failed: {e}") from e
            self.sessions_opened += 1
            # mpModel=1 selects SNMP v2c
            yield engine, CommunityData(self.community, mpModel=1), target
        finally:
            engine.close_dispatcher()

    async def _fetch(self, engine: Any, auth: Any, target: Any, oid: str) -> Any:
        try:
            error_indication, error_status, _, var_binds = await get_cmd(
                engine,
                auth,
                target,
                ContextData(),
                ObjectType(ObjectIdentity(oid)),
            )
        except _TRANSPORT_ERRORS as e:
            raise ProtocolError(f"SNMP get [{self.host}] {oid} failed: {e}", oid=oid) from e
        if error_indication:
            raise ProtocolError(f"SNMP get [{self.host}] {oid} failed: {error_indication}", oid=oid)
        if error_status:
            raise ProtocolError(f"SNMP get [{self.host}] {oid} failed: {error_status.prettyPrint()}", oid=oid)
        if not var_binds:
            return _MISSING
        _, val = var_binds[0]
        if _is_missing(val):
            return _MISSING
        return _to_python(val)

    async def get(self, oid: str) -> Any:
        oid = normalize_oid(oid)
        async with self._session() as (engine, auth, target):
            value = await self._fetch(engine, auth, target, oid)
        if value is _MISSING:
            raise ProtocolError(f"SNMP get [{self.host}] {oid}: no such object", oid=oid)
        return value

    async def walk(self, oid: str, visit: WalkVisitor) -> None:
        oid = normalize_oid(oid)
        seen = 0
        async with self._session() as (engine, auth, target):
            walker = bulk_walk_cmd(
                engine,
                auth,
                target,
                ContextData(),
                0,
                self.max_repetitions,  # nonRepeaters, maxRepetitions
                ObjectType(ObjectIdentity(oid)),
                lexicographicMode=False,
            )
            try:
                async for error_indication, error_status, _, var_binds in walker:
                    if error_indication:
                        raise ProtocolError(f"SNMP walk [{self.host}] {oid} failed: {error_indication}", oid=oid)
                    if error_status:
                        raise ProtocolError(
                            f"SNMP walk [{self.host}] {oid} failed: {error_status.prettyPrint()}", oid=oid
                        )
                    for var_bind_oid, val in var_binds:
                        if _is_missing(val):
                            continue
                        seen += 1
                        if visit(SnmpPdu(name=_oid_str(var_bind_oid), value=_to_python(val))) is False:
                            return
            except _TRANSPORT_ERRORS as e:
                raise ProtocolError(f"SNMP walk [{self.host}] {oid} failed: {e}", oid=oid) from e
            finally:
                await walker.aclose()

            if seen == 0:
                # walking an instance OID yields nothing; answer it with a get instead
                value = await self._fetch(engine, auth, target, oid)
                if value is not _MISSING:
                    logger.debug(f"SNMP walk [{self.host}] {oid}: leaf value")
                    visit(SnmpPdu(name=oid, value=value))
