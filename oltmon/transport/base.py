"""Abstract base transport for SNMP access to the OLT."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class SnmpPdu:
    """One OID/value pair returned by a get or walk. ``name`` is numeric, without leading dot."""

    name: str
    value: Any


# Return False to stop the walk early; any other value continues.
WalkVisitor = Callable[[SnmpPdu], Any]


def normalize_oid(oid: str) -> str:
    return oid.strip().strip(".")


class BaseSnmpTransport(ABC):
    """Abstract base class for SNMP transports.

    Implementations open a fresh session for every call and release it before
    returning, whatever the outcome. Failures raise ProtocolError.
    """

    def __init__(
        self,
        host: str,
        community: str = "public",
        port: int = 161,
        timeout: float = 3.0,
        retries: int = 1,
    ) -> None:
        self.host = host
        self.community = community
        self.port = port
        self.timeout = timeout
        self.retries = retries

    @abstractmethod
    async def get(self, oid: str) -> Any:
        """GET a single OID and return its value as plain Python (bytes, int or str)."""

    @abstractmethod
    async def walk(self, oid: str, visit: WalkVisitor) -> None:
        """Walk the subtree under ``oid``, calling ``visit`` for every PDU in order."""

    async def walk_all(self, oid: str) -> list[SnmpPdu]:
        """Walk the subtree and collect every PDU."""
        rows: list[SnmpPdu] = []
        await self.walk(oid, rows.append)
        return rows

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.host}:{self.port})"
