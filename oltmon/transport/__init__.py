"""SNMP transports: pysnmp-backed and in-memory."""

from oltmon.transport.base import BaseSnmpTransport, SnmpPdu, WalkVisitor
from oltmon.transport.memory import MemoryTransport
from oltmon.transport.snmp import SnmpTransport

__all__ = [
    "BaseSnmpTransport",
    "SnmpPdu",
    "WalkVisitor",
    "MemoryTransport",
    "SnmpTransport",
]
