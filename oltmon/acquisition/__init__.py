"""ONU acquisition: OID profiles, decoders, coalescing and the acquisition service."""

from oltmon.acquisition.coalescer import RequestCoalescer
from oltmon.acquisition.decoders import FieldDecoders
from oltmon.acquisition.models import (
    FreeSlot,
    PortCoordinate,
    TerminalDetail,
    TerminalIdentity,
    TerminalPage,
    TerminalSerial,
    TerminalSummary,
)
from oltmon.acquisition.profiles import OidProfile, OidProfileResolver, OnuField
from oltmon.acquisition.reconciler import free_slots
from oltmon.acquisition.service import AcquisitionService

__all__ = [
    "AcquisitionService",
    "FieldDecoders",
    "FreeSlot",
    "OidProfile",
    "OidProfileResolver",
    "OnuField",
    "PortCoordinate",
    "RequestCoalescer",
    "TerminalDetail",
    "TerminalIdentity",
    "TerminalPage",
    "TerminalSerial",
    "TerminalSummary",
    "free_slots",
]
