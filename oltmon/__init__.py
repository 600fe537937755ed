"""OLT ONU Monitoring Library.

Polls a GPON OLT over SNMPv2c for per-port ONU inventory and optical
telemetry, caches listings in Redis and republishes them as Prometheus
metrics.
"""

__version__ = "0.1.0"

import os
import sys
from typing import Any, Callable, Dict

from loguru import logger as glogger

glogger.disable(__name__)


def _loguru_skiplog_filter(record: dict) -> bool:  # type: ignore[type-arg]
    """Filter function to hide records with ``extra['skiplog']`` set."""
    return not record.get("extra", {}).get("skiplog", False)


def configure_logging(
    loguru_filter: Callable[[Dict[str, Any]], bool] = _loguru_skiplog_filter,
) -> None:
    """Configure a default ``loguru`` sink with a convenient format and filter."""
    os.environ["LOGURU_LEVEL"] = os.getenv("LOGURU_LEVEL", "DEBUG")
    glogger.remove()
    logger_fmt: str = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{module}</cyan>::<cyan>{extra[classname]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )
    glogger.add(sys.stderr, level=os.getenv("LOGURU_LEVEL"), format=logger_fmt, filter=loguru_filter)  # type: ignore[arg-type]
    glogger.configure(extra={"classname": "None", "skiplog": False})
    glogger.enable(__name__)


from oltmon.acquisition.models import (  # noqa: E402
    FreeSlot,
    PortCoordinate,
    TerminalDetail,
    TerminalPage,
    TerminalSerial,
    TerminalSummary,
)
from oltmon.acquisition.service import AcquisitionService  # noqa: E402
from oltmon.config import AppConfig, load_config  # noqa: E402
from oltmon.exceptions import (  # noqa: E402
    CacheUnavailable,
    CacheWriteFailed,
    ConfigError,
    DecodeError,
    InvalidCoordinate,
    OltError,
    ProtocolError,
    TerminalNotFound,
)

__all__ = [
    "glogger",
    "configure_logging",
    "load_config",
    "AppConfig",
    "AcquisitionService",
    "PortCoordinate",
    "FreeSlot",
    "TerminalSerial",
    "TerminalSummary",
    "TerminalDetail",
    "TerminalPage",
    "OltError",
    "ConfigError",
    "InvalidCoordinate",
    "ProtocolError",
    "DecodeError",
    "TerminalNotFound",
    "CacheUnavailable",
    "CacheWriteFailed",
]
