"""Exception hierarchy for OLT polling and ONU inventory."""


class OltError(Exception):
    """Base exception for all OLT acquisition errors."""


class ConfigError(OltError):
    """Configuration file missing or invalid."""


class InvalidCoordinate(OltError):
    """Board, PON or ONU id outside the configured table."""

    def __init__(self, message: str, board: int | None = None, pon: int | None = None, onu_id: int | None = None):
        self.board = board
        self.pon = pon
        self.onu_id = onu_id
        super().__init__(message)


class ProtocolError(OltError):
    """SNMP connect, get or walk against the device failed."""

    def __init__(self, message: str, oid: str | None = None):
        self.oid = oid
        super().__init__(message)


class DecodeError(OltError):
    """A raw SNMP value could not be decoded into a field."""


class TerminalNotFound(OltError):
    """No ONU registered under the requested id."""


class CacheUnavailable(OltError):
    """Cache store could not be read."""


class CacheWriteFailed(OltError):
    """Cache store could not be written."""
