"""Tests for oltmon/exceptions.py"""

import pytest

from oltmon.exceptions import (
    CacheUnavailable,
    CacheWriteFailed,
    ConfigError,
    DecodeError,
    InvalidCoordinate,
    OltError,
    ProtocolError,
    TerminalNotFound,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc_cls",
        [ConfigError, InvalidCoordinate, ProtocolError, DecodeError, TerminalNotFound, CacheUnavailable, CacheWriteFailed],
    )
    def test_all_derive_from_olt_error(self, exc_cls):
        assert issubclass(exc_cls, OltError)

    def test_olt_error_is_exception(self):
        assert issubclass(OltError, Exception)


class TestAttributes:
    def test_invalid_coordinate(self):
        e = InvalidCoordinate("invalid onu id 200", board=1, pon=2, onu_id=200)

        assert str(e) == "invalid onu id 200"
        assert (e.board, e.pon, e.onu_id) == (1, 2, 200)

    def test_invalid_coordinate_defaults(self):
        e = InvalidCoordinate("bad")

        assert e.board is None
        assert e.onu_id is None

    def test_protocol_error_oid(self):
        e = ProtocolError("timeout", oid="1.3.6.1")

        assert str(e) == "timeout"
        assert e.oid == "1.3.6.1"

    def test_catch_as_base(self):
        with pytest.raises(OltError):
            raise TerminalNotFound("no ONU 5")
