"""Tests for oltmon/acquisition/profiles.py"""

import pytest

from oltmon.acquisition.models import PortCoordinate
from oltmon.acquisition.profiles import OidProfileResolver, OnuField, interface_index
from oltmon.config import OltSettings, PortOids, PortOverride
from oltmon.exceptions import InvalidCoordinate

BASE1 = "1.3.6.1.4.1.3902.1012"
BASE2 = "1.3.6.1.4.1.3902.1015"


def _oids(**overrides):
    values = {
        "onu_id_name": ".3.28.1.1.2.{ifindex}",
        "onu_type": ".1010.11.2.1.17.{ifindex}",
        "onu_serial_number": ".3.28.1.1.5.{ifindex}",
        "onu_rx_power": ".3.50.12.1.1.10.{ifindex}",
        "onu_tx_power": ".1010.11.4.1.1.{ifindex}",
        "onu_status_id": ".3.28.2.1.4.{ifindex}",
        "onu_ip_address": ".1010.11.2.1.10.{ifindex}",
        "onu_description": ".3.28.1.1.3.{ifindex}",
        "onu_last_online_time": ".3.28.2.1.5.{ifindex}",
        "onu_last_offline_time": ".3.28.2.1.6.{ifindex}",
        "onu_last_offline_reason": ".3.28.2.1.7.{ifindex}",
        "onu_gpon_optical_distance": ".3.11.4.1.2.{ifindex}",
    }
    values.update(overrides)
    return values


class TestInterfaceIndex:
    """Tests for interface_index."""

    def test_board1_pon1(self):
        """Board 1 PON 1 maps to the well-known GPON ifIndex."""
        assert interface_index(1, 1) == 268501248

    def test_board2_pon16(self):
        """Board and pon occupy separate bytes."""
        assert interface_index(2, 16) == 0x10000000 | (2 << 16) | (16 << 8)


class TestResolverFromSettings:
    """Tests for building the profile table from configuration."""

    def test_template_expanded_over_default_range(self):
        """Template covers boards 1-2 x pons 1-16 by default."""
        resolver = OidProfileResolver.from_settings(
            OltSettings(base_oid_1=BASE1, base_oid_2=BASE2, template=PortOids(**_oids()))
        )

        assert len(resolver) == 32
        assert resolver.coordinates()[0] == PortCoordinate(board=1, pon=1)
        assert resolver.coordinates()[-1] == PortCoordinate(board=2, pon=16)

    def test_ifindex_placeholder(self):
        """{ifindex} is replaced by the port's interface index."""
        resolver = OidProfileResolver.from_settings(
            OltSettings(base_oid_1=BASE1, base_oid_2=BASE2, template=PortOids(**_oids()))
        )

        profile = resolver.resolve(1, 2)

        assert profile.oid(OnuField.NAME) == f"{BASE1}.3.28.1.1.2.{interface_index(1, 2)}"

    def test_explicit_port_overrides_template(self):
        """An explicit port entry replaces the template's entry for that coordinate."""
        override = PortOverride(board=1, pon=1, **_oids(onu_id_name=".99.1"))
        resolver = OidProfileResolver.from_settings(
            OltSettings(base_oid_1=BASE1, base_oid_2=BASE2, template=PortOids(**_oids()), ports=[override])
        )

        assert resolver.resolve(1, 1).oid(OnuField.NAME) == f"{BASE1}.99.1"
        assert resolver.resolve(1, 2).oid(OnuField.NAME) != f"{BASE1}.99.1"

    def test_explicit_ports_only(self):
        """Without a template only the listed ports are valid."""
        resolver = OidProfileResolver.from_settings(
            OltSettings(base_oid_1=BASE1, base_oid_2=BASE2, ports=[PortOverride(board=3, pon=4, **_oids())])
        )

        assert len(resolver) == 1
        assert PortCoordinate(board=3, pon=4) in resolver
        with pytest.raises(InvalidCoordinate):
            resolver.resolve(1, 1)

    def test_settings_without_table_rejected(self):
        """OltSettings needs a template or explicit ports."""
        with pytest.raises(ValueError):
            OltSettings(base_oid_1=BASE1, base_oid_2=BASE2)


class TestResolve:
    """Tests for resolve()."""

    def test_valid_coordinate(self, resolver):
        """Known coordinates return their profile."""
        profile = resolver.resolve(2, 16)

        assert profile.coordinate == PortCoordinate(board=2, pon=16)

    @pytest.mark.parametrize("board,pon", [(0, 1), (3, 1), (1, 0), (1, 17), (-1, -1)])
    def test_invalid_coordinate(self, resolver, board, pon):
        """Coordinates outside the table raise InvalidCoordinate."""
        with pytest.raises(InvalidCoordinate) as exc_info:
            resolver.resolve(board, pon)

        assert exc_info.value.board == board
        assert exc_info.value.pon == pon


class TestOidComposition:
    """Tests for OidProfile.oid() base selection and instance suffixes."""

    def test_identity_oid(self, profile):
        """Identity table is walked under base 1."""
        assert profile.identity_oid() == "1.3.6.1.4.1.3902.1012.1.1.1"
        assert profile.identity_oid(5) == "1.3.6.1.4.1.3902.1012.1.1.1.5"

    def test_rx_power_uses_base1_with_instance(self, profile):
        assert profile.oid(OnuField.RX_POWER, 5) == "1.3.6.1.4.1.3902.1012.4.1.1.5.1"

    def test_tx_power_uses_base2_with_instance(self, profile):
        assert profile.oid(OnuField.TX_POWER, 5) == "1.3.6.1.4.1.3902.1015.5.1.1.5.1"

    def test_ip_address_uses_base2_with_instance(self, profile):
        assert profile.oid(OnuField.IP_ADDRESS, 5) == "1.3.6.1.4.1.3902.1015.7.1.1.5.1"

    def test_type_uses_base2(self, profile):
        assert profile.oid(OnuField.TYPE, 5) == "1.3.6.1.4.1.3902.1015.2.1.1.5"

    @pytest.mark.parametrize(
        "field",
        [
            OnuField.SERIAL_NUMBER,
            OnuField.STATUS,
            OnuField.DESCRIPTION,
            OnuField.LAST_ONLINE,
            OnuField.LAST_OFFLINE,
            OnuField.OFFLINE_REASON,
            OnuField.OPTICAL_DISTANCE,
        ],
    )
    def test_category1_fields(self, profile, field):
        """Remaining fields combine base 1 with the plain ONU id."""
        oid = profile.oid(field, 7)

        assert oid.startswith("1.3.6.1.4.1.3902.1012.")
        assert oid.endswith(".1.1.7")

    def test_phase_state_falls_back_to_status(self, profile):
        """Without a dedicated phase-state suffix the status table is used."""
        assert profile.oid(OnuField.PHASE_STATE, 3) == profile.oid(OnuField.STATUS, 3)

    def test_profile_is_frozen(self, profile):
        """Profiles are immutable."""
        with pytest.raises(Exception):
            profile.base_oid_1 = "1.2.3"


class TestValidateOnuId:
    """Tests for validate_onu_id()."""

    @pytest.mark.parametrize("onu_id", [1, 64, 128])
    def test_in_range(self, onu_id):
        OidProfileResolver.validate_onu_id(onu_id)

    @pytest.mark.parametrize("onu_id", [0, -1, 129, 1000])
    def test_out_of_range(self, onu_id):
        """Ids outside 1..128 raise InvalidCoordinate carrying the id."""
        with pytest.raises(InvalidCoordinate) as exc_info:
            OidProfileResolver.validate_onu_id(onu_id, board=1, pon=1)

        assert exc_info.value.onu_id == onu_id
