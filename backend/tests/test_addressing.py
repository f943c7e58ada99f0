"""Tests for the addressing module."""

import netifaces
import pytest

from findpi.scanner import addressing
from findpi.scanner.addressing import generate_address_space, get_local_addresses, to_cidr


class TestGenerateAddressSpace:
    """Tests for generate_address_space."""

    @pytest.mark.parametrize("address", ["192.168.1.37", "10.0.0.5", "172.16.254.1", "10.0.0.0"])
    def test_returns_254_ascending_hosts(self, address):
        """Every valid address yields .1 through .254 of its /24."""
        base = address.rsplit(".", 1)[0]
        result = generate_address_space(address)
        assert len(result) == 254
        assert result == [f"{base}.{i}" for i in range(1, 255)]

    def test_includes_the_address_itself(self):
        """The scanning host's own address is not excluded."""
        assert "192.168.1.37" in generate_address_space("192.168.1.37")

    @pytest.mark.parametrize("address", ["", "10.0.0", "10.0.0.5.1", "not.an.ip.addr", "300.1.1.1"])
    def test_malformed_input_returns_empty(self, address):
        assert generate_address_space(address) == []


class TestToCidr:
    def test_converts_to_slash_24(self):
        assert to_cidr("192.168.1.37") == "192.168.1.0/24"

    def test_malformed_input_is_returned_unchanged(self):
        assert to_cidr("garbage") == "garbage"


class TestGetLocalAddresses:
    """Tests for get_local_addresses with a faked netifaces."""

    def _fake_interfaces(self, monkeypatch, table):
        monkeypatch.setattr(addressing.netifaces, "interfaces", lambda: list(table))
        monkeypatch.setattr(addressing.netifaces, "ifaddresses", lambda name: table[name])

    def test_skips_loopback_and_ipv6_only(self, monkeypatch):
        """Only non-loopback IPv4 addresses are returned, in interface order."""
        self._fake_interfaces(monkeypatch, {
            "lo": {netifaces.AF_INET: [{"addr": "127.0.0.1", "netmask": "255.0.0.0"}]},
            "eth0": {netifaces.AF_INET: [{"addr": "192.168.1.10", "netmask": "255.255.255.0"}]},
            "wlan0": {netifaces.AF_INET6: [{"addr": "fe80::1"}]},
            "docker0": {netifaces.AF_INET: [{"addr": "172.17.0.1", "netmask": "255.255.0.0"}]},
        })
        assert get_local_addresses() == ["192.168.1.10", "172.17.0.1"]

    def test_duplicates_are_dropped(self, monkeypatch):
        self._fake_interfaces(monkeypatch, {
            "eth0": {netifaces.AF_INET: [{"addr": "10.0.0.5"}]},
            "eth0:1": {netifaces.AF_INET: [{"addr": "10.0.0.5"}]},
        })
        assert get_local_addresses() == ["10.0.0.5"]

    def test_no_interfaces(self, monkeypatch):
        self._fake_interfaces(monkeypatch, {})
        assert get_local_addresses() == []
