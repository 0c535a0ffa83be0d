"""
Unit tests for libs.realip.trust_set.

Covers:
- IP / CIDR / hostname spec compilation
- fail-closed empty set and explicit trust_all mode
- fatal configuration errors (malformed literals, DNS failure, DNS timeout)
"""

from __future__ import annotations

import ipaddress
import logging
import socket
import threading
from unittest.mock import patch

import pytest

from libs.realip.exceptions import ConfigurationError
from libs.realip.trust_set import ProxyTrustSet, parse_proxy_spec, resolve_hostname


def _addrinfo(*addresses: str) -> list[tuple]:
    infos = []
    for address in addresses:
        if ":" in address:
            infos.append((socket.AF_INET6, socket.SOCK_STREAM, 6, "", (address, 0, 0, 0)))
        else:
            infos.append((socket.AF_INET, socket.SOCK_STREAM, 6, "", (address, 0)))
    return infos


class TestParseProxySpec:
    @pytest.mark.parametrize(
        ("spec", "contained"),
        [
            ("0.0.0.0/0", "127.42.24.1"),
            ("110.110.110.110", "110.110.110.110"),
            ("127.0.0.1", "127.0.0.1"),
            ("192.168.0.0/16", "192.168.0.100"),
            ("2001:db8::/32", "2001:db8::beef"),
            ("::1", "::1"),
        ],
    )
    def test_spec_contains_expected_ip(self, spec: str, contained: str) -> None:
        networks = parse_proxy_spec(spec)

        assert networks
        assert any(ipaddress.ip_address(contained) in n for n in networks)

    def test_ipv4_literal_becomes_slash_32(self) -> None:
        assert parse_proxy_spec("10.1.2.3") == [ipaddress.ip_network("10.1.2.3/32")]

    def test_ipv6_literal_becomes_slash_128(self) -> None:
        assert parse_proxy_spec("fd00::1") == [ipaddress.ip_network("fd00::1/128")]

    def test_cidr_host_bits_are_masked(self) -> None:
        assert parse_proxy_spec("192.168.1.1/16") == [ipaddress.ip_network("192.168.0.0/16")]

    def test_surrounding_whitespace_is_ignored(self) -> None:
        assert parse_proxy_spec("  10.0.0.0/8 ") == [ipaddress.ip_network("10.0.0.0/8")]

    @pytest.mark.parametrize("spec", ["10.0.0.0/33", "10.0.0/8", "not-a-cidr/8", "::1/129"])
    def test_malformed_cidr_is_fatal(self, spec: str) -> None:
        with pytest.raises(ConfigurationError) as excinfo:
            parse_proxy_spec(spec)

        assert excinfo.value.spec == spec

    @pytest.mark.parametrize(
        "spec",
        ["10.1", "10.0.0", "0x7f.1", "0x7f000001", "1", "256.1.1.1", "1.2.3.4.5", "fe80::1%eth0", "::1::2"],
    )
    def test_malformed_ip_literal_is_fatal(self, spec: str) -> None:
        with patch("libs.realip.trust_set.socket.getaddrinfo") as getaddrinfo:
            with pytest.raises(ConfigurationError, match="invalid IP literal") as excinfo:
                parse_proxy_spec(spec)

        getaddrinfo.assert_not_called()
        assert excinfo.value.spec == spec

    @pytest.mark.parametrize("spec", ["", "   "])
    def test_empty_spec_is_fatal(self, spec: str) -> None:
        with pytest.raises(ConfigurationError, match="empty"):
            parse_proxy_spec(spec)

    def test_localhost_resolves_to_loopback(self) -> None:
        networks = parse_proxy_spec("localhost")

        assert networks
        assert any(ipaddress.ip_address("127.0.0.1") in n for n in networks if n.version == 4) or any(
            ipaddress.ip_address("::1") in n for n in networks if n.version == 6
        )


class TestHostnameResolution:
    def test_all_addresses_become_singleton_networks(self) -> None:
        with patch(
            "libs.realip.trust_set.socket.getaddrinfo",
            return_value=_addrinfo("10.1.0.1", "10.1.0.2", "fd00::7", "10.1.0.1"),
        ):
            networks = parse_proxy_spec("lb.internal")

        assert networks == [
            ipaddress.ip_network("10.1.0.1/32"),
            ipaddress.ip_network("10.1.0.2/32"),
            ipaddress.ip_network("fd00::7/128"),
        ]

    def test_lookup_error_is_fatal(self) -> None:
        with patch(
            "libs.realip.trust_set.socket.getaddrinfo",
            side_effect=socket.gaierror(socket.EAI_NONAME, "Name or service not known"),
        ):
            with pytest.raises(ConfigurationError, match="invalid hostname") as excinfo:
                parse_proxy_spec("does-not-exist.invalid")

        assert excinfo.value.spec == "does-not-exist.invalid"

    def test_empty_answer_is_fatal(self) -> None:
        with patch("libs.realip.trust_set.socket.getaddrinfo", return_value=[]):
            with pytest.raises(ConfigurationError, match="no addresses"):
                resolve_hostname("empty.internal")

    def test_timeout_is_fatal(self) -> None:
        release = threading.Event()

        def _hang(hostname: str) -> list:
            release.wait(timeout=5)
            return []

        try:
            with patch("libs.realip.trust_set._lookup_host", side_effect=_hang):
                with pytest.raises(ConfigurationError, match="timed out"):
                    resolve_hostname("slow.internal", timeout=0.05)
        finally:
            release.set()

    def test_resolution_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="libs.realip.trust_set")
        with patch("libs.realip.trust_set.socket.getaddrinfo", return_value=_addrinfo("10.9.9.9")):
            parse_proxy_spec("proxy.internal")

        assert "Resolved trusted proxy hostname" in caplog.text


class TestProxyTrustSet:
    def test_empty_set_trusts_nobody(self) -> None:
        trust = ProxyTrustSet.build([])

        assert len(trust) == 0
        assert not trust.contains("127.0.0.1")
        assert not trust.contains("::1")

    def test_default_constructor_trusts_nobody(self) -> None:
        assert not ProxyTrustSet().contains("10.0.0.1")

    def test_trust_all_trusts_everybody(self, caplog: pytest.LogCaptureFixture) -> None:
        trust = ProxyTrustSet.build([], trust_all=True)

        assert trust.contains("8.8.8.8")
        assert trust.contains("2001:db8::1")
        assert "INSECURE" in caplog.text

    def test_trust_all_still_rejects_non_ips(self) -> None:
        assert not ProxyTrustSet.build([], trust_all=True).contains("not-an-ip")

    def test_contains_mixed_families(self) -> None:
        trust = ProxyTrustSet.build(["192.168.0.0/16", "2001:db8::/32"])

        assert trust.contains("192.168.10.10")
        assert trust.contains(ipaddress.ip_address("2001:db8::1"))
        assert not trust.contains("10.0.0.1")
        assert not trust.contains("2001:db9::1")

    def test_contains_ipv4_mapped_ipv6(self) -> None:
        trust = ProxyTrustSet.build(["10.0.0.0/8"])

        assert trust.contains("::ffff:10.1.2.3")
        assert trust.contains(ipaddress.ip_address("::ffff:10.1.2.3"))

    def test_in_operator(self) -> None:
        trust = ProxyTrustSet.build(["10.0.0.1"])

        assert "10.0.0.1" in trust
        assert ipaddress.ip_address("10.0.0.1") in trust
        assert "10.0.0.2" not in trust
        assert 42 not in trust

    def test_unparsable_string_is_not_trusted(self) -> None:
        assert not ProxyTrustSet.build(["0.0.0.0/0"]).contains("garbage")

    def test_duplicates_are_collapsed(self) -> None:
        trust = ProxyTrustSet.build(["10.0.0.1", "10.0.0.1/32", "10.0.0.0/8"])

        assert list(trust) == [
            ipaddress.ip_network("10.0.0.1/32"),
            ipaddress.ip_network("10.0.0.0/8"),
        ]

    def test_first_bad_spec_aborts_build(self) -> None:
        with pytest.raises(ConfigurationError):
            ProxyTrustSet.build(["10.0.0.0/8", "10.0.0.0/99", "192.168.0.0/16"])

    def test_is_immutable(self) -> None:
        trust = ProxyTrustSet.build(["10.0.0.0/8"])

        with pytest.raises(AttributeError):
            trust.networks = ()  # type: ignore[misc]
