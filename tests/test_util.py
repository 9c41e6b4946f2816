#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

import netifaces

from ssdp_discovery import util

def test_split_lines_at_lf_or_crlf():
    assert util.split_lines_at_lf_or_crlf("a\r\nb\nc") == ["a", "b", "c"]
    assert util.split_lines_at_lf_or_crlf("a\r\nb\r\nc", 1) == ["a", "b\r\nc"]
    assert util.split_lines_at_lf_or_crlf("") == [""]

def test_split_headers_and_body():
    assert util.split_headers_and_body("A: 1\r\nB: 2\r\n\r\nbody") == ("A: 1\r\nB: 2", "body")
    assert util.split_headers_and_body("A: 1\n\nbody") == ("A: 1", "body")
    assert util.split_headers_and_body("A: 1") == ("A: 1", "")

def test_parse_http_headers():
    headers, body = util.parse_http_headers("ST: upnp:rootdevice\nLocation:  http://x/  \r\nEXT:\r\n")
    assert headers["st"] == "upnp:rootdevice"
    assert headers["LOCATION"] == "http://x/"
    assert headers["Ext"] == ""
    assert body == ""

def _fake_netifaces(monkeypatch, interfaces, default_ifname):
    monkeypatch.setattr(netifaces, "interfaces", lambda: list(interfaces.keys()))
    monkeypatch.setattr(netifaces, "ifaddresses",
                        lambda ifname: {netifaces.AF_INET: [{'addr': a} for a in interfaces[ifname]]})
    gateways = {"default": {netifaces.AF_INET: ("192.168.1.1", default_ifname)}} if default_ifname else {}
    monkeypatch.setattr(netifaces, "gateways", lambda: gateways)

def test_local_ip_addresses_prefer_default_gateway(monkeypatch):
    _fake_netifaces(monkeypatch, {
        "lo": ["127.0.0.1"],
        "docker0": ["172.17.0.1"],
        "wlan0": ["10.0.0.5"],
        "eth0": ["192.168.1.10"],
    }, "eth0")
    assert util.get_default_ip_gateway() == ("192.168.1.1", "eth0")
    assert util.get_local_ip_addresses() == ["192.168.1.10", "10.0.0.5", "172.17.0.1", "127.0.0.1"]
    assert util.get_local_ip_addresses(include_loopback=False) == ["192.168.1.10", "10.0.0.5", "172.17.0.1"]
    assert util.get_preferred_local_ip_address() == "192.168.1.10"

def test_no_default_gateway(monkeypatch):
    _fake_netifaces(monkeypatch, {"lo": ["127.0.0.1"]}, None)
    assert util.get_default_ip_gateway() == (None, None)
    assert util.get_local_ip_addresses() == ["127.0.0.1"]
    assert util.get_preferred_local_ip_address() is None
