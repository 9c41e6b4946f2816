#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

import errno
import functools
import json

import ssdp_discovery.__main__ as cli
from ssdp_discovery import SsdpDiscovery, __version__

from conftest import FakeSocket, FakeSocketFactory

RESPONSE = (
    "HTTP/1.1 200 OK\r\n"
    "CACHE-CONTROL: max-age=120\r\n"
    "LOCATION: http://192.168.1.30:80/desc.xml\r\n"
    "ST: upnp:rootdevice\r\n"
    "USN: uuid:cccc::upnp:rootdevice\r\n"
    "\r\n"
)

def _use_fake_sockets(monkeypatch, factory):
    monkeypatch.setattr(cli, "SsdpDiscovery",
                        functools.partial(SsdpDiscovery, socket_factory=factory, poll_interval=0.02))

def test_version(capsys):
    assert cli.run(["version"]) == 0
    assert capsys.readouterr().out.strip() == __version__

def test_bare_command(capsys):
    assert cli.run([]) == 1
    assert "A command is required" in capsys.readouterr().err

def test_bad_arguments():
    assert cli.run(["search", "--wait-time", "not-a-number"]) == 2

def test_search_prints_services(monkeypatch, capsys):
    sock = FakeSocket()
    sock.inject(RESPONSE, host="192.168.1.30")
    factory = FakeSocketFactory(sock)
    _use_fake_sockets(monkeypatch, factory)
    assert cli.run(["search", "--wait-time", "0.3", "--target", "upnp:rootdevice", "--port", "1900"]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["host"] == "192.168.1.30"
    assert summary["location"] == "http://192.168.1.30:80/desc.xml"
    assert summary["usn"] == "uuid:cccc::upnp:rootdevice"
    assert summary["max_age"] == 120
    assert b"ST: upnp:rootdevice\r\n" in sock.sent[0][0]

def test_search_bind_address(monkeypatch, capsys):
    sock = FakeSocket()
    _use_fake_sockets(monkeypatch, FakeSocketFactory(sock))
    assert cli.run(["search", "--wait-time", "0.1", "-b", "10.0.0.9"]) == 0
    assert sock.bound_addr == ("10.0.0.9", 49152)

def test_search_primary_interface(monkeypatch, capsys):
    sock = FakeSocket()
    _use_fake_sockets(monkeypatch, FakeSocketFactory(sock))
    monkeypatch.setattr(cli, "get_preferred_local_ip_address", lambda: "192.168.1.10")
    assert cli.run(["search", "--wait-time", "0.1", "--primary-interface"]) == 0
    assert sock.bound_addr == ("192.168.1.10", 49152)

def test_search_failure_reports_error(monkeypatch, capsys):
    sock = FakeSocket(send_error=OSError(errno.ENETUNREACH, "Network is unreachable"))
    _use_fake_sockets(monkeypatch, FakeSocketFactory(sock))
    assert cli.run(["search", "--wait-time", "5"]) == 1
    assert "ssdp: error:" in capsys.readouterr().err
