#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Fake sockets and a recording observer shared by the tests"""

from __future__ import annotations

import errno
import queue
import socket
import threading
import time

import pytest

from ssdp_discovery import SsdpDiscoveryObserver

_CLOSED = object()

class FakeSocket:
    """Stands in for a UDP socket. Datagrams queued with inject() are returned by recvfrom() in order."""

    def __init__(self, bind_error=None, send_error=None):
        self.incoming = queue.Queue()
        self.sent = []
        self.sockopts = []
        self.bound_addr = None
        self.timeout = None
        self.bind_error = bind_error
        self.send_error = send_error
        self.closed = threading.Event()

    def inject(self, data, host='192.168.1.20', port=1900):
        if isinstance(data, str):
            data = data.encode('utf-8')
        self.incoming.put((data, (host, port)))

    def inject_error(self, error):
        self.incoming.put(error)

    def bind(self, addr):
        if self.bind_error is not None:
            raise self.bind_error
        self.bound_addr = (addr[0] or '0.0.0.0', 49152 if addr[1] == 0 else addr[1])

    def getsockname(self):
        return self.bound_addr

    def setsockopt(self, *args):
        self.sockopts.append(args)

    def settimeout(self, timeout):
        self.timeout = timeout

    def sendto(self, data, addr):
        if self.closed.is_set():
            raise OSError(errno.EBADF, "Bad file descriptor")
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((data, addr))
        return len(data)

    def recvfrom(self, bufsize):
        if self.closed.is_set():
            raise OSError(errno.EBADF, "Bad file descriptor")
        try:
            item = self.incoming.get(timeout=self.timeout)
        except queue.Empty:
            raise socket.timeout("timed out")
        if item is _CLOSED:
            raise OSError(errno.EBADF, "Bad file descriptor")
        if isinstance(item, BaseException):
            raise item
        return item

    def shutdown(self, how):
        self.incoming.put(_CLOSED)
        raise OSError(errno.ENOTCONN, "Transport endpoint is not connected")

    def close(self):
        self.closed.set()
        self.incoming.put(_CLOSED)

class FakeSocketFactory:
    """A SocketFactory that hands out FakeSockets and remembers them."""

    def __init__(self, *sockets):
        self.pending = list(sockets)
        self.created = []

    def __call__(self):
        sock = self.pending.pop(0) if len(self.pending) > 0 else FakeSocket()
        self.created.append(sock)
        return sock

    @property
    def last(self):
        return self.created[-1]

class RecordingObserver(SsdpDiscoveryObserver):
    def __init__(self):
        self.events = []
        self.lock = threading.Lock()
        self.finished = threading.Event()

    def _record(self, *event):
        with self.lock:
            self.events.append(event)

    def on_discovery_started(self, discovery):
        self._record('started')

    def on_service_discovered(self, discovery, service):
        self._record('service', service)

    def on_discovery_failed(self, discovery, error):
        self._record('failed', error)

    def on_discovery_finished(self, discovery):
        self._record('finished')
        self.finished.set()

    @property
    def kinds(self):
        with self.lock:
            return [event[0] for event in self.events]

    @property
    def services(self):
        with self.lock:
            return [event[1] for event in self.events if event[0] == 'service']

def wait_for(predicate, timeout=2.0):
    end_time = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() >= end_time:
            return False
        time.sleep(0.01)
    return True

@pytest.fixture
def fake_socket():
    return FakeSocket()

@pytest.fixture
def socket_factory(fake_socket):
    return FakeSocketFactory(fake_socket)

@pytest.fixture
def observer():
    return RecordingObserver()
