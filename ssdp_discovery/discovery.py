#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SsdpDiscovery -- An SSDP discovery session that can:

  1. Send an M-SEARCH request to the SSDP multicast address (typically 239.255.255.250:1900)
  2. Receive responses on a background thread and deliver each one to an observer as an SsdpService
  3. Stop after a fixed duration, on a socket error, or when the caller calls stop(), delivering
     exactly one finish notification in every case
"""

from __future__ import annotations

import queue
import socket
import threading
import weakref

from .internal_types import *
from .pkg_logging import logger
from .exceptions import SsdpError
from .constants import (
    SSDP_MULTICAST_ADDRESS,
    SSDP_PORT,
    DEFAULT_SEARCH_TARGET,
    DEFAULT_DISCOVERY_DURATION,
    MAX_DATAGRAM_SIZE,
    DEFAULT_POLL_INTERVAL,
    THREAD_JOIN_TIMEOUT,
  )

from .ssdp_message import build_search_request
from .ssdp_service import SsdpService

SocketFactory = Callable[[], socket.socket]
"""A callable that creates an unbound UDP socket"""

DiscoveryEvent = Callable[['SsdpDiscovery'], None]
"""A queued notification; called on the event thread with the session that started the run"""

def create_udp_socket() -> socket.socket:
    """The default SocketFactory: an IPv4 UDP socket."""
    return socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)

class SsdpDiscoveryObserver:
    """Receives notifications from an SsdpDiscovery.

    Every method is a no-op; subclasses override only the ones they need.

    All notifications for one call to discover_service() are delivered in order on a single
    background thread named "ssdp-discovery-events". They never run on the caller's thread,
    the reader thread or the timer thread, and no lock inside SsdpDiscovery is held while a
    hook runs. A hook may therefore take application locks that the caller also holds while
    calling stop(), and may itself call stop() or discover_service(). A hook must not block
    in wait(); called from a hook, wait() returns immediately.

    stop() returns without waiting for the observer. Use wait() to block until
    on_discovery_finished() has been delivered.

    For each call to discover_service(), on_discovery_started() comes first and
    on_discovery_finished() comes last, exactly once. If the session ended because of an
    error, on_discovery_failed() immediately precedes on_discovery_finished().
    """

    def on_discovery_started(self, discovery: SsdpDiscovery) -> None:
        """Called when discovery has started."""
        pass

    def on_service_discovered(self, discovery: SsdpDiscovery, service: SsdpService) -> None:
        """Called for every response received, in arrival order."""
        pass

    def on_discovery_finished(self, discovery: SsdpDiscovery) -> None:
        """Called when discovery has finished. No further notifications follow for this session."""
        pass

    def on_discovery_failed(self, discovery: SsdpDiscovery, error: BaseException) -> None:
        """Called when discovery ended because of an error."""
        pass

def _close_socket(sock: socket.socket) -> None:
    try:
        # Unconnected UDP sockets report ENOTCONN here, but a blocked recvfrom() still wakes up
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    try:
        sock.close()
    except OSError as e:
        logger.error(f"Error closing SSDP socket: {e}")

class _DiscoveryRun:
    """The state of a single discover_service() call.

    The reader thread, the timer and the event thread only hold this object, and reach the
    SsdpDiscovery that started them through a weak reference, so they never keep a discarded
    SsdpDiscovery alive.

    All paths that close the socket go through shutdown(), which runs its body at most once.
    Notifications are queued under the lock and delivered by the event thread without it.
    """

    discovery_ref: weakref.ref[SsdpDiscovery]
    socket_factory: SocketFactory
    poll_interval: float

    lock: threading.Lock
    """Guards sock, discovering and shutdown_done. A service notification is only queued while
       holding it, so none can be queued after the finish notification."""

    sock: Optional[socket.socket] = None
    discovering: bool = False
    shutdown_done: bool = False

    timer: Optional[threading.Timer] = None
    reader_thread: Optional[threading.Thread] = None

    events: queue.Queue[Optional[DiscoveryEvent]]
    """Notifications waiting for the event thread. None ends the run."""

    event_thread: threading.Thread

    done: threading.Event
    """Set after the final notification has been delivered."""

    def __init__(self, discovery: SsdpDiscovery, socket_factory: SocketFactory, poll_interval: float):
        self.discovery_ref = weakref.ref(discovery)
        self.socket_factory = socket_factory
        self.poll_interval = poll_interval
        self.lock = threading.Lock()
        self.done = threading.Event()
        self.events = queue.Queue()
        self.event_thread = threading.Thread(
            target=self._dispatch_events, name="ssdp-discovery-events", daemon=True)
        self.event_thread.start()

    def post(self, event: Optional[DiscoveryEvent]) -> None:
        self.events.put(event)

    def start(self, message: str, group_addr: HostAndPort, duration: float, bind_address: str) -> None:
        try:
            sock = self.socket_factory()
            with self.lock:
                if self.shutdown_done:
                    _close_socket(sock)
                    return
                self.sock = sock
                self.discovering = True
            sock.bind((bind_address, 0))
            if bind_address != '':
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(bind_address))
            sock.settimeout(self.poll_interval)
            logger.debug(f"SSDP socket bound to {sock.getsockname()}")

            self.reader_thread = threading.Thread(
                target=self._read_responses, name="ssdp-discovery-reader", daemon=True)
            self.reader_thread.start()

            timer = threading.Timer(duration, self._on_timeout)
            timer.daemon = True
            with self.lock:
                if not self.shutdown_done:
                    self.timer = timer
                    timer.start()

            logger.debug(f"Send to {group_addr}: {message!r}")
            sock.sendto(message.encode('utf-8'), group_addr)
        except Exception as e:
            logger.error(f"Socket error: {e}")
            self.shutdown(error=e)

    def shutdown(self, error: Optional[BaseException]=None) -> bool:
        """Closes the socket and queues the final notifications.

        The first call does the work and returns True. Later calls, including concurrent ones,
        return False without doing anything. Never waits for the observer.
        """
        with self.lock:
            if self.shutdown_done:
                return False
            self.shutdown_done = True
            self.discovering = False
            sock, self.sock = self.sock, None
            timer, self.timer = self.timer, None
            if sock is not None:
                _close_socket(sock)
            if timer is not None:
                timer.cancel()
            if error is not None:
                self.post(lambda d: d._notify_failed(error))
            self.post(lambda d: d._notify_finished())
            self.post(None)
        return True

    def join(self, timeout: float) -> None:
        """Join the reader and event threads, skipping the calling thread."""
        current = threading.current_thread()
        for thread in (self.reader_thread, self.event_thread):
            if thread is None or thread is current:
                continue
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(f"Thread {thread.name} did not exit within {timeout} seconds")

    def _deliver(self, event: DiscoveryEvent) -> None:
        discovery = self.discovery_ref()
        if discovery is not None:
            event(discovery)

    def _dispatch_events(self) -> None:
        try:
            while True:
                event = self.events.get()
                if event is None:
                    break
                self._deliver(event)
        finally:
            self.done.set()

    def _on_timeout(self) -> None:
        logger.debug("SSDP discovery duration elapsed")
        self.shutdown()

    def _read_responses(self) -> None:
        logger.debug("SSDP reader thread starting")
        while self.discovering:
            sock = self.sock
            if sock is None:
                break
            try:
                data, addr = sock.recvfrom(MAX_DATAGRAM_SIZE)
            except socket.timeout:
                continue
            except Exception as e:
                with self.lock:
                    discovering = self.discovering
                if discovering:
                    logger.error(f"Socket error: {e}")
                    self.shutdown(error=e)
                else:
                    logger.debug(f"Ignoring socket error after shutdown: {e}")
                break
            if len(data) == 0:
                continue
            response = data.decode('utf-8', errors='replace')
            service = SsdpService(addr[0], response)
            with self.lock:
                if not self.discovering:
                    logger.debug(f"Discarding response from {addr[0]} received during shutdown")
                    break
                logger.debug(f"Received: {response!r} from {addr[0]}")
                self.post(lambda d, service=service: d._notify_service(service))
        logger.debug("SSDP reader thread exiting")

class SsdpDiscovery:
    """
    SSDP discovery for UPnP devices on the LAN.

    Usage:
        class Observer(SsdpDiscoveryObserver):
            def on_service_discovered(self, discovery, service):
                print(service.location)

        observer = Observer()
        discovery = SsdpDiscovery(observer)
        discovery.discover_service(timeout=5.0, search_target="upnp:rootdevice")
        discovery.wait()

    The observer is held by weak reference; the caller must keep it alive for as long as it
    wants notifications.

    discover_service() is not reentrant: a session must finish (or be stopped) before the
    same instance can start another one.
    """

    socket_factory: SocketFactory
    """Creates the UDP socket for each session. Replaceable for testing."""

    bind_address: str = ''
    """The local address to bind to. '' binds to all interfaces and lets the OS pick the
       outgoing interface for the multicast request."""

    multicast_address: str = SSDP_MULTICAST_ADDRESS
    """The multicast group address to send the M-SEARCH request to."""

    poll_interval: float = DEFAULT_POLL_INTERVAL
    """How often the reader thread rechecks for shutdown while no responses arrive."""

    _observer_ref: Optional[weakref.ref[SsdpDiscoveryObserver]] = None
    _run: Optional[_DiscoveryRun] = None
    _run_lock: threading.Lock
    _finalizer: Optional[weakref.finalize] = None

    def __init__(
            self,
            observer: Optional[SsdpDiscoveryObserver]=None,
            socket_factory: Optional[SocketFactory]=None,
            bind_address: str='',
            multicast_address: str=SSDP_MULTICAST_ADDRESS,
            poll_interval: float=DEFAULT_POLL_INTERVAL,
          ) -> None:
        self.observer = observer
        self.socket_factory = create_udp_socket if socket_factory is None else socket_factory
        self.bind_address = bind_address
        self.multicast_address = multicast_address
        self.poll_interval = poll_interval
        self._run_lock = threading.Lock()

    @property
    def observer(self) -> Optional[SsdpDiscoveryObserver]:
        """The observer that receives notifications, or None if it has been garbage collected."""
        return None if self._observer_ref is None else self._observer_ref()

    @observer.setter
    def observer(self, observer: Optional[SsdpDiscoveryObserver]) -> None:
        self._observer_ref = None if observer is None else weakref.ref(observer)

    @property
    def is_discovering(self) -> bool:
        """True while a session is receiving responses."""
        run = self._run
        return run is not None and run.discovering

    def discover_service(
            self,
            timeout: float=DEFAULT_DISCOVERY_DURATION,
            search_target: str=DEFAULT_SEARCH_TARGET,
            port: int=SSDP_PORT,
          ) -> None:
        """Discover SSDP services for a duration.

        Returns once the request has been sent; results are delivered to the observer on the
        session's event thread. If a stopped session is still delivering its final
        notifications, waits for them first.
        Socket errors are never raised from here. They are reported through
        on_discovery_failed() followed by on_discovery_finished().

        Parameters:
            timeout:       The amount of time (in seconds) to wait for responses. Also sent as the
                              MX header, truncated to an integer.
            search_target: The type of the searched service (the ST header). Defaults to "ssdp:all".
            port:          The multicast port. Defaults to 1900.

        Raises:
            ValueError: timeout or port is out of range.
            SsdpError:  a session started by this instance is still running.
        """
        if not timeout > 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        if not 0 < port < 65536:
            raise ValueError(f"Invalid port number {port}")
        previous = self._run
        if (previous is not None and previous.shutdown_done
                and threading.current_thread() is not previous.event_thread):
            # Let the previous run's finish notification reach the observer before this run starts
            previous.done.wait()
        with self._run_lock:
            if self._run is not None and not self._run.shutdown_done:
                raise SsdpError("SSDP discovery is already running on this SsdpDiscovery")
            run = _DiscoveryRun(self, self.socket_factory, self.poll_interval)
            self._run = run
            if self._finalizer is not None:
                self._finalizer.detach()
            self._finalizer = weakref.finalize(self, run.shutdown)
            self._finalizer.atexit = False

        logger.info(f"Start SSDP discovery for {timeout} seconds, ST={search_target}...")
        run.post(lambda d: d._notify_started())
        message = build_search_request(
            search_target=search_target,
            mx=int(timeout),
            port=port,
            multicast_address=self.multicast_address,
          )
        run.start(message, (self.multicast_address, port), timeout, self.bind_address)

    def stop(self) -> None:
        """Stop the discovery before the timeout.

        If no socket is open, this does nothing and no notification is delivered. Otherwise
        the socket is closed before returning, and on_discovery_finished() follows on the
        event thread; use wait() to block until it has been delivered.
        """
        run = self._run
        if run is not None and run.sock is not None:
            logger.info("Stop SSDP discovery")
            run.shutdown()

    def wait(self, timeout: Optional[float]=None) -> bool:
        """Block until the current session has delivered its finish notification.

        Once it has, the session's reader and event threads are joined for at most
        THREAD_JOIN_TIMEOUT seconds (or timeout, if smaller), so they are normally gone when
        this returns.

        Returns False if timeout elapsed first. Returns True immediately if no session was ever
        started. Called from an observer hook, returns whether the session is done without
        blocking.
        """
        run = self._run
        if run is None:
            return True
        if threading.current_thread() is run.event_thread:
            return run.done.is_set()
        if not run.done.wait(timeout):
            return False
        run.join(THREAD_JOIN_TIMEOUT if timeout is None else min(timeout, THREAD_JOIN_TIMEOUT))
        return True

    def __enter__(self) -> Self:
        return self

    def __exit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        self.stop()
        self.wait()
        return False

    def _notify(self, name: str, hook: Callable[[SsdpDiscoveryObserver], None]) -> None:
        observer = self.observer
        if observer is None:
            return
        try:
            hook(observer)
        except Exception as e:
            logger.warning(f"Observer raised exception in {name}: {e}")

    def _notify_started(self) -> None:
        self._notify("on_discovery_started", lambda o: o.on_discovery_started(self))

    def _notify_service(self, service: SsdpService) -> None:
        self._notify("on_service_discovered", lambda o: o.on_service_discovered(self, service))

    def _notify_failed(self, error: BaseException) -> None:
        self._notify("on_discovery_failed", lambda o: o.on_discovery_failed(self, error))

    def _notify_finished(self) -> None:
        self._notify("on_discovery_finished", lambda o: o.on_discovery_finished(self))

class _CollectingObserver(SsdpDiscoveryObserver):
    services: List[SsdpService]
    error: Optional[BaseException] = None

    def __init__(self) -> None:
        self.services = []

    def on_service_discovered(self, discovery: SsdpDiscovery, service: SsdpService) -> None:
        self.services.append(service)

    def on_discovery_failed(self, discovery: SsdpDiscovery, error: BaseException) -> None:
        self.error = error

def discover_services(
        timeout: float=DEFAULT_DISCOVERY_DURATION,
        search_target: str=DEFAULT_SEARCH_TARGET,
        port: int=SSDP_PORT,
        **kwargs: Any,
      ) -> List[SsdpService]:
    """A simple search that runs one discovery session to completion and returns the services
       received, in arrival order. Does not allow for early termination; use SsdpDiscovery with
       an observer for incremental results.

    Parameters:
        timeout:       The amount of time (in seconds) to wait for responses.
        search_target: The type of the searched service. Defaults to "ssdp:all".
        port:          The multicast port. Defaults to 1900.
        kwargs:        Passed to the SsdpDiscovery constructor (socket_factory, bind_address, ...).

    Raises:
        The socket error that ended the session, if it failed.
    """
    collector = _CollectingObserver()
    discovery = SsdpDiscovery(observer=collector, **kwargs)
    discovery.discover_service(timeout=timeout, search_target=search_target, port=port)
    try:
        discovery.wait()
    finally:
        discovery.stop()
    if collector.error is not None:
        raise collector.error
    return collector.services
