# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Package ssdp_discovery discovers network services advertised with the Simple Service Discovery Protocol (SSDP).

SSDP is the discovery step of UPnP. A client multicasts an M-SEARCH request to
239.255.255.250:1900, naming a search target (ST) such as "ssdp:all" or
"upnp:rootdevice", and every matching device answers with a unicast HTTP-like
response carrying headers such as LOCATION, ST and USN.

SsdpDiscovery runs one time-bounded search at a time, receives responses on a
background thread, and reports start, each discovered SsdpService, and finish (or
failure followed by finish) to an SsdpDiscoveryObserver.

The description, control and eventing phases of UPnP that follow discovery are not
implemented here.
"""

from .version import __version__

from .internal_types import Jsonable, JsonableDict

from .exceptions import SsdpError

from .pkg_logging import init_logging, shutdown_logging
from .ssdp_message import SsdpMessage, build_search_request
from .ssdp_service import SsdpService
from .discovery import (
    SsdpDiscovery,
    SsdpDiscoveryObserver,
    SocketFactory,
    create_udp_socket,
    discover_services,
  )
from .util import CaseInsensitiveDict, get_local_ip_addresses, get_preferred_local_ip_address
from .constants import (
    SSDP_MULTICAST_ADDRESS,
    SSDP_PORT,
    DEFAULT_SEARCH_TARGET,
    DEFAULT_DISCOVERY_DURATION,
  )

__all__ = [
    '__version__',
    'Jsonable', 'JsonableDict',
    'SsdpError',
    'init_logging', 'shutdown_logging',
    'SsdpMessage', 'build_search_request',
    'SsdpService',
    'SsdpDiscovery', 'SsdpDiscoveryObserver', 'SocketFactory', 'create_udp_socket', 'discover_services',
    'CaseInsensitiveDict', 'get_local_ip_addresses', 'get_preferred_local_ip_address',
    'SSDP_MULTICAST_ADDRESS', 'SSDP_PORT', 'DEFAULT_SEARCH_TARGET', 'DEFAULT_DISCOVERY_DURATION',
]
