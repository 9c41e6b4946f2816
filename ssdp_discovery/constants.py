# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by this package"""

SSDP_MULTICAST_ADDRESS = "239.255.255.250"
"""The multicast address used by SSDP for UDP multicast."""

SSDP_PORT = 1900
"""The port number used by SSDP for UDP multicast."""

DEFAULT_SEARCH_TARGET = "ssdp:all"
"""The ST value that asks every device and service on the network to respond."""

DEFAULT_DISCOVERY_DURATION = 10.0
"""The default length (in seconds) of a discovery session. Also sent as MX."""

MAX_DATAGRAM_SIZE = 65507
"""The largest UDP payload that can be received over IPv4."""

DEFAULT_POLL_INTERVAL = 0.5
"""How often (in seconds) the background reader wakes up to recheck whether
   the session is still discovering when no datagram arrives."""

THREAD_JOIN_TIMEOUT = 1.0
"""The longest time (in seconds) wait() spends joining a finished session's
   background threads after its final notification has been delivered."""
