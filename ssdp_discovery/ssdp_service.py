#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SsdpService -- A service discovered by an SSDP search.
"""

from __future__ import annotations

import re
import time
import datetime

from .internal_types import *

from .ssdp_message import SsdpMessage
from .util import CaseInsensitiveDict

class SsdpService:
    """A single response to an M-SEARCH request.

    Instances are immutable. The header accessors never raise; a response that is not
    valid SSDP syntax simply reports None for everything it lacks.
    """

    _max_age_re = re.compile(r'max-age\s*=\s*"?(?P<max_age>[0-9]+)"?', re.IGNORECASE)

    _host: str
    _raw_response: str
    _message: SsdpMessage
    _monotonic_time: float
    _utc_time: datetime.datetime

    def __init__(self, host: str, raw_response: str) -> None:
        self._host = host
        self._raw_response = raw_response
        self._message = SsdpMessage(raw_response)
        self._monotonic_time = time.monotonic()
        self._utc_time = datetime.datetime.now(datetime.timezone.utc)

    def __str__(self) -> str:
        return f"SsdpService(host='{self._host}', st={self.search_target!r}, location={self.location!r})"

    def __repr__(self) -> str:
        return str(self)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, SsdpService):
            return False
        return self._host == other._host and self._raw_response == other._raw_response

    def __hash__(self) -> int:
        return hash((self._host, self._raw_response))

    @property
    def host(self) -> str:
        """The network address the response was received from"""
        return self._host

    @property
    def raw_response(self) -> str:
        """The unparsed response text"""
        return self._raw_response

    @property
    def message(self) -> SsdpMessage:
        return self._message

    @property
    def monotonic_time(self) -> float:
        """The local time (in seconds) since an arbitrary point in the past at which
           the response was received, as returned by time.monotonic(). Useful together
           with max_age for expiring the service."""
        return self._monotonic_time

    @property
    def utc_time(self) -> datetime.datetime:
        """The UTC time at which the response was received."""
        return self._utc_time

    @property
    def headers(self) -> CaseInsensitiveDict[str]:
        """A copy of the response headers"""
        return self._message.headers

    @property
    def status_code(self) -> Optional[int]:
        """The HTTP status code of the response (normally 200)"""
        return self._message.status_code

    @property
    def location(self) -> Optional[str]:
        """The LOCATION header: the URL of the device description"""
        return self._message.get_header("LOCATION")

    @property
    def server(self) -> Optional[str]:
        """The SERVER header: "OS/version UPnP/1.x product/version" """
        return self._message.get_header("SERVER")

    @property
    def search_target(self) -> Optional[str]:
        """The ST header: the device or service type that matched the search"""
        return self._message.get_header("ST")

    @property
    def unique_service_name(self) -> Optional[str]:
        """The USN header: a unique identifier for this device or service"""
        return self._message.get_header("USN")

    @property
    def cache_control(self) -> Optional[str]:
        return self._message.get_header("CACHE-CONTROL")

    @property
    def max_age(self) -> Optional[int]:
        """The max-age directive of CACHE-CONTROL, in seconds"""
        cache_control = self.cache_control
        if cache_control is None:
            return None
        m = self._max_age_re.search(cache_control)
        if m is None:
            return None
        return int(m.group('max_age'))
