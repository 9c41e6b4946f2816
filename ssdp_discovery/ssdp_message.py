#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Formatting and parsing of the HTTP-over-UDP text messages used by SSDP.
"""

from __future__ import annotations

from .internal_types import *
from .pkg_logging import logger

from .constants import SSDP_MULTICAST_ADDRESS, SSDP_PORT, DEFAULT_SEARCH_TARGET

from .util import (
    CaseInsensitiveDict,
    split_lines_at_lf_or_crlf,
    parse_http_headers,
)

def build_search_request(
        search_target: str=DEFAULT_SEARCH_TARGET,
        mx: int=1,
        port: int=SSDP_PORT,
        multicast_address: str=SSDP_MULTICAST_ADDRESS,
      ) -> str:
    """Returns the text of an M-SEARCH request.

    The header order and spelling are fixed; some devices only answer requests
    that look exactly like this.

    Parameters:
        search_target:     The ST header; "ssdp:all" for all services, or a device/service type
                              such as "upnp:rootdevice" or "urn:schemas-upnp-org:device:MediaRenderer:1".
        mx:                The MX header; the maximum number of seconds a device may wait before responding.
        port:              The multicast port, included in the HOST header.
        multicast_address: The multicast group address, included in the HOST header.
    """
    return (
        "M-SEARCH * HTTP/1.1\r\n"
        "MAN: \"ssdp:discover\"\r\n"
        f"HOST: {multicast_address}:{port}\r\n"
        f"ST: {search_target}\r\n"
        f"MX: {mx}\r\n"
        "\r\n"
      )

class SsdpMessage:
    """Read-only view of a parsed SSDP message.

    Parsing is relaxed: LF is accepted in place of CRLF, and text that is not a valid
    message at all produces an empty header dictionary rather than an error.
    """

    _raw_text: str
    """The complete message text"""

    _statement_line: str
    """The first line of the message; e.g., "HTTP/1.1 200 OK", "NOTIFY * HTTP/1.1",
       "M-SEARCH * HTTP/1.1", etc."""

    _headers: CaseInsensitiveDict[str]
    """The headers as a CaseInsensitiveDict[str]"""

    _body: str
    """The body of the message, if any. If there is no body, '' is returned."""

    def __init__(self, raw_text: str):
        assert isinstance(raw_text, str)
        self._raw_text = raw_text
        statement_and_remainder = split_lines_at_lf_or_crlf(raw_text, 1)
        self._statement_line = statement_and_remainder[0].strip()
        remainder = '' if len(statement_and_remainder) < 2 else statement_and_remainder[1]
        try:
            self._headers, self._body = parse_http_headers(remainder)
        except Exception as e:
            logger.debug(f"Unable to parse SSDP headers from {raw_text!r}: {e}")
            self._headers, self._body = CaseInsensitiveDict(), ''

    def __str__(self) -> str:
        return f"SsdpMessage('{self._statement_line}', headers={dict(self._headers)}, body={self._body!r})"

    def __repr__(self) -> str:
        return str(self)

    @property
    def raw_text(self) -> str:
        """The complete message text"""
        return self._raw_text

    @property
    def statement_line(self) -> str:
        """The first line of the message; e.g., "HTTP/1.1 200 OK" """
        return self._statement_line

    @property
    def headers(self) -> CaseInsensitiveDict[str]:
        """A copy of the headers as a CaseInsensitiveDict[str]"""
        return self._headers.copy()

    @property
    def body(self) -> str:
        """The body of the message, if any. If there is no body, '' is returned."""
        return self._body

    def get_header(self, name: str) -> Optional[str]:
        """Returns the value of a header (case-insensitive), or None if it is not present."""
        return self._headers.get(name)

    @property
    def is_response(self) -> bool:
        """True if the statement line is an HTTP status line (e.g., "HTTP/1.1 200 OK")."""
        return self._statement_line.upper().startswith("HTTP/")

    @property
    def status_code(self) -> Optional[int]:
        """The status code of a response, or None if this is not a well-formed response."""
        if not self.is_response:
            return None
        parts = self._statement_line.split(None, 2)
        if len(parts) < 2:
            return None
        try:
            return int(parts[1])
        except ValueError:
            return None

    @property
    def method(self) -> Optional[str]:
        """The method of a request (e.g., "M-SEARCH", "NOTIFY"), or None if this is a response."""
        if self.is_response or self._statement_line == '':
            return None
        return self._statement_line.split(None, 1)[0]
