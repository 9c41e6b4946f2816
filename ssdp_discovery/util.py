#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Simple utility functions used by this package
"""

from __future__ import annotations

from typing_extensions import SupportsIndex

import netifaces
from ipaddress import IPv4Address

from .internal_types import *

from email.parser import HeaderParser
from email.message import Message as EmailParserMessage
from requests.structures import CaseInsensitiveDict

def split_lines_at_lf_or_crlf(text: str, maxsplit: SupportsIndex = -1) -> List[str]:
    """Split a string at LF or CRLF.

    If maxsplit is given, at most maxsplit splits are done.

    Returns a List[str] representing the delimited lines with the delimiters removed.
    """
    parts = text.split('\n', maxsplit)
    if len(parts) > 1:
        for i, part in enumerate(parts[:-1]):
            if part.endswith('\r'):
                parts[i] = part[:-1]
    return parts

def split_headers_and_body(text: str) -> Tuple[str, str]:
    """Splits a string with HTTP headers and an optional body into the headers and the body.

    A relaxed interpretation of '\n' as a line delimiter is accepted even though '\r\n' is required
    by the standard.

    Returns a Tuple[headers: str, body: str]. If there is no body, '' is returned for the body.
    """
    delims = ['\n\r\n', '\n\n']
    first_i = -1
    first_nb = 0

    for delim in delims:
        i = text.find(delim)
        if i != -1:
            if first_i == -1 or i < first_i:
                first_i = i
                first_nb = len(delim)
    if first_i == -1:
        headers, body = text, ''
    else:
        headers, body = text[:first_i], text[first_i + first_nb:]
        if headers.endswith('\r'):
            headers = headers[:-1]

    return (headers, body)

def parse_http_headers(text: str) -> Tuple[CaseInsensitiveDict[str], str]:
    """Parse HTTP-style headers out of a string. Also returns the body of the message, if any.

    It is assumed that any preceding statement line (e.g., "HTTP/1.1 200 OK\r\n") has already been removed.

    Header values are stripped of surrounding whitespace but are otherwise not decoded; quoted strings
    such as the MAN header's "ssdp:discover" keep their quotes.

    Returns a tuple of (headers: CaseInsensitiveDict[str], body: str).
    """
    headers_text, body = split_headers_and_body(text)
    # email.parser wants a terminated header block
    headers_text = '\r\n'.join(split_lines_at_lf_or_crlf(headers_text)) + '\r\n\r\n'
    msg: EmailParserMessage = HeaderParser().parsestr(headers_text, headersonly=True)
    headers: CaseInsensitiveDict[str] = CaseInsensitiveDict()
    for name, value in msg.items():
        headers[name] = str(value).strip()
    return (headers, body)

def get_default_ip_gateway() -> Tuple[Optional[str], Optional[str]]:
    """Returns the (gateway_ip_address: str, gateway_interface_name: str) for the default IPv4 gateway,
       if any. Returns (None, None) if there is no default gateway."""
    gws = netifaces.gateways()
    if "default" in gws:
        default_gateway_infos = gws["default"]
        if netifaces.AF_INET in default_gateway_infos:
            gw_ip, gw_interface_name = default_gateway_infos[netifaces.AF_INET][:2]
            return (gw_ip, gw_interface_name)
    return (None, None)

def get_local_ip_addresses(include_loopback: bool=True) -> List[str]:
    """Returns a List[ip_address: str] for the IPv4 addresses of the local host.
       The result is sorted in a way that attempts to place the "preferred"
       canonical IP address first in the list, according to the following scheme:
           1. Addresses on the default gateway interface precede all other addresses.
           2. Non-loopback addresses precede loopback addresses.
           3. Addresses that begin with 172. follow other addresses. This is a hack to
              deprioritize local docker network addresses."""
    result_with_priority: List[Tuple[int, str]] = []
    _, default_gateway_ifname = get_default_ip_gateway()
    for ifname in netifaces.interfaces():
        ifinfo = netifaces.ifaddresses(ifname)
        for addrinfo in ifinfo.get(netifaces.AF_INET, []):
            ip_str = addrinfo['addr']
            assert isinstance(ip_str, str)
            if ifname == default_gateway_ifname:
                priority = 0
            elif IPv4Address(ip_str).is_loopback:
                if not include_loopback:
                    continue
                priority = 3
            elif ip_str.startswith('172.'):
                priority = 2
            else:
                priority = 1
            result_with_priority.append((priority, ip_str))
    return [ ip for _, ip in sorted(result_with_priority) ]

def get_preferred_local_ip_address() -> Optional[str]:
    """Returns the first address from get_local_ip_addresses(include_loopback=False), or None
       if the host has no non-loopback IPv4 address."""
    addresses = get_local_ip_addresses(include_loopback=False)
    return addresses[0] if len(addresses) > 0 else None
