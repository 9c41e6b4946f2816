#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Type hints used internally by this package"""

from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
    cast,
    TYPE_CHECKING,
  )

from types import TracebackType
from typing_extensions import Self

HostAndPort = Tuple[str, int]
"""A (host, port) socket address, as returned by socket.recvfrom()"""

Jsonable = Union[Dict[str, 'Jsonable'], List['Jsonable'], str, int, float, bool, None]
"""A type hint for a simple JSON-serializable value"""

JsonableDict = Dict[str, Jsonable]
"""A type hint for a simple JSON-serializable dict"""
