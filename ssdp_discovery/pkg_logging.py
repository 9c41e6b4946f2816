#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Logging for ssdp_discovery package.

The package never configures logging on import. Applications that want the
package's messages on stderr without configuring the root logger can call
init_logging(), and shutdown_logging() to undo it.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

logger = logging.getLogger(__name__.rsplit('.', 1)[0])

_handler: Optional[logging.Handler] = None

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

def init_logging(level: Union[int, str]=logging.INFO) -> logging.Handler:
    """Attach a stderr handler to the package logger and set its level.

    Calling this more than once only updates the level; the same handler is returned.
    """
    global _handler
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(_handler)
    logger.setLevel(level)
    return _handler

def shutdown_logging() -> None:
    """Detach and close the handler installed by init_logging(), if any."""
    global _handler
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler.close()
        _handler = None
        logger.setLevel(logging.NOTSET)
