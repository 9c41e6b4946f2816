#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

import logging

from ssdp_discovery.pkg_logging import logger, init_logging, shutdown_logging

def test_logger_name():
    assert logger.name == "ssdp_discovery"

def test_init_and_shutdown_logging():
    try:
        handler = init_logging("debug")
        assert handler in logger.handlers
        assert logger.level == logging.DEBUG
        assert init_logging(logging.WARNING) is handler
        assert logger.handlers.count(handler) == 1
        assert logger.level == logging.WARNING
    finally:
        shutdown_logging()
    assert handler not in logger.handlers
    assert logger.level == logging.NOTSET
    shutdown_logging()
