#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

import sys
import argparse
import json
import logging
import threading

from ssdp_discovery.internal_types import *

from ssdp_discovery import (
    __version__ as pkg_version,
    SsdpDiscovery,
    SsdpDiscoveryObserver,
    SsdpService,
    SsdpError,
    get_preferred_local_ip_address,
    SSDP_PORT,
    DEFAULT_SEARCH_TARGET,
    DEFAULT_DISCOVERY_DURATION,
  )

class CmdExitError(RuntimeError):
    exit_code: int

    def __init__(self, exit_code: int, msg: Optional[str]=None):
        if msg is None:
            msg = f"Command exited with return code {exit_code}"
        super().__init__(msg)
        self.exit_code = exit_code

class ArgparseExitError(CmdExitError):
    pass

class NoExitArgumentParser(argparse.ArgumentParser):
    def exit(self, status=0, message=None):
        if message:
            self._print_message(message, sys.stderr)
        raise ArgparseExitError(status, message)

def service_summary(service: SsdpService) -> JsonableDict:
    """Returns a JSON-serializable description of a discovered service"""
    header_dict: Dict[str, Jsonable] = dict(service.headers)
    summary: JsonableDict = {
        "host": service.host,
        "status_code": service.status_code,
        "location": service.location,
        "st": service.search_target,
        "usn": service.unique_service_name,
        "server": service.server,
        "max_age": service.max_age,
        "headers": header_dict,
        "monotonic_time": service.monotonic_time,
        "utc_time": service.utc_time.isoformat(),
    }
    return summary

class _PrintingObserver(SsdpDiscoveryObserver):
    error: Optional[BaseException] = None
    num_services: int = 0
    _print_lock: threading.Lock

    def __init__(self) -> None:
        self._print_lock = threading.Lock()

    def on_service_discovered(self, discovery: SsdpDiscovery, service: SsdpService) -> None:
        with self._print_lock:
            self.num_services += 1
            print(json.dumps(service_summary(service), indent=2, sort_keys=True))
            sys.stdout.flush()

    def on_discovery_failed(self, discovery: SsdpDiscovery, error: BaseException) -> None:
        self.error = error

    def on_discovery_finished(self, discovery: SsdpDiscovery) -> None:
        logging.debug(f"Discovery finished with {self.num_services} responses")

class CommandHandler:
    _argv: Optional[Sequence[str]]
    _parser: argparse.ArgumentParser
    _args: argparse.Namespace
    _provide_traceback: bool = True

    def __init__(self, argv: Optional[Sequence[str]]=None):
        self._argv = argv

    def cmd_bare(self) -> int:
        print("A command is required", file=sys.stderr)
        return 1

    def cmd_search(self) -> int:
        wait_time: float = self._args.wait_time
        search_target: str = self._args.target
        port: int = self._args.port
        bind_address: Optional[str] = self._args.bind_address
        if bind_address is None:
            bind_address = ''
            if self._args.primary_interface:
                bind_address = get_preferred_local_ip_address()
                if bind_address is None:
                    raise SsdpError("No non-loopback IPv4 interface found")
                logging.debug(f"Using primary interface address {bind_address}")

        observer = _PrintingObserver()
        discovery = SsdpDiscovery(observer=observer, bind_address=bind_address)
        discovery.discover_service(timeout=wait_time, search_target=search_target, port=port)
        try:
            discovery.wait()
        except KeyboardInterrupt:
            logging.debug("Detected SIGINT, stopping discovery")
            discovery.stop()
            raise CmdExitError(1, "Search terminated with SIGINT")
        if observer.error is not None:
            raise observer.error
        return 0

    def cmd_version(self) -> int:
        print(pkg_version)
        return 0

    def run(self) -> int:
        """Run the ssdp command-line tool with provided arguments

        Args:
            argv (Optional[Sequence[str]], optional):
                A list of commandline arguments (NOT including the program as argv[0]!),
                or None to use sys.argv[1:]. Defaults to None.

        Returns:
            int: The exit code that would be returned if this were run as a standalone command.
        """
        parser = NoExitArgumentParser(prog="ssdp", description="Discover UPnP services on the local network using SSDP.")


        # ======================= Main command

        self._parser = parser
        parser.add_argument('--traceback', "--tb", action='store_true', default=False,
                            help='Display detailed exception information')
        parser.add_argument('--log-level', dest='log_level', default='warning',
                            choices=['debug', 'info', 'warning', 'error', 'critical'],
                            help='''The logging level to use. Default: warning''')
        parser.set_defaults(func=self.cmd_bare)

        subparsers = parser.add_subparsers(
                            title='Commands',
                            description='Valid commands',
                            help='Additional help available with "<command-name> -h"')


        # ======================= search

        parser_search = subparsers.add_parser('search', description="Search for SSDP services")
        parser_search.add_argument('-t', '--target', default=DEFAULT_SEARCH_TARGET,
                            help=f'''The search target (ST) to search for. Default: "{DEFAULT_SEARCH_TARGET}"''')
        parser_search.add_argument('--wait-time', type=float, default=DEFAULT_DISCOVERY_DURATION,
                            help=f'''The amount of time to wait for responses, in seconds. Also sent as MX. Default: {DEFAULT_DISCOVERY_DURATION}''')
        parser_search.add_argument('-p', '--port', type=int, default=SSDP_PORT,
                            help=f'''The multicast port to send the search request to. Default: {SSDP_PORT}''')
        parser_search.add_argument('-b', '--bind', dest="bind_address", default=None,
                            help='''The local unicast IP address to bind to. Default: all interfaces.''')
        parser_search.add_argument('--primary-interface', dest="primary_interface", action='store_true', default=False,
                            help='''Bind to the address of the default gateway interface. Ignored if --bind is given.''')
        parser_search.set_defaults(func=self.cmd_search)

        # ======================= version

        parser_version = subparsers.add_parser('version',
                                description='''Display version information.''')
        parser_version.set_defaults(func=self.cmd_version)

        # =========================================================

        try:
            args = parser.parse_args(self._argv)
        except ArgparseExitError as ex:
            return ex.exit_code
        traceback: bool = args.traceback
        self._provide_traceback = traceback

        try:
            logging.basicConfig(
                level=logging.getLevelName(args.log_level.upper()),
            )
            self._args = args
            func: Callable[[], int] = args.func
            logging.debug(f"Running command {func.__name__}, tb = {traceback}")
            rc = func()
            logging.debug(f"Command {func.__name__} returned {rc}")
        except Exception as ex:
            if isinstance(ex, CmdExitError):
                rc = ex.exit_code
            else:
                rc = 1
            if rc != 0:
                if traceback:
                    raise
            print(f"ssdp: error: {ex}", file=sys.stderr)
        except BaseException as ex:
            print(f"ssdp: Unhandled exception: {ex}", file=sys.stderr)
            raise

        return rc

def run(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = CommandHandler(argv).run()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

def main() -> None:
    sys.exit(run())

# allow running with "python3 -m", or as a standalone script
if __name__ == "__main__":
    main()
