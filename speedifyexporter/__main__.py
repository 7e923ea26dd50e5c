"""
Export Speedify metrics using prometheus.
"""

import argparse
import asyncio
import logging
import sys
from typing import Tuple

from .exporter import SpeedifyExporter
from .probe import DEFAULT_SPEEDIFY_CLI, SpeedifyCLI, SpeedifyUnavailable

DEFAULT_BIND = "0.0.0.0:9961"


def parse_bind(value: str) -> Tuple[str, int]:
    """Split a host:port listener address. An empty host listens on all interfaces."""
    host, sep, port = value.rpartition(":")
    if not sep or not port.isdigit() or int(port) > 65535:
        raise argparse.ArgumentTypeError(f"invalid bind address {value!r}, expected host:port")
    # [::]:9961 style IPv6 addresses
    host = host.strip("[]")
    return host or "0.0.0.0", int(port)


def main():
    """Run prometheus exporter"""
    # set up command-line argument parser
    parser = argparse.ArgumentParser(description='Prometheus exporter for Speedify metrics')
    parser.add_argument(
        "--bind",
        metavar="<exporter host:port>",
        type=parse_bind,
        default=DEFAULT_BIND,
        help=f"The address and port to expose collected metrics from. Default is {DEFAULT_BIND}",
    )
    parser.add_argument(
        "--speedify-cli",
        metavar="<speedify_cli path>",
        type=str,
        dest="speedify_cli",
        default=DEFAULT_SPEEDIFY_CLI,
        help=f"Path to the speedify_cli executable. Default is {DEFAULT_SPEEDIFY_CLI}",
    )
    parser.add_argument(
        "--cli-timeout",
        metavar="<seconds>",
        type=float,
        dest="cli_timeout",
        default=None,
        help="Number of seconds to wait for each speedify_cli call before giving up on it. "
             "By default the exporter waits as long as speedify_cli takes.",
    )
    parser.add_argument(
        "--debug", action="store_true", default=False, help="Print debug messages to stdout"
    )
    parser.add_argument(
        "--quiet", action="store_true", default=False, help="Only print error messages to stdout"
    )

    args = parser.parse_args()

    # set logging message verbosity
    if args.debug:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = logging.INFO
    logging.basicConfig(level=level,
                        format='%(levelname)s: %(asctime)s - %(message)s',
                        datefmt='%d-%b-%y %H:%M:%S')

    cli = SpeedifyCLI(cli_path=args.speedify_cli, timeout=args.cli_timeout)
    try:
        cli.check_available()
    except SpeedifyUnavailable as e:
        logging.critical(f"{e}. Is Speedify installed?")
        sys.exit(1)

    host, port = args.bind
    exit_code = 0
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    exp = SpeedifyExporter(cli=cli, host=host, port=port)
    try:
        # start metrics server
        loop.run_until_complete(exp.start())
    except KeyboardInterrupt:
        pass
    except OSError as e:
        logging.error(f"Failed to start http server on {host}:{port}: {e}")
        exit_code = 1
    else:
        try:
            loop.run_forever()
        except KeyboardInterrupt:
            pass
        finally:
            loop.run_until_complete(exp.stop())
    loop.close()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
