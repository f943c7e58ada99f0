"""Command line entry point: pick a local /24, sweep it, save the results."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Sequence

from . import __version__
from .console import (
    ProgressBar,
    print_header,
    print_networks,
    print_section,
    print_system_info,
    render_result,
)
from .core.config import settings
from .core.errors import ScanConfigurationError
from .output import write_outputs
from .scanner.addressing import get_local_addresses, to_cidr
from .scanner.network_scanner import BACKENDS, NetworkScanner
from .scanner.system import get_cpu_cores, raise_file_limit


def select_network(addresses: Sequence[str], selection: Optional[str]) -> str:
    """
    Pick an address from the numbered network menu.
    
    A blank selection picks the first network.
    
    Raises:
        ScanConfigurationError: selection is not a number or out of range
    """
    selection = (selection or "").strip()
    if not selection:
        index = 0
    else:
        try:
            index = int(selection)
        except ValueError:
            raise ScanConfigurationError(f"Invalid selection {selection!r}") from None
    
    if not 0 <= index < len(addresses):
        raise ScanConfigurationError(f"Invalid selection {selection!r}")
    return addresses[index]


def prompt_selection() -> str:
    try:
        return input("\n  Select network to scan [0]: ")
    except EOFError:
        return ""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="findpi",
        description="Find devices (and Raspberry Pis) on a local /24 network.",
    )
    parser.add_argument("-v", "--version", action="store_true", help="print version and exit")
    parser.add_argument("-n", "--network", help="network index to scan, skips the prompt")
    parser.add_argument("--backend", choices=BACKENDS, help="probe backend")
    parser.add_argument("--timeout", type=float, help="seconds to wait for each probe")
    parser.add_argument("--deadline", type=float, help="seconds allowed for the whole sweep")
    parser.add_argument("--concurrency", type=int, help="maximum probes in flight")
    parser.add_argument("--no-hostnames", action="store_true", help="skip reverse DNS lookups")
    parser.add_argument("--output-dir", help="directory for result files (default: home)")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    
    if args.version:
        print(f"{settings.APP_NAME} {__version__}")
        return 0
    
    logging.basicConfig(
        level=logging.DEBUG if (args.debug or settings.DEBUG) else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    
    print_header(settings.APP_NAME, __version__)
    raise_file_limit(settings.FILE_LIMIT)
    
    try:
        addresses = get_local_addresses()
        if not addresses:
            raise ScanConfigurationError("No network interfaces found")
        print_networks(addresses)
        
        scanner = NetworkScanner(
            backend=args.backend,
            resolve_hostnames=False if args.no_hostnames else None,
            probe_timeout=args.timeout,
            deadline=args.deadline,
            concurrency=args.concurrency,
        )
        print_system_info(get_cpu_cores(), scanner.concurrency, len(scanner.classifier))
        
        selection = args.network if args.network is not None else prompt_selection()
        selected = select_network(addresses, selection)
        
        print_section(f"SCANNING: {to_cidr(selected)}")
        scanner.register_callback(ProgressBar())
        result = asyncio.run(scanner.perform_scan(selected))
    except ScanConfigurationError as e:
        print(f"\n  ✗ {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n  Scan interrupted", file=sys.stderr)
        return 130
    
    reports = write_outputs(result, args.output_dir or settings.OUTPUT_DIR)
    render_result(result, reports)
    return 0


if __name__ == "__main__":
    sys.exit(main())
