"""CLI entrypoint for the origin scanner."""

import argparse
import sys

from loguru import logger

from hunting.origin.errors import ConfigurationError, RangeParseError
from hunting.origin.models import DEFAULT_PORT, DEFAULT_STATUS_CODE, HttpMethod, ScanConfig
from hunting.origin.scan import OriginScanner
from hunting.origin.services import AddressRange, SystemProfiler
from hunting.utils.range_file_parser import RangeFileParser


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        prog="origin-hunting",
        description="Find the backend server behind a CDN or reverse proxy by probing IP ranges directly",
    )
    p.add_argument("host", metavar="HOST", help="Target domain, sent as the Host header (never resolved)")

    source = p.add_mutually_exclusive_group(required=True)
    source.add_argument("--ranges", "-r", help="Comma-separated CIDR ranges (e.g. 35.207.0.0/16,10.0.0.0/24)")
    source.add_argument("--ip-file", "-f", metavar="FILE", help="File with one CIDR range per line")
    source.add_argument("--single-ip", metavar="ADDRESS", help="Probe a single IP address")

    p.add_argument("--method", "-m", default="HEAD", choices=[m.value for m in HttpMethod],
                   help="HTTP method (default: HEAD)")
    p.add_argument("--post-body", help="Request body when using POST")
    p.add_argument("--status-code", type=int, default=DEFAULT_STATUS_CODE,
                   help=f"HTTP status code to match (default: {DEFAULT_STATUS_CODE})")
    p.add_argument("--content-match", "-c", metavar="REGEX", help="Regex that must match the response")
    p.add_argument("--header", dest="headers", action="append", default=[], metavar="HEADER",
                   help="Custom header 'Name: Value' (repeatable)")
    p.add_argument("--timeout", "-t", type=int, metavar="MS", help="Connect/read timeout in ms (auto-detected)")
    p.add_argument("--workers", "-w", type=int, help="Maximum concurrent connections (auto-detected)")
    p.add_argument("--no-stop-on-find", action="store_true", help="Keep scanning after the first match")
    p.add_argument("--port", "-p", type=int, default=DEFAULT_PORT, help=f"HTTP port (default: {DEFAULT_PORT})")
    p.add_argument("--progress-every", type=int, default=5000, help="Progress log interval (default: 5000)")
    p.add_argument("--verbose", "-v", action="store_true", help="Per-probe debug output")
    return p.parse_args(argv)


def configure_logging(verbose=False):
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def resolve_ranges(args, parser=None):
    parser = parser or RangeFileParser()
    if args.ip_file:
        return parser.load(args.ip_file)

    ranges = parser.parse_list(args.ranges)
    # Invalid entries are reported and skipped by the orchestrator
    if not any(_is_valid_range(cidr) for cidr in ranges):
        raise ConfigurationError("No valid IP ranges specified")
    return ranges


def _is_valid_range(cidr):
    try:
        AddressRange.parse(cidr)
    except RangeParseError:
        return False
    return True


def build_config(args) -> ScanConfig:
    timeout_ms, workers = args.timeout, args.workers
    if timeout_ms is None or workers is None:
        caps = SystemProfiler().detect()
        timeout_ms = caps.timeout_ms if timeout_ms is None else timeout_ms
        workers = caps.concurrency if workers is None else workers

    if args.method == HttpMethod.POST.value and args.post_body is None:
        logger.warning("⚠ Using POST method without a body")

    return ScanConfig.build(
        args.host,
        port=args.port,
        method=args.method,
        status_code=args.status_code,
        content_match=args.content_match,
        headers=args.headers,
        post_body=args.post_body,
        timeout_ms=timeout_ms,
        max_concurrent=workers,
    )


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = build_config(args)
        ranges = None if args.single_ip else resolve_ranges(args)
        scanner = OriginScanner(config, stop_on_find=not args.no_stop_on_find,
                                progress_every=args.progress_every)
        scanner.print_banner()

        if args.single_ip:
            scanner.run_single(args.single_ip)
            return 0
    except ConfigurationError as e:
        logger.error("✗ {}", e)
        return 1

    scanner.print_configuration(len(ranges), custom_headers=len(args.headers))
    logger.info("Starting scan of {} range(s) for {}", len(ranges), config.host)
    result = scanner.run_scan(ranges)
    logger.info("Scan finished: {} match(es) in {:.2f}s", len(result.matches), result.elapsed_seconds)
    return 0


if __name__ == "__main__":
    sys.exit(main())
