#!/usr/bin/env python3
"""
Loadster command line interface

Sends concurrent HTTP requests to a target URL and reports how the server
held up. Every virtual user sends its requests independently; failures are
counted, never fatal.

Exit codes:
    0  the run completed (individual request failures are results, not errors)
    1  invalid configuration, nothing was sent
"""

import argparse
import sys
from typing import List, Optional

from dotenv import load_dotenv

from loadster import __version__, report
from loadster.config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_TIMEOUT,
    build_config,
    env_default,
    load_headers_from_env,
)
from loadster.errors import ConfigError, OutputError
from loadster.orchestrator import Orchestrator
from loadster.output import save_results


def build_parser() -> argparse.ArgumentParser:
    concurrency_default = int(env_default("LOADSTER_CONCURRENCY", DEFAULT_CONCURRENCY, int))
    timeout_default = env_default("LOADSTER_TIMEOUT", DEFAULT_TIMEOUT)

    parser = argparse.ArgumentParser(
        prog="loadster",
        description="Loadster is a simple load testing tool that sends concurrent HTTP "
                    "requests to test the performance of your web applications.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -u https://api.example.com/health
  %(prog)s -u https://api.example.com/users -c 50 -t 5
  %(prog)s -u https://api.example.com/items -m POST -b '{"name":"x"}' -H 'Content-Type:application/json'
  %(prog)s -u https://api.example.com/health -c 10 -n 20 -o results.jsonl
  %(prog)s -u https://api.example.com/health -c 5 -d 30 --delay 100   (5 users for 30 seconds)
        """
    )
    parser.add_argument("-u", "--url", required=True, help="The target URL for the load test")
    parser.add_argument("-m", "--method", default="GET",
                        help="The HTTP method to use (default: GET). "
                             "Supported methods: GET, POST, PUT, DELETE, PATCH")
    parser.add_argument("-c", "--concurrency", "--users", dest="concurrency", type=int,
                        default=concurrency_default,
                        help=f"The number of concurrent users (default: {concurrency_default})")
    parser.add_argument("-t", "--timeout", type=float, default=timeout_default,
                        help=f"The timeout for each request in seconds (default: {timeout_default:g})")
    parser.add_argument("-H", "--header", action="append", dest="headers",
                        help="Additional header (format: 'Name:Value'). Can be used multiple times")
    parser.add_argument("-b", "--body", help="The body of the request (for POST, PUT, PATCH methods)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print every request as it completes")
    parser.add_argument("-o", "--output", help="Save per-request results to a JSON Lines file")
    parser.add_argument("-n", "--requests", type=int, default=1,
                        help="Requests sent by each user (default: 1)")
    parser.add_argument("-d", "--duration", type=float,
                        help="Keep users sending for this many seconds (overrides --requests)")
    parser.add_argument("--delay", type=int, default=0,
                        help="Delay between requests of one user in milliseconds (default: 0)")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()

    try:
        parser = build_parser()
    except ConfigError as e:
        report.error(str(e))
        sys.exit(1)
    args = parser.parse_args(argv)
    report.set_color(not args.no_color)

    env_headers, env_warnings = load_headers_from_env()
    try:
        config, warnings = build_config(
            url=args.url,
            method=args.method,
            concurrency=args.concurrency,
            timeout=args.timeout,
            headers=args.headers,
            body=args.body,
            verbose=args.verbose,
            output=args.output,
            requests_per_user=args.requests,
            duration=args.duration,
            delay_ms=args.delay,
            env_headers=env_headers
        )
    except ConfigError as e:
        report.error(str(e))
        sys.exit(1)

    for message in env_warnings + warnings:
        report.warn(message)

    orchestrator = Orchestrator(
        config.request_spec(),
        concurrency=config.concurrency,
        requests_per_user=config.requests_per_user,
        duration=config.duration,
        delay=config.delay_ms / 1000,
        listener=report.print_outcome if config.verbose else None
    )

    if config.verbose:
        report.print_run_header(config.url, config.method.value, config.concurrency,
                                config.requests_per_user, config.duration)

    result_set = orchestrator.run()
    report.print_summary(result_set, config.url)

    if config.output:
        try:
            count = save_results(result_set, config.output)
        except OutputError as e:
            report.error(str(e))
        else:
            report.info(f"Results saved to: {config.output} ({count} records)")

    sys.exit(0)


if __name__ == "__main__":
    main()
