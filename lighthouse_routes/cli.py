#!/usr/bin/env python3
"""
Lighthouse Routes CLI

Audits every route in a routes.config.json file and prints a summary.

Usage:
    python -m lighthouse_routes --config routes.config.json
    python -m lighthouse_routes --config routes.config.json --concurrency 2 --verbose
    python -m lighthouse_routes --config routes.config.json --only home --only pricing

Exit codes:
    0  every route passed
    1  at least one route failed its thresholds or errored
    2  configuration error
"""

import argparse
import sys

from lighthouse_routes.config import load_config
from lighthouse_routes.errors import ConfigError
from lighthouse_routes.logging_setup import get_logger, set_verbose
from lighthouse_routes.orchestrator import RouteOrchestrator
from lighthouse_routes.reporting import ConsoleReporter, format_summary, log_lines

logger = get_logger("lighthouse_routes")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run Lighthouse audits for configured routes")
    parser.add_argument(
        "--config",
        default="routes.config.json",
        help="Path to routes.config.json (default: ./routes.config.json)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Routes audited at once (default: config value or 1)",
    )
    parser.add_argument(
        "--only",
        action="append",
        default=[],
        metavar="ROUTE",
        help="Audit only this route name (repeatable)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    set_verbose(logger, args.verbose or config.verbose)

    routes = config.routes
    if args.only:
        unknown = sorted(set(args.only) - {r.name for r in routes})
        if unknown:
            logger.error(f"Unknown route(s): {', '.join(unknown)}")
            return 2
        routes = [r for r in routes if r.name in args.only]

    logger.info(f"Loaded config from {args.config}")
    logger.info(f"Base URL: {config.base_url}")
    logger.info(f"Routes: {len(routes)}")

    orchestrator = RouteOrchestrator.from_config(config, logger=logger, on_result=ConsoleReporter(logger))
    results = orchestrator.run_all_sync(routes, config, concurrency=args.concurrency)

    log_lines(logger, format_summary(results, config.report_dir))

    return 0 if all(r.passed for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
