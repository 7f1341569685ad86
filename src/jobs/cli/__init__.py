"""
Command-line interface for migration and reconciliation jobs.

Available commands:
- migrate: Copy source records to the destination
- check: Compare source records with the destination
"""

import logging
import os
import sys

from jobs.errors import EXIT_CODE_CONFIG, EXIT_CODE_OK, ConfigurationError
from utils.logging import setup_logging, shutdown_logging
from utils.metrics import MetricsPublisher
from utils.tracing import initialize_tracing, shutdown_tracing

from .commands import cmd_check, cmd_migrate
from .credentials import resolve_connection
from .parser import create_parser

logger = logging.getLogger(__name__)

COMMANDS = {
    "migrate": cmd_migrate,
    "check": cmd_check,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the migrator CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        return 1

    setup_logging(
        level=args.log_level,
        log_file=args.log_file,
        json_format=args.log_json,
        serialize=True,
    )

    otlp_endpoint = args.otlp_endpoint or os.getenv("OTLP_ENDPOINT")
    if otlp_endpoint:
        initialize_tracing(otlp_endpoint=otlp_endpoint)

    try:
        if args.metrics_port:
            MetricsPublisher(port=args.metrics_port).start()
        COMMANDS[args.command](args)
    except ConfigurationError as e:
        logger.critical(f"Configuration error: {e}")
        return EXIT_CODE_CONFIG
    finally:
        if otlp_endpoint:
            shutdown_tracing()
        shutdown_logging()

    return EXIT_CODE_OK


__all__ = [
    'main',
    'cmd_migrate',
    'cmd_check',
    'create_parser',
    'resolve_connection',
]


if __name__ == '__main__':
    sys.exit(main())
