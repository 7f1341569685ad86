"""
Command-line argument parser configuration.

Defines the ``migrate`` and ``check`` commands of the migrator tool.
"""

import argparse

from jobs.config import TransactionMode


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--jobs',
        required=True,
        help='YAML file listing connections and job definitions'
    )
    parser.add_argument(
        '--job',
        action='append',
        dest='job_names',
        metavar='NAME',
        help='Run only the named job (repeatable, default: all jobs in the file)'
    )
    parser.add_argument(
        '--config',
        help='YAML configuration file (fetch sizes, batch size, encoding)'
    )
    parser.add_argument(
        '--use-vault',
        action='store_true',
        help='Fetch connection credentials from HashiCorp Vault'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='migrator',
        description="Streaming row-by-row database migration and reconciliation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Migrate every job in the file
  migrator migrate --jobs jobs.yaml --config migrator.yaml

  # Migrate one job, committing after every record
  migrator migrate --jobs jobs.yaml --job customers --transaction-mode ByRecord

  # Check migrated data with credentials from Vault
  migrator check --jobs checks.yaml --use-vault

  # Expose Prometheus metrics while running
  migrator --metrics-port 9091 migrate --jobs jobs.yaml
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Emit JSON log lines'
    )
    parser.add_argument(
        '--log-file',
        help='Also write logs to this rotating file'
    )
    parser.add_argument(
        '--metrics-port',
        type=int,
        help='Serve Prometheus metrics on this port'
    )
    parser.add_argument(
        '--otlp-endpoint',
        help='Export traces to this OTLP gRPC endpoint (default: OTLP_ENDPOINT env var)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Migrate command ==========
    migrate_parser = subparsers.add_parser('migrate', help='Copy source records to the destination')
    _add_common_arguments(migrate_parser)
    migrate_parser.add_argument(
        '--transaction-mode',
        choices=[mode.value for mode in TransactionMode],
        help='Override the configured transaction mode'
    )

    # ========== Check command ==========
    check_parser = subparsers.add_parser('check', help='Compare source records with the destination')
    _add_common_arguments(check_parser)

    return parser
