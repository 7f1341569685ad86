"""
CLI command implementations.

A jobs file names the connections and the job definitions to run:

    query_dir: sql
    connections:
      source:
        type: sqlserver
        host: mssql.internal
        port: 1433
        database: legacy
        user: migrator
      destination:
        type: postgresql
        host: pg.internal
        port: 5432
        database: warehouse
        user: migrator
    jobs:
      - definition: myproject.jobs.customers:migration
      - definition: myproject.jobs.orders:migration

Definitions are ``module:attribute`` references to MigrationDefinition or
ReconciliationDefinition objects importable from ``PYTHONPATH``.
"""

import argparse
import importlib
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from jobs.config import TransactionMode, load_check_config, load_migration_config
from jobs.errors import ConfigurationError
from jobs.lifecycle import JobResult
from jobs.queries import FileQueryLoader
from migration import MigrationDefinition, run_migration
from reconciliation import ReconciliationDefinition, run_reconciliation
from utils.connections import ConnectionFactory, create_connection_factory

from .credentials import resolve_connection

logger = logging.getLogger(__name__)


@dataclass
class JobFile:
    """Parsed jobs file."""

    path: Path
    connections: dict[str, Any]
    definitions: list[str]
    query_dir: Path | None = None


def load_job_file(path: str | Path) -> JobFile:
    """
    Parse a jobs file.

    Raises:
        ConfigurationError: If the file is unreadable or malformed
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError("jobs", str(path), f"file could not be read ({e})") from e

    if not isinstance(data, dict):
        raise ConfigurationError("jobs", str(path), "file must contain a mapping")

    entries = data.get("jobs")
    if not isinstance(entries, list) or not entries:
        raise ConfigurationError("jobs", str(path), "file lists no jobs")

    definitions = []
    for index, entry in enumerate(entries):
        if isinstance(entry, str):
            entry = {"definition": entry}
        if not isinstance(entry, dict) or not entry.get("definition"):
            raise ConfigurationError(f"jobs[{index}].definition", entry, "setting is missing")
        definitions.append(str(entry["definition"]))

    query_dir = data.get("query_dir")
    if query_dir:
        query_dir = Path(query_dir)
        if not query_dir.is_absolute():
            query_dir = path.parent / query_dir

    return JobFile(
        path=path,
        connections=data.get("connections") or {},
        definitions=definitions,
        query_dir=query_dir,
    )


def resolve_definition(reference: str) -> Any:
    """
    Import the object named by ``module:attribute``.

    Raises:
        ConfigurationError: If the module or attribute cannot be found
    """
    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise ConfigurationError("definition", reference, "must be written module:attribute")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError("definition", reference, f"module could not be imported ({e})") from e

    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError:
            raise ConfigurationError("definition", reference, "attribute not found") from None
    return target


def select_definitions(
    job_file: JobFile,
    expected_type: type,
    only: list[str] | None = None,
) -> list[Any]:
    """
    Resolve the file's definitions, optionally filtered by job name.

    Raises:
        ConfigurationError: If a definition has the wrong type or a
            requested name is not in the file
    """
    selected = []
    for reference in job_file.definitions:
        definition = resolve_definition(reference)
        if not isinstance(definition, expected_type):
            raise ConfigurationError(
                "definition", reference, f"is not a {expected_type.__name__}"
            )
        if only and definition.name not in only:
            continue
        selected.append(definition)

    if only:
        found = {d.name for d in selected}
        missing = [n for n in only if n not in found]
        if missing:
            raise ConfigurationError("job", ", ".join(missing), "not found in jobs file")
    return selected


def build_factories(job_file: JobFile, use_vault: bool) -> tuple[ConnectionFactory, ConnectionFactory]:
    """Connection factories for the source and destination."""
    factories = []
    for role in ("source", "destination"):
        database_type, settings = resolve_connection(
            role, job_file.connections.get(role), use_vault=use_vault
        )
        try:
            factories.append(create_connection_factory(database_type, role, settings))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{role}.type", database_type, str(e)) from e
    return factories[0], factories[1]


def _log_summary(results: list[JobResult]) -> None:
    for result in results:
        logger.info(
            f"{result.kind} {result.job}: {result.status.value}, "
            f"processed={result.processed}, expected="
            f"{'n/a' if result.expected is None else result.expected}"
        )
    failed = [r.job for r in results if not r.ok]
    if failed:
        logger.warning(f"{len(failed)} job(s) did not complete: {', '.join(failed)}")


def override_transaction_mode(
    args: argparse.Namespace, definitions: list[MigrationDefinition]
) -> list[MigrationDefinition]:
    """``--transaction-mode`` wins over the mode a definition sets for itself."""
    if not getattr(args, "transaction_mode", None):
        return definitions
    mode = TransactionMode.parse(args.transaction_mode)
    return [replace(definition, transaction_mode=mode) for definition in definitions]


def cmd_migrate(args: argparse.Namespace) -> list[JobResult]:
    """
    Run the migration jobs named in the jobs file

    Args:
        args: Parsed command-line arguments

    Raises:
        ConfigurationError: If configuration or the jobs file is invalid
    """
    config = load_migration_config(args.config)
    job_file = load_job_file(args.jobs)
    definitions = override_transaction_mode(
        args, select_definitions(job_file, MigrationDefinition, args.job_names)
    )
    source, destination = build_factories(job_file, args.use_vault)
    load_query = FileQueryLoader(job_file.query_dir, encoding=config.encoding)

    logger.info(f"Running {len(definitions)} migration job(s)")
    results = [
        run_migration(definition, config, source, destination, load_query)
        for definition in definitions
    ]
    _log_summary(results)
    return results


def cmd_check(args: argparse.Namespace) -> list[JobResult]:
    """
    Run the reconciliation jobs named in the jobs file

    Args:
        args: Parsed command-line arguments

    Raises:
        ConfigurationError: If configuration or the jobs file is invalid
    """
    config = load_check_config(args.config)
    job_file = load_job_file(args.jobs)
    definitions = select_definitions(job_file, ReconciliationDefinition, args.job_names)
    source, destination = build_factories(job_file, args.use_vault)
    load_query = FileQueryLoader(job_file.query_dir, encoding=config.encoding)

    logger.info(f"Running {len(definitions)} reconciliation job(s)")
    results = [
        run_reconciliation(definition, config, source, destination, load_query)
        for definition in definitions
    ]
    _log_summary(results)
    return results
