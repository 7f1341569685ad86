"""
Job configuration.

A JobConfig is built once per job instance and passed to the engines by
reference. Values come from an optional YAML file and are overridden by
environment variables:

    file:
      encoding: utf-8
    migration:
      select_fetch_size: 1000
      batch_size: 500
      transaction_mode: All        # None | ByRecord | All
    check:
      source_fetch_size: 1000
      destination_fetch_size: 100
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class TransactionMode(Enum):
    """Granularity at which the migration engine commits."""

    NONE = "None"
    BY_RECORD = "ByRecord"
    ALL = "All"

    @classmethod
    def parse(cls, value: "str | TransactionMode | None") -> "TransactionMode":
        """Parse a mode name case-insensitively; unset means NONE."""
        if value is None or value == "":
            return cls.NONE
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "")
        for mode in cls:
            if mode.value.lower() == normalized:
                return mode
        raise ConfigurationError("migration.transaction_mode", value)


# (yaml section, yaml key) -> environment variable
ENV_OVERRIDES = {
    ("file", "encoding"): "MIGRATOR_FILE_ENCODING",
    ("migration", "select_fetch_size"): "MIGRATOR_SELECT_FETCH_SIZE",
    ("migration", "batch_size"): "MIGRATOR_BATCH_SIZE",
    ("migration", "transaction_mode"): "MIGRATOR_TRANSACTION_MODE",
    ("check", "source_fetch_size"): "MIGRATOR_CHECK_SOURCE_FETCH_SIZE",
    ("check", "destination_fetch_size"): "MIGRATOR_CHECK_DESTINATION_FETCH_SIZE",
}


@dataclass(frozen=True)
class JobConfig:
    """
    Immutable settings for one job run.

    ``configured_batch_size`` keeps the value read from configuration so
    that switching away from BY_RECORD restores it.
    """

    encoding: str
    source_fetch_size: int
    destination_fetch_size: int = 1
    configured_batch_size: int = 1
    transaction_mode: TransactionMode = TransactionMode.NONE

    def __post_init__(self) -> None:
        if not self.encoding:
            raise ConfigurationError("file.encoding", self.encoding)
        for key, value in (
            ("source_fetch_size", self.source_fetch_size),
            ("destination_fetch_size", self.destination_fetch_size),
            ("batch_size", self.configured_batch_size),
        ):
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigurationError(key, value)

    @property
    def batch_size(self) -> int:
        """Effective write-batch size; always 1 under BY_RECORD."""
        if self.transaction_mode is TransactionMode.BY_RECORD:
            return 1
        return self.configured_batch_size

    def with_transaction_mode(self, mode: "TransactionMode | str") -> "JobConfig":
        """Return a copy running under ``mode``."""
        return replace(self, transaction_mode=TransactionMode.parse(mode))


def _read_yaml(path: str | Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigurationError(str(path), reason=f"could not be read: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(str(path), reason=f"is not valid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(str(path), reason="must contain a mapping")
    return data


def _lookup(
    settings: Mapping[str, Any],
    environ: Mapping[str, str],
    section: str,
    key: str,
) -> Any:
    env_name = ENV_OVERRIDES[(section, key)]
    env_value = environ.get(env_name)
    if env_value not in (None, ""):
        return env_value
    section_values = settings.get(section) or {}
    if not isinstance(section_values, Mapping):
        raise ConfigurationError(section, reason="must be a mapping")
    return section_values.get(key)


def _require_str(value: Any, name: str) -> str:
    if value is None or str(value).strip() == "":
        logger.critical(f"{name} setting is illegal [{'' if value is None else value}].")
        raise ConfigurationError(name, value)
    return str(value).strip()


def _require_int(value: Any, name: str) -> int:
    text = _require_str(value, name)
    try:
        number = int(text)
    except ValueError:
        logger.critical(f"{name} setting is illegal [{text}].")
        raise ConfigurationError(name, text, reason="must be an integer") from None
    if number < 1:
        logger.critical(f"{name} setting is illegal [{text}].")
        raise ConfigurationError(name, text, reason="must be positive")
    return number


def load_migration_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> JobConfig:
    """
    Load settings for a migration job.

    Args:
        path: Optional YAML file
        environ: Environment mapping (default: os.environ)

    Returns:
        JobConfig with the transaction mode applied

    Raises:
        ConfigurationError: If a required value is missing or invalid
    """
    settings = _read_yaml(path) if path else {}
    environ = os.environ if environ is None else environ

    encoding = _require_str(_lookup(settings, environ, "file", "encoding"), "file.encoding")
    fetch_size = _require_int(
        _lookup(settings, environ, "migration", "select_fetch_size"),
        "migration.select_fetch_size",
    )
    batch_size = _require_int(
        _lookup(settings, environ, "migration", "batch_size"),
        "migration.batch_size",
    )
    mode = TransactionMode.parse(_lookup(settings, environ, "migration", "transaction_mode"))

    config = JobConfig(
        encoding=encoding,
        source_fetch_size=fetch_size,
        configured_batch_size=batch_size,
        transaction_mode=mode,
    )
    logger.debug(
        f"Loaded migration config: mode={mode.value}, batch_size={config.batch_size}, "
        f"fetch_size={fetch_size}, encoding={encoding}"
    )
    return config


def load_check_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> JobConfig:
    """Load settings for a reconciliation job."""
    settings = _read_yaml(path) if path else {}
    environ = os.environ if environ is None else environ

    encoding = _require_str(_lookup(settings, environ, "file", "encoding"), "file.encoding")
    source_fetch = _require_int(
        _lookup(settings, environ, "check", "source_fetch_size"),
        "check.source_fetch_size",
    )
    destination_fetch = _require_int(
        _lookup(settings, environ, "check", "destination_fetch_size"),
        "check.destination_fetch_size",
    )

    return JobConfig(
        encoding=encoding,
        source_fetch_size=source_fetch,
        destination_fetch_size=destination_fetch,
    )
