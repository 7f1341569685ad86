"""
Connection settings for the CLI.

Settings for each side come from the jobs file, overridden by
``SOURCE_DB_*`` / ``DESTINATION_DB_*`` environment variables, or from
HashiCorp Vault when requested.
"""

import logging
import os
from collections.abc import Mapping
from typing import Any

import requests

from jobs.errors import ConfigurationError
from utils.vault_client import VaultClient

logger = logging.getLogger(__name__)

ENV_SETTINGS = {
    "host": "HOST",
    "port": "PORT",
    "database": "NAME",
    "user": "USER",
    "password": "PASSWORD",
    "connection_string": "CONNECTION_STRING",
}

# Keys in a jobs-file connection section that are not factory arguments
SECTION_KEYS = ("type", "vault_path")


def env_prefix(role: str) -> str:
    return f"{role.upper()}_DB_"


def settings_from_env(role: str, environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Connection settings found in ``<ROLE>_DB_*`` environment variables."""
    environ = os.environ if environ is None else environ
    prefix = env_prefix(role)
    settings: dict[str, Any] = {}
    for setting, suffix in ENV_SETTINGS.items():
        value = environ.get(prefix + suffix)
        if value:
            settings[setting] = value
    return settings


def settings_from_vault(role: str, vault_path: str | None) -> dict[str, Any]:
    """
    Connection settings stored in Vault.

    Raises:
        ConfigurationError: If Vault is not configured or the secret is unusable
    """
    path = vault_path or f"secret/migrator/{role}"
    try:
        client = VaultClient()
        return client.get_connection_settings(path)
    except (ValueError, requests.RequestException) as e:
        logger.error(f"Failed to fetch {role} credentials from Vault: {e}")
        raise ConfigurationError(f"{role}.vault_path", path, "could not be read from Vault") from e


def resolve_connection(
    role: str,
    section: Mapping[str, Any] | None,
    use_vault: bool = False,
    environ: Mapping[str, str] | None = None,
) -> tuple[str, dict[str, Any]]:
    """
    Resolve database type and factory settings for one side of a job.

    Args:
        role: "source" or "destination"
        section: The role's section of the jobs file
        use_vault: Read credentials from Vault instead of the environment
        environ: Environment to read (default: os.environ)

    Returns:
        Tuple of (database_type, settings)

    Raises:
        ConfigurationError: If the type or the credentials are missing
    """
    section = dict(section or {})
    database_type = section.get("type")
    if not database_type:
        raise ConfigurationError(f"{role}.type", database_type, "setting is missing")

    settings = {k: v for k, v in section.items() if k not in SECTION_KEYS}
    if use_vault or section.get("vault_path"):
        settings.update(settings_from_vault(role, section.get("vault_path")))
    else:
        settings.update(settings_from_env(role, environ))

    if str(database_type).lower() != "sqlserver":
        settings.pop("connection_string", None)

    if "port" in settings:
        try:
            settings["port"] = int(settings["port"])
        except (TypeError, ValueError):
            raise ConfigurationError(f"{role}.port", settings["port"], "setting is not an integer") from None

    if not settings.get("connection_string") and not settings.get("password"):
        logger.error(f"{role.capitalize()} database password not provided")
        raise ConfigurationError(f"{role}.password", None, "setting is missing")

    return str(database_type), settings
