"""
HashiCorp Vault client for fetching database credentials

Reads connection settings for a job's source or destination from the
Vault KV v2 secrets engine.
"""

import logging
import os
import re
from typing import Any

import requests

logger = logging.getLogger(__name__)

# Secret keys accepted for each connection setting, first match wins
SETTING_ALIASES = {
    "host": ("host", "server"),
    "port": ("port",),
    "database": ("database", "dbname"),
    "user": ("user", "username"),
    "password": ("password",),
}


class VaultClient:
    """
    HashiCorp Vault client for secrets management

    This client uses the KV v2 secrets engine to fetch database credentials.
    """

    def __init__(
        self,
        vault_addr: str | None = None,
        vault_token: str | None = None,
        namespace: str | None = None,
        timeout: int = 10,
    ):
        """
        Initialize Vault client

        Args:
            vault_addr: Vault server address (default: from VAULT_ADDR env var)
            vault_token: Vault authentication token (default: from VAULT_TOKEN env var)
            namespace: Vault namespace (optional, for Vault Enterprise)
            timeout: Request timeout in seconds

        Raises:
            ValueError: If vault_addr or vault_token are not provided
        """
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.namespace = namespace or os.getenv("VAULT_NAMESPACE")
        self.timeout = timeout

        if not self.vault_addr:
            raise ValueError(
                "Vault address not provided. Set VAULT_ADDR environment variable "
                "or pass vault_addr parameter."
            )

        if not self.vault_token:
            raise ValueError(
                "Vault token not provided. Set VAULT_TOKEN environment variable "
                "or pass vault_token parameter."
            )

        self.vault_addr = self.vault_addr.rstrip("/")

        self.headers = {
            "X-Vault-Token": self.vault_token,
            "Content-Type": "application/json",
        }
        if self.namespace:
            self.headers["X-Vault-Namespace"] = self.namespace

        logger.info(f"Initialized Vault client for {self.vault_addr}")

    @staticmethod
    def kv2_path(secret_path: str) -> str:
        """
        Validate a secret path and insert the KV v2 ``data`` segment.

        Raises:
            ValueError: If the path is empty or contains unsafe characters
        """
        if not secret_path or not isinstance(secret_path, str):
            raise ValueError("secret_path must be a non-empty string")

        if ".." in secret_path or secret_path.startswith("//"):
            raise ValueError(
                f"Invalid secret_path: {secret_path}. "
                "Path traversal attempts are not allowed."
            )

        if not re.match(r"^[a-zA-Z0-9/_-]+$", secret_path):
            raise ValueError(
                f"Invalid secret_path: {secret_path}. "
                "Only alphanumeric characters, slashes, underscores, and hyphens are allowed."
            )

        if "/data/" in secret_path:
            return secret_path
        mount, sep, rest = secret_path.partition("/")
        return f"{mount}/data/{rest}" if sep else f"{secret_path}/data"

    def get_secret(self, secret_path: str) -> dict[str, Any]:
        """
        Fetch secret from Vault KV v2 secrets engine

        Args:
            secret_path: Path to secret (e.g., "secret/migrator/source")

        Returns:
            Dictionary containing secret data

        Raises:
            ValueError: If the path is invalid or the secret is missing or empty
            requests.RequestException: If the Vault request fails
        """
        path = self.kv2_path(secret_path)
        url = f"{self.vault_addr}/v1/{path}"

        logger.debug(f"Fetching secret from: {url}")
        response = requests.get(url, headers=self.headers, timeout=self.timeout)

        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {path}")

        response.raise_for_status()

        secret_data = response.json().get("data", {}).get("data", {})
        if not secret_data:
            raise ValueError(f"No data found in secret at path: {path}")

        logger.debug(f"Successfully fetched secret from {path}")
        return secret_data

    def get_connection_settings(self, secret_path: str) -> dict[str, Any]:
        """
        Fetch connection settings for one side of a job.

        Secret keys are normalised to the connection factories' argument
        names (``server`` becomes ``host``, ``username`` becomes ``user``).

        Raises:
            ValueError: If the secret lacks host, database, user or password
        """
        secret = self.get_secret(secret_path)

        settings: dict[str, Any] = {}
        for setting, aliases in SETTING_ALIASES.items():
            for alias in aliases:
                if alias in secret:
                    settings[setting] = secret[alias]
                    break

        missing = [name for name in ("host", "database", "user", "password") if name not in settings]
        if missing:
            raise ValueError(
                f"Missing required fields in secret {secret_path}: {', '.join(missing)}"
            )

        if "port" in settings:
            settings["port"] = int(settings["port"])

        logger.info(f"Fetched connection settings from Vault path {secret_path}")
        return settings

    def health_check(self) -> bool:
        """
        Check if Vault is accessible and healthy

        Returns:
            True if Vault is healthy, False otherwise
        """
        url = f"{self.vault_addr}/v1/sys/health"

        try:
            response = requests.get(url, timeout=5)
            # 200 active, 429 standby, 472 DR secondary, 473 performance standby
            return response.status_code in [200, 429, 472, 473]
        except requests.RequestException as e:
            logger.error(f"Vault health check failed: {e}")
            return False
