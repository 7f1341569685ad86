"""
Unit tests for src/jobs/cli/credentials.py
"""

from unittest.mock import patch

import pytest
import requests

from jobs.cli.credentials import resolve_connection, settings_from_env
from jobs.errors import ConfigurationError

SOURCE_ENV = {
    "SOURCE_DB_HOST": "mssql.internal",
    "SOURCE_DB_PORT": "1433",
    "SOURCE_DB_NAME": "legacy",
    "SOURCE_DB_USER": "migrator",
    "SOURCE_DB_PASSWORD": "pw",
}


class TestSettingsFromEnv:
    """Test environment lookups"""

    def test_reads_role_prefix(self):
        """Test only the role's variables are used"""
        environ = {**SOURCE_ENV, "DESTINATION_DB_HOST": "pg.internal"}

        settings = settings_from_env("source", environ)

        assert settings == {
            "host": "mssql.internal",
            "port": "1433",
            "database": "legacy",
            "user": "migrator",
            "password": "pw",
        }

    def test_empty_values_are_ignored(self):
        assert settings_from_env("destination", {"DESTINATION_DB_HOST": ""}) == {}


class TestResolveConnection:
    """Test resolve_connection"""

    def test_environment_overrides_section(self):
        """Test env values win over the jobs file and port becomes an int"""
        # Arrange
        section = {"type": "sqlserver", "host": "old-host", "driver": "ODBC Driver 17 for SQL Server"}

        # Act
        database_type, settings = resolve_connection("source", section, environ=SOURCE_ENV)

        # Assert
        assert database_type == "sqlserver"
        assert settings["host"] == "mssql.internal"
        assert settings["port"] == 1433
        assert settings["driver"] == "ODBC Driver 17 for SQL Server"
        assert "type" not in settings

    def test_missing_type(self):
        """Test the database type is required"""
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_connection("source", {"host": "h"}, environ=SOURCE_ENV)
        assert exc_info.value.key == "source.type"

    def test_missing_password(self):
        """Test a password is required without a connection string"""
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_connection("destination", {"type": "postgresql", "host": "pg"}, environ={})
        assert exc_info.value.key == "destination.password"

    def test_sqlserver_connection_string_replaces_password(self):
        """Test an ODBC string is enough for SQL Server"""
        environ = {"SOURCE_DB_CONNECTION_STRING": "DSN=legacy"}

        _, settings = resolve_connection("source", {"type": "sqlserver"}, environ=environ)

        assert settings == {"connection_string": "DSN=legacy"}

    def test_connection_string_dropped_for_postgresql(self):
        """Test ODBC strings only apply to SQL Server"""
        environ = {"DESTINATION_DB_CONNECTION_STRING": "DSN=x", "DESTINATION_DB_PASSWORD": "pw"}

        _, settings = resolve_connection("destination", {"type": "postgresql"}, environ=environ)

        assert "connection_string" not in settings

    def test_invalid_port(self):
        """Test a non-numeric port is a configuration error"""
        environ = {**SOURCE_ENV, "SOURCE_DB_PORT": "mssql"}

        with pytest.raises(ConfigurationError):
            resolve_connection("source", {"type": "sqlserver"}, environ=environ)

    @patch("jobs.cli.credentials.VaultClient")
    def test_vault_settings(self, mock_client):
        """Test credentials are fetched from the section's Vault path"""
        # Arrange
        mock_client.return_value.get_connection_settings.return_value = {
            "host": "pg.internal", "port": 5432, "database": "warehouse",
            "user": "migrator", "password": "from-vault",
        }

        # Act
        _, settings = resolve_connection(
            "destination", {"type": "postgresql", "vault_path": "secret/migrator/pg"}, environ={}
        )

        # Assert
        mock_client.return_value.get_connection_settings.assert_called_once_with("secret/migrator/pg")
        assert settings["password"] == "from-vault"
        assert "vault_path" not in settings

    @patch("jobs.cli.credentials.VaultClient")
    def test_vault_default_path(self, mock_client):
        """Test --use-vault reads the role's default path"""
        mock_client.return_value.get_connection_settings.return_value = {"password": "pw"}

        resolve_connection("source", {"type": "sqlserver"}, use_vault=True, environ={})

        mock_client.return_value.get_connection_settings.assert_called_once_with("secret/migrator/source")

    @patch("jobs.cli.credentials.VaultClient")
    def test_vault_failure(self, mock_client):
        """Test Vault errors become configuration errors"""
        mock_client.return_value.get_connection_settings.side_effect = requests.ConnectionError("refused")

        with pytest.raises(ConfigurationError) as exc_info:
            resolve_connection("source", {"type": "sqlserver"}, use_vault=True)

        assert exc_info.value.key == "source.vault_path"
