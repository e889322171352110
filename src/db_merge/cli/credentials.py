"""
Credential management and logging setup for CLI.

This module builds the source and target DatabaseConfig from Vault or
from command-line arguments and environment variables, and configures
logging for the CLI application.
"""

import argparse
import logging
import os
import sys
from typing import Any

from src.db_merge.models import DatabaseConfig
from src.utils.database_types import DatabaseType
from src.utils.logging import configure_from_env
from src.utils.vault_client import VaultClient

logger = logging.getLogger(__name__)

DEFAULT_DB_TYPE = "mysql"
ROLES = ("source", "target")


def setup_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """
    Setup logging configuration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: Emit JSON lines instead of console text
    """
    configure_from_env(level=log_level, json_format=json_format or None)


def _setting(args: argparse.Namespace, role: str, key: str, default: Any = None) -> Any:
    """
    Resolve one connection setting

    Order: --<role>-<key>, <ROLE>_DB_<KEY>, DB_<KEY>, default. The shared
    DB_* variables cover the common case of both databases on one server.
    """
    value = getattr(args, f"{role}_{key}", None)
    if value is not None:
        return value
    env_key = key.upper()
    value = os.getenv(f"{role.upper()}_DB_{env_key}")
    if value is not None:
        return value
    return os.getenv(f"DB_{env_key}", default)


def _config_from_env(args: argparse.Namespace, role: str) -> DatabaseConfig:
    db_type = DatabaseType.from_string(_setting(args, role, "type", DEFAULT_DB_TYPE))
    database = _setting(args, role, "database")
    if not database:
        raise ValueError(
            f"{role.capitalize()} database name not provided "
            f"(--{role}-database or {role.upper()}_DB_DATABASE)"
        )

    return DatabaseConfig(
        db_type=db_type,
        host=_setting(args, role, "host", "localhost"),
        port=int(_setting(args, role, "port", db_type.default_port)),
        database=database,
        user=_setting(args, role, "user", "root"),
        password=_setting(args, role, "password", ""),
        schema=_setting(args, role, "schema"),
    )


def _config_from_vault(vault_client: VaultClient, args: argparse.Namespace, role: str) -> DatabaseConfig:
    creds = vault_client.get_database_credentials(role)
    db_type = DatabaseType.from_string(
        creds.get("db_type") or _setting(args, role, "type", DEFAULT_DB_TYPE)
    )
    return DatabaseConfig(
        db_type=db_type,
        host=creds["host"],
        port=int(creds.get("port", db_type.default_port)),
        database=creds["database"],
        user=creds["username"],
        password=creds["password"],
        schema=creds.get("schema") or _setting(args, role, "schema"),
    )


def get_database_configs(args: argparse.Namespace) -> tuple[DatabaseConfig, DatabaseConfig]:
    """
    Get source and target connection settings from Vault or environment/args

    Args:
        args: Parsed command-line arguments

    Returns:
        Tuple of (source_config, target_config)
    """
    try:
        if args.use_vault:
            vault_client = VaultClient()
            configs = tuple(_config_from_vault(vault_client, args, role) for role in ROLES)
            logger.info("Successfully fetched credentials from Vault")
        else:
            configs = tuple(_config_from_env(args, role) for role in ROLES)
    except Exception as e:
        logger.error(f"Failed to resolve database credentials: {e}")
        sys.exit(1)

    source_config, target_config = configs
    return source_config, target_config
