"""
Vault lookup of merge database credentials.

Each side of a merge keeps its connection settings in the KV v2 engine at
``<mount>/db-merge/<role>``, role being ``source`` or ``target``. A secret
holds host, database, username and password, and optionally port and
db_type.
"""

import logging
import os
import re
from typing import Any

import requests

logger = logging.getLogger(__name__)

VALID_ROLES = ("source", "target")
SECRET_PREFIX = "db-merge"
REQUIRED_CREDENTIAL_FIELDS = ("host", "database", "username", "password")

# Relative KV paths only: no traversal, no query strings, no whitespace
_SECRET_PATH = re.compile(r"^(?!/)(?!.*\.\.)[A-Za-z0-9/_-]+$")

# 200 active, 429 standby, 472 DR secondary, 473 performance standby
_HEALTHY_STATUS_CODES = frozenset({200, 429, 472, 473})

REQUEST_TIMEOUT = 10
HEALTH_TIMEOUT = 5


class VaultClient:
    """Reads KV v2 secrets with a token from the arguments or VAULT_* variables."""

    def __init__(
        self,
        vault_addr: str | None = None,
        vault_token: str | None = None,
        namespace: str | None = None,
        mount_point: str = "secret",
    ):
        """
        Args:
            vault_addr: Server address; defaults to VAULT_ADDR
            vault_token: Token; defaults to VAULT_TOKEN
            namespace: Enterprise namespace; defaults to VAULT_NAMESPACE
            mount_point: KV v2 mount holding the db-merge secrets

        Raises:
            ValueError: No address or no token could be found
        """
        vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        vault_token = vault_token or os.getenv("VAULT_TOKEN")
        if not vault_addr:
            raise ValueError("Vault address not provided; set VAULT_ADDR or pass vault_addr")
        if not vault_token:
            raise ValueError("Vault token not provided; set VAULT_TOKEN or pass vault_token")

        self.vault_addr = vault_addr.rstrip("/")
        self.vault_token = vault_token
        self.namespace = namespace or os.getenv("VAULT_NAMESPACE")
        self.mount_point = mount_point

        self.headers = {"X-Vault-Token": vault_token, "Content-Type": "application/json"}
        if self.namespace:
            self.headers["X-Vault-Namespace"] = self.namespace

        logger.debug(f"Vault client for {self.vault_addr} (mount {mount_point})")

    def get_secret(self, secret_path: str) -> dict[str, Any]:
        """
        Read the data of the secret at ``secret_path`` below the mount.

        Raises:
            ValueError: The path is malformed, or the secret is missing or empty
            requests.RequestException: Vault could not be reached or refused the request
        """
        if not isinstance(secret_path, str) or not _SECRET_PATH.match(secret_path):
            raise ValueError(
                f"Invalid secret_path {secret_path!r}: expected a relative path of "
                "letters, digits, '/', '_' and '-'"
            )

        response = requests.get(
            f"{self.vault_addr}/v1/{self.mount_point}/data/{secret_path}",
            headers=self.headers,
            timeout=REQUEST_TIMEOUT,
        )
        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {secret_path}")
        response.raise_for_status()

        data = (response.json().get("data") or {}).get("data") or {}
        if not data:
            raise ValueError(f"No data found in secret at path: {secret_path}")
        return data

    def get_database_credentials(self, role: str) -> dict[str, Any]:
        """
        Connection settings for the ``source`` or ``target`` database.

        Raises:
            ValueError: Unknown role, or the secret lacks a required field
        """
        if role not in VALID_ROLES:
            raise ValueError(f"Invalid role: {role!r}. Must be one of: {', '.join(VALID_ROLES)}")

        credentials = self.get_secret(f"{SECRET_PREFIX}/{role}")

        missing = [name for name in REQUIRED_CREDENTIAL_FIELDS if name not in credentials]
        if missing:
            raise ValueError(f"Missing required fields in {role} secret: {', '.join(missing)}")

        logger.info(f"Loaded {role} database credentials from Vault")
        return credentials

    def health_check(self) -> bool:
        """True when Vault answers and is unsealed, active or standby."""
        try:
            response = requests.get(f"{self.vault_addr}/v1/sys/health", timeout=HEALTH_TIMEOUT)
        except requests.RequestException as e:
            logger.error(f"Vault at {self.vault_addr} is unreachable: {e}")
            return False
        return response.status_code in _HEALTHY_STATUS_CODES
