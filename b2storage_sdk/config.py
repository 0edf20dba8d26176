"""
Client configuration.

A ClientConfig is built once (from a config file, the environment and explicit
overrides) and handed to B2Client. Nothing in the SDK reads configuration from
module-level state.
"""

import os
import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Mapping, Union

from .exceptions import ConfigurationError
from .models import Credentials


DEFAULT_HOST = "https://api.backblazeb2.com"
DEFAULT_CONFIG_FILE = Path.home() / ".b2storage" / "config.json"

ENV_VARIABLES = {
    "account_id": "B2_ACCOUNT_ID",
    "application_key": "B2_APP_KEY",
    "host": "B2_HOST",
}


@dataclass(frozen=True)
class ClientConfig:
    """
    Settings for a B2Client.

    Args:
        account_id: Account (or application key) ID
        application_key: Secret application key
        host: Base URL of the authorization endpoint
        timeout: Per-request timeout in seconds
        max_connections: Size of the HTTP connection pool
        no_retry: Disable the single retry on transient errors
        chunk_size: Read size used while hashing and streaming
    """

    account_id: Optional[str] = None
    application_key: Optional[str] = None
    host: str = DEFAULT_HOST
    timeout: float = 30
    max_connections: int = 10
    no_retry: bool = False
    chunk_size: int = 1024 * 1024

    def __repr__(self):
        return (
            f"ClientConfig(account_id={self.account_id!r}, host={self.host!r}, "
            f"timeout={self.timeout}, max_connections={self.max_connections}, no_retry={self.no_retry})"
        )

    @property
    def credentials(self) -> Credentials:
        self.require_credentials()
        return Credentials(self.account_id, self.application_key)

    def require_credentials(self):
        """Raise ConfigurationError unless both credentials are set."""
        if not self.account_id:
            raise ConfigurationError(
                "Account ID not configured. Use --account or set B2_ACCOUNT_ID.",
                config_key="account_id",
            )
        if not self.application_key:
            raise ConfigurationError(
                "Application key not configured. Use --app-key or set B2_APP_KEY.",
                config_key="application_key",
            )

    def with_overrides(self, **overrides) -> "ClientConfig":
        """Return a copy with every non-None override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        return cls().with_overrides(**_read_env(environ))

    @classmethod
    def load(
        cls,
        path: Optional[Union[str, Path]] = None,
        environ: Optional[Mapping[str, str]] = None,
        **overrides,
    ) -> "ClientConfig":
        """
        Build a config from a JSON file, then the environment, then ``overrides``.

        A missing file is not an error unless ``path`` was given explicitly.
        """
        explicit = path is not None
        path = Path(path) if explicit else DEFAULT_CONFIG_FILE

        config = cls()
        if path.exists():
            config = config.with_overrides(**_read_file(path))
        elif explicit:
            raise ConfigurationError(f"Config file not found: {path}", config_key="config")

        return config.with_overrides(**_read_env(environ)).with_overrides(**overrides)


def _read_env(environ: Optional[Mapping[str, str]]) -> dict:
    environ = os.environ if environ is None else environ
    return {
        field_name: environ[variable]
        for field_name, variable in ENV_VARIABLES.items()
        if environ.get(variable)
    }


def _read_file(path: Path) -> dict:
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        raise ConfigurationError(f"Failed to read config file {path}: {e}", config_key="config")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object", config_key="config")

    allowed = set(ClientConfig.__dataclass_fields__)
    unknown = set(data) - allowed
    if unknown:
        raise ConfigurationError(
            f"Unknown config keys in {path}: {', '.join(sorted(unknown))}",
            config_key=sorted(unknown)[0],
        )
    return data
