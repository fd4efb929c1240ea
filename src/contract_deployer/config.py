"""Environment configuration for contract-deployer."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from .constants import (
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_GAS_LIMIT,
    DEFAULT_RPC_URL,
    ENV_ACCOUNT_PASSWORD,
    ENV_CONFIRMATION_TIMEOUT,
    ENV_GAS_LIMIT,
    ENV_LOG_LEVEL,
    ENV_RECORD_FILE,
    ENV_RPC_URL,
    ENV_SOLC_VERSION,
)
from .exceptions import ConfigurationError
from .records import default_record_path


@dataclass
class Settings:
    """Resolved settings for one invocation."""

    rpc_url: str = DEFAULT_RPC_URL
    gas_limit: int = DEFAULT_GAS_LIMIT
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    solc_version: Optional[str] = None  # None: derive from pragma
    account_password: str = ""
    record_file: Optional[Path] = None
    log_level: str = "INFO"


def load_settings(env_file: Optional[str] = None, **overrides: Any) -> Settings:
    """
    Resolve settings from overrides, the environment and a .env file.

    Precedence: non-None overrides (command-line flags) > environment
    variables > .env file > defaults. The .env file never replaces
    variables already set in the environment.

    Args:
        env_file: Path to a .env file (defaults to ./.env if present)
        **overrides: Settings field values; None means "not given"

    Returns:
        Settings

    Raises:
        ConfigurationError: If a numeric setting is malformed or not positive
    """
    load_dotenv(env_file or Path.cwd() / ".env", override=False)

    def pick(field: str, env_var: str) -> Optional[Any]:
        value = overrides.get(field)
        if value is not None:
            return value
        return os.environ.get(env_var) or None

    record_file = pick("record_file", ENV_RECORD_FILE)

    return Settings(
        rpc_url=pick("rpc_url", ENV_RPC_URL) or DEFAULT_RPC_URL,
        gas_limit=_positive(pick("gas_limit", ENV_GAS_LIMIT), int, ENV_GAS_LIMIT, DEFAULT_GAS_LIMIT),
        confirmation_timeout=_positive(
            pick("confirmation_timeout", ENV_CONFIRMATION_TIMEOUT),
            float,
            ENV_CONFIRMATION_TIMEOUT,
            DEFAULT_CONFIRMATION_TIMEOUT,
        ),
        solc_version=pick("solc_version", ENV_SOLC_VERSION),
        account_password=pick("account_password", ENV_ACCOUNT_PASSWORD) or "",
        record_file=Path(record_file) if record_file else default_record_path(),
        log_level=(pick("log_level", ENV_LOG_LEVEL) or "INFO").upper(),
    )


def _positive(value: Optional[Any], convert: Any, name: str, default: Any) -> Any:
    if value is None:
        return default
    try:
        converted = convert(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for {name}: {value!r}") from e
    if converted <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")
    return converted
