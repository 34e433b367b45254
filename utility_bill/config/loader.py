"""
Configuration management and loading.

Handles database, retry and provider endpoint settings.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

from utility_bill.providers import PROVIDER_CLASSES
from utility_bill.providers.ausgrid import DEFAULT_BASE_URL as AUSGRID_BASE_URL
from utility_bill.providers.jemena import DEFAULT_BASE_URL as JEMENA_BASE_URL
from utility_bill.storage.db import DEFAULT_DB_PATH


@dataclass(frozen=True)
class RetryConfig:
    """Rate-limit retry policy for provider calls."""
    max_attempts: int = 3
    min_backoff_ms: int = 1000
    max_backoff_ms: int = 3000

    def __post_init__(self):
        """Validate retry bounds."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.min_backoff_ms < 0:
            raise ValueError("min_backoff_ms must be >= 0")
        if self.max_backoff_ms < self.min_backoff_ms:
            raise ValueError("max_backoff_ms must be >= min_backoff_ms")


@dataclass(frozen=True)
class ProviderConfig:
    """Endpoint settings for one usage provider."""
    base_url: str
    timeout_seconds: float = 10.0

    def __post_init__(self):
        """Validate provider settings."""
        if not self.base_url or not self.base_url.strip():
            raise ValueError("base_url is required and cannot be empty")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")


def _default_providers() -> Dict[str, ProviderConfig]:
    return {
        "ausgrid": ProviderConfig(base_url=AUSGRID_BASE_URL),
        "jemena": ProviderConfig(base_url=JEMENA_BASE_URL),
    }


@dataclass(frozen=True)
class BillingConfig:
    """Complete billing configuration."""
    db_path: str = DEFAULT_DB_PATH
    retry: RetryConfig = field(default_factory=RetryConfig)
    providers: Dict[str, ProviderConfig] = field(default_factory=_default_providers)


def default_config() -> BillingConfig:
    """Configuration used when no file is given."""
    return BillingConfig()


def load_billing_config(path: str) -> BillingConfig:
    """Load and validate billing configuration from YAML file.

    Every section is optional; missing sections take their defaults. Unknown
    keys are rejected so typos never silently fall back to defaults.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated BillingConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Billing config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'database', 'retry', 'providers'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    db_path = DEFAULT_DB_PATH
    if 'database' in raw_config:
        database = _section(raw_config, 'database', {'path'})
        if 'path' in database:
            if not isinstance(database['path'], str) or not database['path'].strip():
                raise ValueError("'path' in database must be a non-empty string")
            db_path = database['path']

    retry = RetryConfig()
    if 'retry' in raw_config:
        retry = _parse_retry_config(_section(raw_config, 'retry', {'max_attempts', 'min_backoff_ms', 'max_backoff_ms'}))

    providers = _default_providers()
    if 'providers' in raw_config:
        providers_data = raw_config['providers']
        if not isinstance(providers_data, dict):
            raise ValueError("'providers' must be a dictionary")

        providers = {}
        for provider_id, provider_data in providers_data.items():
            if provider_id not in PROVIDER_CLASSES:
                raise ValueError(
                    f"Unknown provider '{provider_id}', must be one of: {sorted(PROVIDER_CLASSES)}"
                )
            if not isinstance(provider_data, dict):
                raise ValueError(f"Provider '{provider_id}' must be a dictionary")
            providers[provider_id] = _parse_provider_config(provider_data, f"providers.{provider_id}")

    return BillingConfig(db_path=db_path, retry=retry, providers=providers)


def _section(raw_config: Dict, name: str, allowed_keys: set) -> Dict[str, Any]:
    data = raw_config[name]
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown {name} keys: {unknown_keys}")
    return data


def _parse_retry_config(data: Dict) -> RetryConfig:
    """Parse and validate the retry section.

    Raises:
        ValueError: If any value is not an integer or violates its bounds
    """
    values = {}
    for key in ('max_attempts', 'min_backoff_ms', 'max_backoff_ms'):
        if key in data:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"'{key}' in retry must be an integer")
            values[key] = value
    return RetryConfig(**values)


def _parse_provider_config(data: Dict, path: str) -> ProviderConfig:
    """Parse and validate provider endpoint configuration.

    Args:
        data: Provider configuration data
        path: Path for error messages

    Returns:
        Validated ProviderConfig

    Raises:
        ValueError: If configuration is invalid
    """
    allowed_keys = {'base_url', 'timeout_seconds'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    if 'base_url' not in data:
        raise ValueError(f"Missing required 'base_url' in {path}")

    base_url = data['base_url']
    if not isinstance(base_url, str) or not base_url.strip():
        raise ValueError(f"'base_url' in {path} must be a non-empty string")

    timeout = data.get('timeout_seconds', 10.0)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ValueError(f"'timeout_seconds' in {path} must be > 0")

    return ProviderConfig(base_url=base_url, timeout_seconds=float(timeout))
