"""
Configuration loading for the provider registry.

Settings are read from a YAML file (by default in the platform user config
directory) and validated into a RegistryConfig. A missing file yields the
defaults, so a bare deployment only needs a GITHUB_TOKEN in the environment.
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

import platformdirs
import yaml

from provider_registry.constants import (
    APP_NAME,
    ASSET_DOWNLOAD_TIMEOUT,
    CONFIG_FILE_NAME,
    CONFIG_PATH_ENV_VAR,
    DEFAULT_CACHE_TTL_MINUTES,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SINCE_PADDING_MINUTES,
    GITHUB_API_TIMEOUT,
    GITHUB_MAX_PER_PAGE,
)
from provider_registry.exceptions import ConfigFileError, ConfigValidationError
from provider_registry.log_utils import logger


@dataclass
class RegistryConfig:
    """Validated runtime settings for harvesting, caching and key attachment."""

    github_token: Optional[str] = None
    allow_env_token: bool = True
    cache_dir: Optional[str] = None
    cache_ttl: timedelta = timedelta(minutes=DEFAULT_CACHE_TTL_MINUTES)
    since_padding: timedelta = timedelta(minutes=DEFAULT_SINCE_PADDING_MINUTES)
    page_size: int = GITHUB_MAX_PER_PAGE
    api_timeout: float = GITHUB_API_TIMEOUT
    asset_download_timeout: float = ASSET_DOWNLOAD_TIMEOUT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    provider_namespace_redirects: Dict[str, str] = field(default_factory=dict)
    signing_keys: Dict[str, List[Dict[str, str]]] = field(default_factory=dict)

    def effective_provider_namespace(self, namespace: str) -> str:
        """
        Map a registry namespace to the GitHub owner that publishes its releases.

        Some authors do not publish artifacts as GitHub releases under their own
        namespace; a redirect routes lookups to the owner that does.
        """
        return self.provider_namespace_redirects.get(namespace, namespace)

    def resolved_cache_dir(self) -> str:
        return self.cache_dir or platformdirs.user_cache_dir(APP_NAME)


def get_default_config_path() -> str:
    """
    Return the configuration file path, honoring the PROVIDER_REGISTRY_CONFIG override.
    """
    override = os.environ.get(CONFIG_PATH_ENV_VAR)
    if override:
        return override
    return os.path.join(platformdirs.user_config_dir(APP_NAME), CONFIG_FILE_NAME)


def _positive_number(raw: Dict[str, Any], key: str, default: float) -> float:
    value = raw.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigValidationError(
            f"{key} must be a positive number", field=key, details=repr(value)
        )
    return value


def _string_mapping(raw: Dict[str, Any], key: str) -> Dict[str, str]:
    value = raw.get(key) or {}
    if not isinstance(value, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise ConfigValidationError(
            f"{key} must be a mapping of strings to strings", field=key
        )
    return dict(value)


def _signing_keys(raw: Dict[str, Any]) -> Dict[str, List[Dict[str, str]]]:
    value = raw.get("SIGNING_KEYS") or {}
    if not isinstance(value, dict):
        raise ConfigValidationError(
            "SIGNING_KEYS must map namespaces to key lists", field="SIGNING_KEYS"
        )

    table: Dict[str, List[Dict[str, str]]] = {}
    for namespace, keys in value.items():
        if not isinstance(keys, list):
            raise ConfigValidationError(
                "SIGNING_KEYS entries must be lists",
                field="SIGNING_KEYS",
                details=str(namespace),
            )
        entries = []
        for key in keys:
            if (
                not isinstance(key, dict)
                or not isinstance(key.get("key_id"), str)
                or not isinstance(key.get("ascii_armor"), str)
            ):
                raise ConfigValidationError(
                    "Signing keys require string key_id and ascii_armor",
                    field="SIGNING_KEYS",
                    details=str(namespace),
                )
            entries.append(
                {"key_id": key["key_id"], "ascii_armor": key["ascii_armor"]}
            )
        table[str(namespace)] = entries
    return table


def parse_config(raw: Optional[Dict[str, Any]]) -> RegistryConfig:
    """
    Validate a raw configuration mapping and build a RegistryConfig.

    Parameters:
        raw (Optional[Dict[str, Any]]): Mapping loaded from YAML; None means "all defaults".

    Returns:
        RegistryConfig: The validated configuration.

    Raises:
        ConfigValidationError: If any value has the wrong type or is out of range.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigValidationError("Configuration must be a mapping")

    page_size = raw.get("PAGE_SIZE", GITHUB_MAX_PER_PAGE)
    if (
        isinstance(page_size, bool)
        or not isinstance(page_size, int)
        or not 1 <= page_size <= GITHUB_MAX_PER_PAGE
    ):
        raise ConfigValidationError(
            f"PAGE_SIZE must be an integer between 1 and {GITHUB_MAX_PER_PAGE}",
            field="PAGE_SIZE",
            details=repr(page_size),
        )

    padding_minutes = raw.get("SINCE_PADDING_MINUTES", DEFAULT_SINCE_PADDING_MINUTES)
    if (
        isinstance(padding_minutes, bool)
        or not isinstance(padding_minutes, (int, float))
        or padding_minutes < 0
    ):
        raise ConfigValidationError(
            "SINCE_PADDING_MINUTES must be a non-negative number",
            field="SINCE_PADDING_MINUTES",
            details=repr(padding_minutes),
        )

    token = raw.get("GITHUB_TOKEN")
    if token is not None and not isinstance(token, str):
        raise ConfigValidationError("GITHUB_TOKEN must be a string", field="GITHUB_TOKEN")

    cache_dir = raw.get("CACHE_DIR")
    if cache_dir is not None and not isinstance(cache_dir, str):
        raise ConfigValidationError("CACHE_DIR must be a string", field="CACHE_DIR")

    return RegistryConfig(
        github_token=token,
        allow_env_token=bool(raw.get("ALLOW_ENV_TOKEN", True)),
        cache_dir=cache_dir,
        cache_ttl=timedelta(
            minutes=_positive_number(
                raw, "CACHE_TTL_MINUTES", DEFAULT_CACHE_TTL_MINUTES
            )
        ),
        since_padding=timedelta(minutes=padding_minutes),
        page_size=page_size,
        api_timeout=_positive_number(raw, "GITHUB_API_TIMEOUT", GITHUB_API_TIMEOUT),
        asset_download_timeout=_positive_number(
            raw, "ASSET_DOWNLOAD_TIMEOUT", ASSET_DOWNLOAD_TIMEOUT
        ),
        request_timeout=_positive_number(
            raw, "REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT
        ),
        provider_namespace_redirects=_string_mapping(
            raw, "PROVIDER_NAMESPACE_REDIRECTS"
        ),
        signing_keys=_signing_keys(raw),
    )


def load_config(config_path: Optional[str] = None) -> RegistryConfig:
    """
    Load the registry configuration YAML.

    Parameters:
        config_path (str | None): Explicit file to load. If None, the default path is used.

    Returns:
        RegistryConfig: Parsed configuration, or defaults when the file does not exist.

    Raises:
        ConfigFileError: If the file exists but cannot be read or parsed.
        ConfigValidationError: If the parsed values are invalid.
    """
    path = config_path or get_default_config_path()
    if not os.path.exists(path):
        logger.debug(f"No configuration file at {path}; using defaults")
        return parse_config(None)

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(
            f"Could not load configuration from {path}", details=str(e)
        ) from e

    logger.debug(f"Loaded configuration from {path}")
    return parse_config(raw)
