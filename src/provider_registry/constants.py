"""
Constants and configuration defaults for the provider registry.

This module contains the hardcoded URLs, timeouts, asset naming conventions
and other values used throughout the harvesting and caching subsystem.
"""

# GitHub API URLs
GITHUB_API_ROOT = "https://api.github.com"
GITHUB_API_BASE = f"{GITHUB_API_ROOT}/repos"
GITHUB_GRAPHQL_URL = f"{GITHUB_API_ROOT}/graphql"
GITHUB_API_VERSION = "2022-11-28"

# Network timeouts (in seconds)
GITHUB_API_TIMEOUT = 10
ASSET_DOWNLOAD_TIMEOUT = 60
DEFAULT_REQUEST_TIMEOUT = 25

# Pagination
GITHUB_MAX_PER_PAGE = 100
RELEASE_ASSETS_PER_RELEASE = 100

# Harvesting and cache timing (in minutes)
DEFAULT_SINCE_PADDING_MINUTES = 2
DEFAULT_CACHE_TTL_MINUTES = 55  # just under an hour

# Repository naming conventions
PROVIDER_REPO_PREFIX = "terraform-provider-"
MODULE_REPO_PREFIX = "terraform-"
RELEASE_TAG_PREFIX = "v"

# Release asset naming conventions
SHASUMS_SUFFIX = "SHA256SUMS"
SHASUMS_SIGNATURE_SUFFIX = "SHA256SUMS.sig"
MANIFEST_SUFFIX = "_manifest.json"
ZIP_EXTENSION = ".zip"
DEFAULT_PROTOCOLS = ["5.0"]

# Cache files
CACHE_FILE_SUFFIX = ".json"

# Logging configuration
LOGGER_NAME = "provider_registry"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_NAME = "provider_registry.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Application identity
APP_NAME = "provider-registry"
CONFIG_FILE_NAME = "provider_registry.yaml"

# Environment variable names
LOG_LEVEL_ENV_VAR = "PROVIDER_REGISTRY_LOG_LEVEL"
CONFIG_PATH_ENV_VAR = "PROVIDER_REGISTRY_CONFIG"
GITHUB_TOKEN_ENV_VAR = "GITHUB_TOKEN"
