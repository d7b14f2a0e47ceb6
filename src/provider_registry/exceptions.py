"""
Custom exceptions for the provider registry.

This module defines the error taxonomy of the harvesting and caching
subsystem. Upstream and deadline failures propagate to the caller, absence is
reported through NotFoundError, and cache backend failures are raised as
CacheUnavailableError so that read paths can fall back to live harvesting.
"""


class RegistryError(Exception):
    """
    Base exception for all provider registry errors.

    All custom exceptions in the registry inherit from this class
    to allow for easy catching of all application-specific errors.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(RegistryError):
    """
    Exception raised when configuration is invalid or missing.

    This includes:
    - Invalid configuration values
    - Configuration file parsing errors
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read or parsed."""

    pass


class ConfigValidationError(ConfigurationError):
    """
    Exception raised when configuration validation fails.

    Attributes:
        field: The configuration key that failed validation.
    """

    def __init__(
        self, message: str, field: str | None = None, details: str | None = None
    ) -> None:
        super().__init__(message, details)
        self.field = field


# =============================================================================
# Upstream Errors
# =============================================================================


class UpstreamQueryError(RegistryError):
    """
    Exception raised when a query against the release-hosting service fails.

    This includes transport failures, GraphQL errors and malformed payloads.
    There is no local recovery; callers map it to a failure status.

    Attributes:
        endpoint: The API endpoint that was accessed.
        status_code: The HTTP status code returned, when one was received.
    """

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        """
        Initialize the upstream exception.

        Args:
            message: The primary error message.
            endpoint: The API endpoint that was accessed.
            status_code: The HTTP status code returned.
            details: Optional additional context.
        """
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class AssetDownloadError(UpstreamQueryError):
    """Exception raised when a release asset cannot be downloaded."""

    pass


class DeadlineExceededError(RegistryError):
    """Exception raised when the request deadline passes before the pipeline completes."""

    pass


# =============================================================================
# Absence
# =============================================================================


class NotFoundError(RegistryError):
    """
    Exception raised for an expected absence.

    The repository, version or platform requested does not exist. This is a
    routine negative result and is not logged as an error.
    """

    pass


class AssetResolutionGap(NotFoundError):
    """
    Exception raised when a platform lacks a required asset or checksum.

    Attributes:
        suffix: The asset name suffix that could not be matched, if any.
    """

    def __init__(
        self, message: str, suffix: str | None = None, details: str | None = None
    ) -> None:
        super().__init__(message, details)
        self.suffix = suffix


# =============================================================================
# Cache Errors
# =============================================================================


class CacheUnavailableError(RegistryError):
    """
    Exception raised when the cache backend cannot be read or written.

    Read paths treat it as a cache miss. Population runs treat it as fatal.

    Attributes:
        key: The cache key being accessed.
    """

    def __init__(
        self, message: str, key: str | None = None, details: str | None = None
    ) -> None:
        super().__init__(message, details)
        self.key = key
