# src/provider_registry/utils.py
import importlib.metadata
import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from provider_registry.constants import (
    APP_NAME,
    GITHUB_API_TIMEOUT,
    GITHUB_API_VERSION,
    GITHUB_GRAPHQL_URL,
    GITHUB_TOKEN_ENV_VAR,
)
from provider_registry.log_utils import logger

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE = None

# API request tracking for session summary
_api_request_count = 0
_api_cache_hits = 0
_api_cache_misses = 0
_api_auth_used = False
_api_tracking_lock = threading.Lock()


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `provider-registry/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version(APP_NAME)
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"{APP_NAME}/{app_version}"

    return _USER_AGENT_CACHE


def track_api_cache_hit() -> None:
    """Track a cache hit for API requests."""
    global _api_cache_hits
    with _api_tracking_lock:
        _api_cache_hits += 1


def track_api_cache_miss() -> None:
    """Track a cache miss for API requests."""
    global _api_cache_misses
    with _api_tracking_lock:
        _api_cache_misses += 1


def _track_api_request(authenticated: bool) -> None:
    global _api_request_count, _api_auth_used
    with _api_tracking_lock:
        _api_request_count += 1
        if authenticated:
            _api_auth_used = True


def get_api_request_summary() -> Dict[str, Any]:
    """
    Build a session-wide summary of API request and cache statistics.

    Returns:
        summary (dict): Keys "total_requests", "cache_hits", "cache_misses" and "auth_used".
    """
    with _api_tracking_lock:
        return {
            "total_requests": _api_request_count,
            "cache_hits": _api_cache_hits,
            "cache_misses": _api_cache_misses,
            "auth_used": _api_auth_used,
        }


def reset_api_tracking() -> None:
    """Reset session-wide API request tracking counters and flags."""
    global _api_request_count, _api_cache_hits, _api_cache_misses, _api_auth_used
    with _api_tracking_lock:
        _api_request_count = 0
        _api_cache_hits = 0
        _api_cache_misses = 0
        _api_auth_used = False


def get_effective_github_token(
    github_token: Optional[str], allow_env_token: bool = True
) -> Optional[str]:
    """
    Determine the GitHub token to use, preferring the explicit argument over the environment.

    Parameters:
        github_token (Optional[str]): Explicit token to use; leading and trailing whitespace are ignored.
        allow_env_token (bool): If True, fall back to the `GITHUB_TOKEN` environment variable when no explicit token is provided.

    Returns:
        Optional[str]: The chosen token with surrounding whitespace removed, or `None` if no token is available.
    """
    candidate = (github_token or "").strip()
    if candidate:
        return candidate
    if not allow_env_token:
        return None
    env_token = os.environ.get(GITHUB_TOKEN_ENV_VAR)
    return env_token.strip() if env_token else None


def _build_headers(effective_token: Optional[str]) -> Dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
        "User-Agent": get_user_agent(),
    }
    if effective_token:
        headers["Authorization"] = f"bearer {effective_token}"
    return headers


def _parse_rate_limit_header(header_value: Any) -> Optional[int]:
    """
    Parse a rate-limit header value into an integer.

    Returns:
        Optional[int]: The parsed integer, or `None` if the value is missing or not numeric.
    """
    if header_value is None:
        return None
    try:
        return int(str(header_value).strip())
    except (TypeError, ValueError):
        return None


def _log_rate_limit(response: requests.Response) -> None:
    headers = getattr(response, "headers", None) or {}
    remaining = _parse_rate_limit_header(headers.get("X-RateLimit-Remaining"))
    if remaining is None:
        return
    logger.debug(f"GitHub API rate-limit remaining: {remaining}")
    if remaining <= 10:
        logger.warning(
            f"GitHub API rate limit running low: {remaining} requests remaining"
        )


def _raise_for_forbidden(response: requests.Response) -> None:
    """Replace GitHub's rate-limit 403 with a descriptive error message."""
    if response.status_code != 403:
        return
    remaining = _parse_rate_limit_header(
        response.headers.get("X-RateLimit-Remaining")
    )
    if remaining != 0:
        return
    reset_time = response.headers.get("X-RateLimit-Reset")
    reset_time_str = (
        datetime.fromtimestamp(int(reset_time), timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S UTC"
        )
        if reset_time
        else "unknown"
    )
    error_msg = f"GitHub API rate limit exceeded. Resets at {reset_time_str}."
    logger.error(error_msg)
    raise requests.HTTPError(error_msg, response=response)


def make_github_api_request(
    url: str,
    github_token: Optional[str] = None,
    allow_env_token: bool = True,
    params: Optional[Dict[str, Any]] = None,
    timeout: Optional[float] = None,
) -> requests.Response:
    """
    Perform a GitHub REST API GET request with optional token authentication.

    Parameters:
        url (str): GitHub API URL to request.
        github_token (Optional[str]): Explicit GitHub token to prefer for Authorization.
        allow_env_token (bool): If True, allow falling back to the GITHUB_TOKEN environment variable.
        params (Optional[Dict[str, Any]]): Query parameters to include in the request.
        timeout (Optional[float]): Request timeout in seconds; if omitted the module default is used.

    Returns:
        requests.Response: The HTTP response returned by GitHub.

    Raises:
        requests.HTTPError: For HTTP error responses.
        requests.RequestException: For lower-level network or request errors.
    """
    effective_token = get_effective_github_token(github_token, allow_env_token)
    headers = _build_headers(effective_token)

    try:
        logger.debug(f"Making GitHub API request: {url}")
        response = requests.get(
            url,
            timeout=timeout or GITHUB_API_TIMEOUT,
            headers=headers,
            params=params,
        )
        _raise_for_forbidden(response)
        response.raise_for_status()
    finally:
        _track_api_request(bool(effective_token))

    _log_rate_limit(response)
    return response


def make_github_graphql_request(
    query: str,
    variables: Dict[str, Any],
    github_token: Optional[str] = None,
    allow_env_token: bool = True,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """
    POST a GraphQL query to the GitHub API and return the decoded JSON body.

    GraphQL-level errors are returned in the body under "errors" and are left for
    the caller to interpret.

    Parameters:
        query (str): GraphQL query document.
        variables (Dict[str, Any]): Values for the query variables.
        github_token (Optional[str]): Explicit GitHub token to prefer for Authorization.
        allow_env_token (bool): If True, allow falling back to the GITHUB_TOKEN environment variable.
        timeout (Optional[float]): Request timeout in seconds; if omitted the module default is used.

    Returns:
        Dict[str, Any]: The decoded JSON response body.

    Raises:
        requests.HTTPError: For HTTP error responses.
        requests.RequestException: For lower-level network or request errors.
        ValueError: If the body is not a JSON object.
    """
    effective_token = get_effective_github_token(github_token, allow_env_token)
    headers = _build_headers(effective_token)

    try:
        logger.debug(f"Making GitHub GraphQL request: {GITHUB_GRAPHQL_URL}")
        response = requests.post(
            GITHUB_GRAPHQL_URL,
            json={"query": query, "variables": variables},
            timeout=timeout or GITHUB_API_TIMEOUT,
            headers=headers,
        )
        _raise_for_forbidden(response)
        response.raise_for_status()
    finally:
        _track_api_request(bool(effective_token))

    _log_rate_limit(response)
    body = response.json()
    if not isinstance(body, dict):
        raise ValueError("GraphQL response body is not a JSON object")
    return body
