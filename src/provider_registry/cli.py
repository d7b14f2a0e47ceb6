# src/provider_registry/cli.py

import argparse
import importlib.metadata
import json
import sys
from typing import Any, Optional

from provider_registry import log_utils
from provider_registry.config import RegistryConfig, load_config
from provider_registry.constants import APP_NAME
from provider_registry.exceptions import NotFoundError, RegistryError
from provider_registry.harvest.cache import FileCacheStore
from provider_registry.harvest.orchestrator import (
    LookupOrchestrator,
    build_release_source,
)
from provider_registry.harvest.populate import CachePopulator
from provider_registry.harvest.records import (
    module_download_response,
    module_versions_response,
    provider_versions_response,
)
from provider_registry.utils import get_api_request_summary, reset_api_tracking

EXIT_NOT_FOUND = 1
EXIT_ERROR = 2


def get_installed_version() -> str:
    try:
        return importlib.metadata.version(APP_NAME)
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def _log_api_summary() -> None:
    summary = get_api_request_summary()
    log_utils.logger.debug(
        f"API requests: {summary['total_requests']} "
        f"(cache hits: {summary['cache_hits']}, misses: {summary['cache_misses']}, "
        f"authenticated: {summary['auth_used']})"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Provider Registry - resolve provider and module versions from GitHub releases",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to the configuration file",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    subparsers = parser.add_subparsers(dest="command")

    versions_parser = subparsers.add_parser(
        "versions", help="List the available versions of a provider"
    )
    versions_parser.add_argument("namespace")
    versions_parser.add_argument("type")

    download_parser = subparsers.add_parser(
        "download", help="Show download details of a provider version"
    )
    download_parser.add_argument("namespace")
    download_parser.add_argument("type")
    download_parser.add_argument("version")
    download_parser.add_argument("os")
    download_parser.add_argument("arch")

    module_versions_parser = subparsers.add_parser(
        "module-versions", help="List the available versions of a module"
    )
    module_versions_parser.add_argument("namespace")
    module_versions_parser.add_argument("name")
    module_versions_parser.add_argument("system")

    module_download_parser = subparsers.add_parser(
        "module-download", help="Show the download location of a module version"
    )
    module_download_parser.add_argument("namespace")
    module_download_parser.add_argument("name")
    module_download_parser.add_argument("system")
    module_download_parser.add_argument("version")

    populate_parser = subparsers.add_parser(
        "populate",
        help="Refresh the cached versions of a provider or module",
        description="Harvest releases created since the last refresh and store a new cache record.",
    )
    populate_parser.add_argument(
        "--module",
        action="store_true",
        help="Populate a module (NAMESPACE NAME SYSTEM) instead of a provider (NAMESPACE TYPE)",
    )
    populate_parser.add_argument("namespace")
    populate_parser.add_argument("names", nargs="+", metavar="NAME")

    cache_parser = subparsers.add_parser("cache", help="Manage cached data")
    cache_subparsers = cache_parser.add_subparsers(dest="cache_command", required=True)
    cache_subparsers.add_parser("clear", help="Remove every cached record")

    subparsers.add_parser("version", help="Display the installed version")

    return parser


def _run_populate(
    args: argparse.Namespace, parser: argparse.ArgumentParser, config: RegistryConfig
) -> None:
    expected = 2 if args.module else 1
    if len(args.names) != expected:
        usage = "NAMESPACE NAME SYSTEM" if args.module else "NAMESPACE TYPE"
        parser.error(f"populate{' --module' if args.module else ''} expects {usage}")

    populator = CachePopulator(
        feed=build_release_source(config),
        store=FileCacheStore(config.resolved_cache_dir()),
        config=config,
    )
    if args.module:
        name, system = args.names
        record = populator.populate_module(args.namespace, name, system)
    else:
        record = populator.populate_provider(args.namespace, args.names[0])
    _print_json(record.to_dict())


def _run_cache_clear(config: RegistryConfig) -> int:
    store = FileCacheStore(config.resolved_cache_dir())
    if store.clear():
        log_utils.logger.info(f"Cleared cache directory {store.cache_dir}")
        return 0
    log_utils.logger.error(f"Failed to clear cache directory {store.cache_dir}")
    return EXIT_ERROR


def run_command(
    args: argparse.Namespace, parser: argparse.ArgumentParser, config: RegistryConfig
) -> int:
    """
    Execute a parsed subcommand.

    Returns:
        int: The process exit code.

    Raises:
        RegistryError: Propagated from the lookup, population or cache layers.
    """
    if args.command == "populate":
        _run_populate(args, parser, config)
        return 0
    if args.command == "cache":
        return _run_cache_clear(config)

    orchestrator = LookupOrchestrator.from_config(config)
    if args.command == "versions":
        versions = orchestrator.list_provider_versions(args.namespace, args.type)
        _print_json(provider_versions_response(versions))
    elif args.command == "download":
        details = orchestrator.get_provider_download(
            args.namespace, args.type, args.version, args.os, args.arch
        )
        _print_json(details.to_dict())
    elif args.command == "module-versions":
        module_versions = orchestrator.list_module_versions(
            args.namespace, args.name, args.system
        )
        _print_json(module_versions_response(module_versions))
    elif args.command == "module-download":
        location = orchestrator.get_module_download(
            args.namespace, args.name, args.system, args.version
        )
        _print_json(module_download_response(location))
    return 0


def main(argv: Optional[list] = None) -> None:
    # Logging is automatically initialized by importing log_utils

    """
    Entry point for the provider-registry command-line interface.

    Parses command-line arguments, loads configuration and dispatches the
    lookup, population and cache subcommands. Responses are printed as JSON.
    Exits with status 1 when the requested repository, version or platform
    does not exist and 2 on any other registry error.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        log_utils.set_log_level(args.log_level)

    if args.command == "version":
        log_utils.logger.info(f"{APP_NAME} v{get_installed_version()}")
        return
    if args.command is None:
        parser.print_help()
        return

    reset_api_tracking()
    try:
        config = load_config(args.config_path)
        exit_code = run_command(args, parser, config)
    except NotFoundError as e:
        log_utils.logger.info(f"Not found: {e}")
        sys.exit(EXIT_NOT_FOUND)
    except RegistryError as e:
        log_utils.logger.error(f"{type(e).__name__}: {e}")
        sys.exit(EXIT_ERROR)
    finally:
        _log_api_summary()

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
