"""Command line entry point."""

from __future__ import annotations

import argparse
import asyncio
import importlib
import inspect
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import SecretStr

from powervs_check.config import AppSettings, ConfigError, load_config
from powervs_check.errors import PowerVSCheckError, SetupError
from powervs_check.metadata import ClusterMetadata
from powervs_check.model import DiscoveryStrategy, ReadinessReport
from powervs_check.observability import (
    bootstrap_logging_from_app_settings,
    configure_metrics_from_settings,
    run_scope,
)
from powervs_check.orchestrator import check_ci, check_create, watch_create
from powervs_check.providers import ProviderClients
from powervs_check.services import Services

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOTOK = 2

logger = logging.getLogger("powervs_check")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="powervs-check",
        description="Check the cloud resources of a Power VS OpenShift cluster",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Readiness of every resource after the installer finished
  powervs-check check-create --metadata install/metadata.json

  # CI pre-flight, deleting leftovers from an earlier run
  powervs-check check-ci --metadata ci-metadata.json --clean

  # Follow the creation phases of a running install
  powervs-check watch-create --install-dir install/
        """,
    )
    parser.add_argument(
        "--config-dir", type=Path, default=None,
        help="Directory holding appsettings.json (optional)",
    )
    parser.add_argument(
        "--env", type=str, default=None,
        help="Configuration environment (default: POWERVS_CHECK_ENV or development)",
    )
    parser.add_argument("--api-key", type=str, default=None, help="IBM Cloud API key")
    parser.add_argument("--debug", action="store_true", help="Log debug output")

    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("check-create", help="Report the readiness of a created cluster")
    create.add_argument("--metadata", type=Path, required=True, help="Installer metadata.json")
    create.add_argument(
        "--tag-search", action="store_true",
        help="Resolve resources through the tag search index",
    )
    create.add_argument(
        "--strict", action="store_true",
        help="Exit with status 2 when any resource is NOTOK",
    )

    ci = commands.add_parser("check-ci", help="Verify CI resources hold no leftovers")
    ci.add_argument("--metadata", type=Path, required=True, help="CI metadata file")
    ci.add_argument("--clean", action="store_true", help="Delete every leftover found")
    ci.add_argument(
        "--strict", action="store_true",
        help="Exit with status 2 when any resource is NOTOK",
    )

    watch = commands.add_parser("watch-create", help="Follow the creation phases of a cluster")
    watch.add_argument("--install-dir", type=Path, required=True, help="Installer directory")
    watch.add_argument(
        "--saved-json", type=Path, default=None,
        help="Replay saved status documents from this directory",
    )
    return parser


def load_settings(args: argparse.Namespace) -> AppSettings:
    """Configuration files first, then command line overrides."""
    settings = load_config(config_dir=args.config_dir, env=args.env, required=False)

    cloud = settings.cloud
    if args.api_key:
        cloud = cloud.model_copy(update={"api_key": SecretStr(args.api_key)})
    discovery = settings.discovery
    if getattr(args, "tag_search", False):
        discovery = discovery.model_copy(update={"strategy": DiscoveryStrategy.TAG_SEARCH})
    watch = settings.watch
    if getattr(args, "saved_json", None) is not None:
        watch = watch.model_copy(update={"saved_json_dir": args.saved_json})
    return settings.model_copy(update={"cloud": cloud, "discovery": discovery, "watch": watch})


def load_provider_factory(path: str) -> Any:
    """Import ``package.module:callable``."""
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise SetupError(f"provider factory must look like 'package.module:callable', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise SetupError(f"could not import provider factory module {module_name}: {exc}") from exc
    try:
        return getattr(module, attribute)
    except AttributeError:
        raise SetupError(f"{module_name} has no attribute {attribute}") from None


async def build_clients(metadata: ClusterMetadata, settings: AppSettings) -> ProviderClients:
    path = settings.cloud.provider_factory
    if path is None:
        logger.warning("No provider factory is configured; every provider check will fail")
        return ProviderClients()
    if settings.cloud.api_key is None:
        raise SetupError("No API key set, use --api-key or cloud.api_key")

    factory = load_provider_factory(path)
    clients = factory(metadata=metadata, settings=settings)
    if inspect.isawaitable(clients):
        clients = await clients
    if not isinstance(clients, ProviderClients):
        raise SetupError(f"provider factory {path} did not return ProviderClients")
    return clients


def _exit_code(reports: list[ReadinessReport], strict: bool) -> int:
    if strict and not all(report.ok for report in reports):
        return EXIT_NOTOK
    return EXIT_OK


async def run(args: argparse.Namespace, settings: AppSettings) -> int:
    match args.command:
        case "check-create":
            metadata = ClusterMetadata.from_create_metadata(args.metadata)
        case "check-ci":
            metadata = ClusterMetadata.from_ci_metadata(args.metadata)
        case "watch-create":
            metadata = ClusterMetadata.from_create_metadata(args.install_dir / "metadata.json")
        case _:
            raise SetupError(f"unknown command {args.command}")

    services = Services(
        metadata=metadata,
        clients=await build_clients(metadata, settings),
        settings=settings,
        logger=logger,
    )

    match args.command:
        case "check-create":
            return _exit_code(await check_create(services), args.strict)
        case "check-ci":
            return _exit_code(await check_ci(services, clean=args.clean), args.strict)
        case _:
            results = await watch_create(args.install_dir, services)
            succeeded = bool(results) and all(result.succeeded for result in results)
            return EXIT_OK if succeeded else EXIT_ERROR


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    bootstrap_logging_from_app_settings(
        settings,
        env=args.env,
        level="DEBUG" if args.debug else None,
        logger=logger,
        stream=sys.stderr,
    )
    print(f"Program version is {settings.service.version}", file=sys.stderr)

    try:
        configure_metrics_from_settings(settings.metrics)
        with run_scope(command=args.command):
            return asyncio.run(run(args, settings))
    except PowerVSCheckError as exc:
        logger.debug("Run aborted", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
