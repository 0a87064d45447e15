"""Blobjack CLI: container and blob operations from the command line.

Usage examples::

    blobjack --container-name photos create-container
    blobjack --container-name photos write --blob-key a/b.txt --blob-value hello
    blobjack --container-name photos read --blob-key a/b.txt
    blobjack -p aws -c '{"region_name":"eu-west-1"}' --container-name photos list --blob-prefix a/
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Callable

from pydantic import ValidationError as ConfigValidationError

from blobjack.base.config import CoreConfig
from blobjack.base.exceptions import BlobjackError, ValidationError
from blobjack.base.logger import bj_logger
from blobjack.base.models import LifecycleOutcome
from blobjack.base.retry import RetryPolicy

DEFAULT_CONTAINER_NAME = "default-container-name"


def _container_option(parser: argparse.ArgumentParser, default: Any) -> None:
    parser.add_argument(
        "--container-name",
        default=default,
        help="indicate a name of the container",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ``blobjack`` CLI.

    Returns:
        Configured :class:`~argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(
        prog="blobjack",
        description="Interact with cloud blob storage",
    )
    parser.add_argument(
        "--provider", "-p",
        default="azure",
        choices=["aws", "gcp", "azure", "memory"],
        help="Storage provider (default: azure)",
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default="{}",
        help='JSON provider config (e.g. \'{"account_name":"myaccount"}\')',
    )
    _container_option(parser, DEFAULT_CONTAINER_NAME)
    parser.add_argument(
        "--max-concurrency",
        type=int,
        default=8,
        help="Parallel transfers per batch",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=4,
        help="Attempts per transfer before giving up",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Deadline in seconds for the whole operation",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Emit debug logs to stderr",
    )

    # Subcommands also accept --container-name, like a persistent flag.
    shared = argparse.ArgumentParser(add_help=False)
    _container_option(shared, argparse.SUPPRESS)

    commands = parser.add_subparsers(dest="command", required=True, metavar="command")
    commands.add_parser("create-container", parents=[shared], help="Create a container")
    commands.add_parser("delete-container", parents=[shared], help="Delete a container")

    write = commands.add_parser("write", parents=[shared], help="Write to a blob")
    write.add_argument("--blob-key", default="", help="indicate a blob key for writing")
    write.add_argument(
        "--blob-value",
        default="",
        help="indicate a value you want to write to a given blob-key",
    )

    read = commands.add_parser("read", parents=[shared], help="Read from a blob")
    read.add_argument("--blob-key", default="", help="indicate a blob key for reading")

    list_cmd = commands.add_parser(
        "list", parents=[shared], help="List blobs with (or without) a prefix"
    )
    list_cmd.add_argument(
        "--blob-prefix",
        default="",
        help="indicate a blob prefix to read from subdirectories",
    )
    return parser


def _build_orchestrator(ns: argparse.Namespace):
    """Create the orchestrator for the parsed global options.

    Raises:
        ValueError: On malformed or non-object JSON, or an unknown provider.
        pydantic.ValidationError: On an invalid provider or core config.
    """
    # Lazy-import to avoid loading all SDKs for --help
    from blobjack.orchestrator import Orchestrator

    provider_config = json.loads(ns.config)
    if not isinstance(provider_config, dict):
        raise ValueError("--config must be a JSON object")
    config = CoreConfig(
        max_concurrency=ns.max_concurrency,
        session_grace_period=0,
        operation_timeout=ns.timeout,
        retry=RetryPolicy(max_attempts=ns.max_attempts),
    )
    return Orchestrator.for_provider(ns.provider, provider_config, config)


def _require_flag(value: str, flag: str) -> None:
    if not value:
        raise ValidationError(f'flag "--{flag}" should be set')


def _create_container(orch, ns: argparse.Namespace) -> None:
    print(f'Creating a container named "{ns.container_name}"')
    outcome = orch.create_container(ns.container_name)
    if outcome is LifecycleOutcome.ALREADY_EXISTS:
        print(f'Container "{ns.container_name}" already exists')
    else:
        print(f'Successfully created container "{ns.container_name}"')


def _delete_container(orch, ns: argparse.Namespace) -> None:
    print(f'Deleting a container named "{ns.container_name}"')
    outcome = orch.delete_container(ns.container_name)
    if outcome is LifecycleOutcome.ALREADY_ABSENT:
        print(f'Container "{ns.container_name}" does not exist')
    else:
        print(f'Successfully deleted container "{ns.container_name}"')


def _write(orch, ns: argparse.Namespace) -> None:
    _require_flag(ns.blob_key, "blob-key")
    _require_flag(ns.blob_value, "blob-value")
    orch.write(ns.container_name, ns.blob_key, ns.blob_value)
    print(f'Successfully written "{ns.blob_value}" to "{ns.blob_key}"')


def _read(orch, ns: argparse.Namespace) -> None:
    _require_flag(ns.blob_key, "blob-key")
    result = orch.read(ns.container_name, ns.blob_key)
    content_type = result.metadata.content_type if result.metadata else None
    print("Content-Type:", content_type or "")
    print()
    print((result.payload or b"").decode("utf-8", errors="replace"))
    print(f'Successfully read from "{ns.blob_key}"')


def _list(orch, ns: argparse.Namespace) -> None:
    # Keys are shown relative to --blob-prefix.
    for depth, node in orch.list(ns.container_name, ns.blob_prefix):
        print(f"{'  ' * depth}{node.key[len(ns.blob_prefix):]}")
    print(f'Successfully listed from "{ns.blob_prefix}"')


_COMMANDS: dict[str, Callable[[Any, argparse.Namespace], None]] = {
    "create-container": _create_container,
    "delete-container": _delete_container,
    "write": _write,
    "read": _read,
    "list": _list,
}


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parses arguments, builds an orchestrator for the chosen provider and
    runs the requested command. Any Blobjack error is printed to stderr
    and exits with status 1.

    Args:
        argv: Optional argument list (defaults to ``sys.argv``).
    """
    parser = _build_parser()
    ns = parser.parse_args(argv)
    if ns.verbose:
        bj_logger.set_level(logging.DEBUG)

    try:
        orch = _build_orchestrator(ns)
    except json.JSONDecodeError as e:
        print(f"Invalid --config JSON: {e}", file=sys.stderr)
        sys.exit(1)
    except (ValueError, ConfigValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        with orch:
            _COMMANDS[ns.command](orch, ns)
    except BlobjackError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
