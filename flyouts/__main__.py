"""CLI entry point for inspecting flyout configurations.

Usage:
    python -m flyouts list shop.yaml
    python -m flyouts render shop.yaml edit_product --data product.yaml --id 42
    python -m flyouts sanitize shop.yaml edit_product --form submission.json
    python -m flyouts validate shop.yaml

Callbacks named in the YAML file (``module:attribute``) must be importable;
the config file's directory is searched first.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import yaml

from flyouts.lib.config_loader import YAMLConfigError, load_manager, validate_yaml_config
from flyouts.lib.env import load_env_file
from flyouts.lib.errors import FlyoutError
from flyouts.lib.handlers import handle_load
from flyouts.lib.logging import setup_logging
from flyouts.lib.manager import Manager, ManagerRegistry
from flyouts.settings import get_settings

logger = logging.getLogger(__name__)


def _read_data_file(path: str) -> Any:
    """Read a YAML or JSON data file (JSON is valid YAML)."""
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _load(config_path: str) -> Manager:
    config_dir = str(Path(config_path).resolve().parent)
    if config_dir not in sys.path:
        sys.path.insert(0, config_dir)
    return load_manager(config_path, registry=ManagerRegistry())


def list_flyouts(args: argparse.Namespace) -> int:
    manager = _load(args.config)
    flyouts = manager.get_flyouts()

    print(f"Manager: {manager.prefix}")
    print()
    max_name = max(len(name) for name in flyouts)
    print(f"  {'Flyout':<{max_name}}  {'Size':<8}  {'Fields':>6}  Title")
    print(f"  {'-' * max_name}  {'-' * 8}  {'-' * 6}  {'-' * 30}")
    for flyout_id, config in flyouts.items():
        fields = manager.get_fields(flyout_id)
        print(f"  {flyout_id:<{max_name}}  {config['size']:<8}  {len(fields):>6}  {config['title']}")

    if manager.required_assets:
        print()
        print(f"Assets: {', '.join(manager.required_assets)}")
    return 0


def render_flyout(args: argparse.Namespace) -> int:
    manager = _load(args.config)
    if not manager.has_flyout(args.flyout):
        print(f"Error: Flyout '{args.flyout}' not found in {args.config}")
        return 1

    if args.data:
        config = manager.get_flyout(args.flyout)
        html = manager.build_flyout(config, _read_data_file(args.data), args.id).render()
    else:
        result = handle_load(manager, args.flyout, args.id or 0)
        payload = result.to_dict()
        if not payload["success"]:
            print(f"Error: {payload['message']} ({payload['code']})")
            return 1
        html = payload["html"]

    print(html)
    return 0


def sanitize_submission(args: argparse.Namespace) -> int:
    manager = _load(args.config)
    if not manager.has_flyout(args.flyout):
        print(f"Error: Flyout '{args.flyout}' not found in {args.config}")
        return 1

    form = _read_data_file(args.form) or {}
    if not isinstance(form, dict):
        print("Error: Form file must contain a mapping of field names to values")
        return 1

    print(json.dumps(manager.sanitize(args.flyout, form), indent=2, default=str))
    return 0


def validate_config(args: argparse.Namespace) -> int:
    config_dir = str(Path(args.config).resolve().parent)
    if config_dir not in sys.path:
        sys.path.insert(0, config_dir)
    errors = validate_yaml_config(args.config)
    if errors:
        print(f"{args.config}: {len(errors)} error(s)")
        for error in errors:
            print(f"  - {error}")
        return 1
    print(f"{args.config}: OK")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flyouts",
        description="Inspect, render and sanitize declarative flyout configurations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # List the flyouts a config registers
    python -m flyouts list shop.yaml

    # Render a panel against a record stored in a data file
    python -m flyouts render shop.yaml edit_product --data product.yaml --id 42

    # Render through the load callback
    python -m flyouts render shop.yaml edit_product --id 42

    # Show what a submission sanitizes to
    python -m flyouts sanitize shop.yaml edit_product --form submission.json
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs in JSON format (for log aggregation systems)",
    )
    parser.add_argument("--log-file", help="Write logs to a file in addition to stderr")
    parser.add_argument("--env-file", help="Load environment variables from a .env file first")

    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="List flyouts in a config file")
    list_cmd.add_argument("config", help="Path to the flyout YAML file")
    list_cmd.set_defaults(handler=list_flyouts)

    render_cmd = commands.add_parser("render", help="Render a flyout's HTML")
    render_cmd.add_argument("config", help="Path to the flyout YAML file")
    render_cmd.add_argument("flyout", help="Flyout id")
    render_cmd.add_argument("--data", help="YAML/JSON file holding the record to render")
    render_cmd.add_argument("--id", help="Record id (passed to the load callback)")
    render_cmd.set_defaults(handler=render_flyout)

    sanitize_cmd = commands.add_parser("sanitize", help="Sanitize a form submission")
    sanitize_cmd.add_argument("config", help="Path to the flyout YAML file")
    sanitize_cmd.add_argument("flyout", help="Flyout id")
    sanitize_cmd.add_argument("--form", required=True, help="YAML/JSON file holding the submission")
    sanitize_cmd.set_defaults(handler=sanitize_submission)

    validate_cmd = commands.add_parser("validate", help="Validate a config file")
    validate_cmd.add_argument("config", help="Path to the flyout YAML file")
    validate_cmd.set_defaults(handler=validate_config)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)

    if args.env_file:
        load_env_file(args.env_file)

    settings = get_settings()
    setup_logging(
        verbose=args.verbose or settings.debug,
        json_format=args.json_logs or settings.log_json,
        log_file=args.log_file,
    )

    try:
        return args.handler(args)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        return 1
    except YAMLConfigError as e:
        print(f"Error: Invalid configuration: {e}")
        return 1
    except FlyoutError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
