"""YAML configuration loader for flyout managers.

Lets flyouts be declared in YAML instead of Python. Callbacks are
``"module:attribute"`` import strings resolved at load time.

Example YAML (shop.yaml):
    manager: shop
    content:                        # optional in-memory search records
      - {id: 3, label: Blue Mug, kind: post, subtype: product}
    flyouts:
      edit_product:
        title: Edit Product
        size: large
        load: shop.callbacks:load_product
        save: shop.callbacks:save_product
        fields:
          name: {label: Name, required: true}
          related: {type: post, post_type: product, multiple: true}
          api_url: {type: url, value: "${SHOP_API:-https://shop.test}"}

Usage:
    from flyouts.lib.config_loader import load_manager
    manager = load_manager("./shop.yaml")
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import yaml

from flyouts.lib.env import expand_config
from flyouts.lib.errors import ConfigurationError
from flyouts.lib.manager import CALLBACK_KEYS, CapabilityCheck, Manager, ManagerRegistry
from flyouts.lib.search import ContentBackend, ContentRecord, InMemoryContentBackend

logger = logging.getLogger(__name__)

__all__ = [
    "load_manager",
    "load_config",
    "build_manager",
    "resolve_callable",
    "validate_yaml_config",
    "YAMLConfigError",
]

FIELD_CALLBACK_KEYS = ("callback", "search_callback", "sanitizer", "add_callback", "delete_callback")


class YAMLConfigError(ConfigurationError):
    """Error in a YAML flyout configuration."""

    pass


def resolve_callable(reference: Any, where: str = "") -> Callable[..., Any]:
    """Resolve a ``"package.module:attr"`` import string to a callable.

    Already-callable values are returned unchanged.

    Raises:
        YAMLConfigError: If the reference is malformed, missing or not callable
    """
    if callable(reference):
        return reference
    if not isinstance(reference, str) or ":" not in reference:
        raise YAMLConfigError(
            f"Callback must be a 'module:attribute' string, got {reference!r}",
            field=where or None,
        )

    module_name, _, attr_path = reference.partition(":")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise YAMLConfigError(f"Cannot import module '{module_name}': {exc}", field=where or None) from exc

    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise YAMLConfigError(
                f"'{module_name}' has no attribute '{attr_path}'",
                field=where or None,
            ) from exc

    if not callable(target):
        raise YAMLConfigError(f"'{reference}' is not callable", field=where or None)
    return target


def _resolve_items(items: Any, where: str) -> Any:
    if not isinstance(items, list):
        return items
    resolved = []
    for index, item in enumerate(items):
        if isinstance(item, dict) and item.get("callback") is not None:
            item = {**item, "callback": resolve_callable(item["callback"], f"{where}[{index}].callback")}
        resolved.append(item)
    return resolved


def _resolve_field(key: str, field: Any, where: str) -> Any:
    if not isinstance(field, dict):
        return field
    resolved = dict(field)
    for name in FIELD_CALLBACK_KEYS:
        if resolved.get(name) is not None:
            resolved[name] = resolve_callable(resolved[name], f"{where}.{key}.{name}")
    for name in ("buttons", "items"):
        if name in resolved:
            resolved[name] = _resolve_items(resolved[name], f"{where}.{key}.{name}")
    if isinstance(resolved.get("fields"), (dict, list)):
        resolved["fields"] = _resolve_fields(resolved["fields"], f"{where}.{key}")
    return resolved


def _resolve_fields(fields: Any, where: str) -> Any:
    if isinstance(fields, dict):
        return {key: _resolve_field(str(key), field, where) for key, field in fields.items()}
    if isinstance(fields, list):
        return [_resolve_field(str(index), field, where) for index, field in enumerate(fields)]
    raise YAMLConfigError(f"'{where}.fields' must be a mapping or a list", field=where)


def _resolve_flyout(flyout_id: str, config: Any) -> Dict[str, Any]:
    if not isinstance(config, dict):
        raise YAMLConfigError(f"Flyout '{flyout_id}' must be a mapping", field=flyout_id)
    resolved = dict(config)
    for name in CALLBACK_KEYS:
        if resolved.get(name) is not None:
            resolved[name] = resolve_callable(resolved[name], f"{flyout_id}.{name}")
    if "fields" in resolved:
        resolved["fields"] = _resolve_fields(resolved["fields"], flyout_id)
    return resolved


def _content_backend(records: Any) -> Optional[ContentBackend]:
    if records is None:
        return None
    if not isinstance(records, list):
        raise YAMLConfigError("'content' must be a list of records", field="content")
    try:
        return InMemoryContentBackend(ContentRecord(**record) for record in records)
    except TypeError as exc:
        raise YAMLConfigError(f"Invalid content record: {exc}", field="content") from exc


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Read and env-expand a flyout YAML file.

    Raises:
        YAMLConfigError: If the YAML is invalid or empty
        FileNotFoundError: If the config file doesn't exist
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise YAMLConfigError(f"Invalid YAML syntax: {e}") from e

    if not config:
        raise YAMLConfigError("Empty configuration file")
    if not isinstance(config, dict):
        raise YAMLConfigError("Configuration root must be a mapping")
    return expand_config(config)


def build_manager(
    config: Mapping[str, Any],
    *,
    search_backend: Optional[ContentBackend] = None,
    registry: Optional[ManagerRegistry] = None,
    can: Optional[CapabilityCheck] = None,
) -> Manager:
    """Create a manager from an already-parsed configuration mapping."""
    prefix = config.get("manager")
    if not prefix:
        raise YAMLConfigError("Configuration must name a 'manager' prefix", field="manager")

    flyouts = config.get("flyouts")
    if not isinstance(flyouts, dict) or not flyouts:
        raise YAMLConfigError("Configuration must have a non-empty 'flyouts' mapping", field="flyouts")

    backend = search_backend or _content_backend(config.get("content"))
    manager = Manager(str(prefix), search_backend=backend, registry=registry, can=can)
    for flyout_id, flyout_config in flyouts.items():
        manager.register_flyout(str(flyout_id), _resolve_flyout(str(flyout_id), flyout_config))

    logger.info("Loaded manager '%s' with %d flyouts", manager.prefix, len(flyouts))
    return manager


def load_manager(
    config_path: Union[str, Path],
    *,
    search_backend: Optional[ContentBackend] = None,
    registry: Optional[ManagerRegistry] = None,
    can: Optional[CapabilityCheck] = None,
) -> Manager:
    """Load a manager from a YAML configuration file.

    Raises:
        YAMLConfigError: If the configuration is invalid
        FileNotFoundError: If the config file doesn't exist

    Example:
        manager = load_manager("./shop.yaml")
        html = manager.build_flyout(manager.get_flyout("edit_product"), product, 42).render()
    """
    return build_manager(
        load_config(config_path),
        search_backend=search_backend,
        registry=registry,
        can=can,
    )


def validate_yaml_config(config_path: Union[str, Path]) -> List[str]:
    """Validate a flyout YAML file without keeping the manager.

    Returns:
        List of validation errors (empty if valid)
    """
    errors: List[str] = []
    try:
        load_manager(config_path, registry=ManagerRegistry())
    except ConfigurationError as e:
        errors.append(str(e))
    except FileNotFoundError as e:
        errors.append(str(e))
    return errors
