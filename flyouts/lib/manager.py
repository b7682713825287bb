"""Flyout manager and manager registry.

A ``Manager`` owns the flyouts registered under one prefix: it validates
and normalizes their declarations up front, builds render-ready
``Flyout`` panels against a record, and produces trigger markup for the
admin screens that open them.

Example:
    manager = Manager("shop")
    manager.register_flyout("edit_product", {
        "title": "Edit Product",
        "fields": {"name": {"label": "Name"}, "price": {"type": "price_config"}},
        "load": load_product,
        "save": save_product,
    })
    html = manager.build_flyout(manager.get_flyout("edit_product"), product, 42).render()
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from flyouts.lib.components import ComponentRegistry
from flyouts.lib.errors import ConfigurationError
from flyouts.lib.fields import FieldSpec, flatten_fields
from flyouts.lib.flyout import ActionBar, Flyout
from flyouts.lib.html import classes, data_attrs, esc, tag
from flyouts.lib.normalize import FieldMap, normalize_fields
from flyouts.lib.render import Renderer
from flyouts.lib.resolver import ValueResolver
from flyouts.lib.sanitize import SanitizerRegistry, sanitize_key
from flyouts.lib.search import ContentBackend
from flyouts.settings import FlyoutSettings, get_settings

__all__ = ["Manager", "ManagerRegistry", "default_registry", "CALLBACK_KEYS"]

logger = logging.getLogger(__name__)

CALLBACK_KEYS = ("load", "validate", "save", "delete")
DEFAULT_TAB = "default"

CapabilityCheck = Callable[[str], bool]


def _allow_all(capability: str) -> bool:
    return True


class ManagerRegistry:
    """Prefix -> Manager lookup used by the request handlers."""

    def __init__(self) -> None:
        self._managers: Dict[str, "Manager"] = {}

    @staticmethod
    def parse_flyout_id(flyout_id: str) -> Dict[str, str]:
        """Split ``"shop_edit_product"`` into prefix and flyout id."""
        prefix, _, rest = flyout_id.partition("_")
        return {"prefix": prefix, "flyout_id": rest or "default"}

    def register(self, manager: "Manager") -> "ManagerRegistry":
        if manager.prefix in self._managers:
            raise ConfigurationError(
                f"Manager with prefix '{manager.prefix}' is already registered",
                manager=manager.prefix,
                suggestion="Use a unique prefix per plugin or screen",
            )
        self._managers[manager.prefix] = manager
        return self

    def get(self, prefix: str) -> Optional["Manager"]:
        return self._managers.get(sanitize_key(prefix))

    def get_by_flyout_id(self, flyout_id: str) -> Optional["Manager"]:
        return self.get(self.parse_flyout_id(flyout_id)["prefix"])

    def has(self, prefix: str) -> bool:
        return sanitize_key(prefix) in self._managers

    def remove(self, prefix: str) -> bool:
        return self._managers.pop(sanitize_key(prefix), None) is not None

    def prefixes(self) -> List[str]:
        return list(self._managers)

    def all(self) -> Dict[str, "Manager"]:
        return dict(self._managers)

    def clear(self) -> "ManagerRegistry":
        self._managers.clear()
        return self

    def __len__(self) -> int:
        return len(self._managers)


default_registry = ManagerRegistry()


class Manager:
    """Registers flyouts under a prefix and builds their panels.

    Args:
        prefix: Manager prefix, key-sanitized
        sanitizers: Sanitizer registry (defaults to the built-in set)
        components: Component registry (defaults to the built-in set)
        search_backend: Content backend for post/taxonomy/user shortcuts
        settings: Project settings (defaults to ``get_settings()``)
        registry: Registry this manager joins (defaults to ``default_registry``)
        can: Capability check; receives the flyout's capability string
    """

    def __init__(
        self,
        prefix: str,
        *,
        sanitizers: Optional[SanitizerRegistry] = None,
        components: Optional[ComponentRegistry] = None,
        search_backend: Optional[ContentBackend] = None,
        settings: Optional[FlyoutSettings] = None,
        registry: Optional[ManagerRegistry] = None,
        can: Optional[CapabilityCheck] = None,
    ) -> None:
        self.prefix = sanitize_key(prefix)
        if not self.prefix:
            raise ConfigurationError("Manager prefix cannot be empty", value=prefix)

        self.settings = settings or get_settings()
        self.resolver = ValueResolver()
        self.sanitizers = sanitizers or SanitizerRegistry.with_defaults()
        self.components = components or ComponentRegistry.with_defaults(self.resolver)
        self.search_backend = search_backend
        self.can = can or _allow_all
        self.renderer = Renderer(
            components=self.components,
            resolver=self.resolver,
            manager=self.prefix,
            search_url=self.settings.search_url,
        )

        self._flyouts: Dict[str, Dict[str, Any]] = {}
        self._normalized: Dict[str, List[FieldSpec]] = {}
        self._assets: List[str] = []
        self.admin_pages: List[str] = []

        self.registry = registry if registry is not None else default_registry
        self.registry.register(self)

    # -- registration --------------------------------------------------------

    def _defaults(self) -> Dict[str, Any]:
        return {
            "title": "",
            "subtitle": "",
            "size": self.settings.default_size,
            "tabs": {},
            "fields": {},
            "actions": [],
            "capability": self.settings.default_capability,
            "admin_pages": [],
            "load": None,
            "validate": None,
            "save": None,
            "delete": None,
        }

    def register_flyout(self, flyout_id: str, config: Mapping[str, Any]) -> "Manager":
        """Register a flyout declaration.

        Fields are normalized here so declaration mistakes fail at
        registration rather than on first open.

        Raises:
            ConfigurationError: On a non-callable callback or a bad field
        """
        merged = {**self._defaults(), **config, "flyout_id": flyout_id}

        for key in CALLBACK_KEYS:
            callback = merged.get(key)
            if callback is not None and not callable(callback):
                raise ConfigurationError(
                    f"'{key}' callback must be callable",
                    manager=self.prefix,
                    flyout=flyout_id,
                    field=key,
                    value=callback,
                )

        try:
            normalized = self.normalize_fields(merged["fields"])
        except ConfigurationError as exc:
            exc.manager, exc.flyout = self.prefix, flyout_id
            raise

        for asset in self.components.assets_for(flatten_fields(normalized)):
            if asset not in self._assets:
                self._assets.append(asset)
        for page in merged.get("admin_pages") or []:
            if page not in self.admin_pages:
                self.admin_pages.append(page)

        self._flyouts[flyout_id] = merged
        self._normalized[flyout_id] = normalized
        logger.debug("Registered flyout %s.%s with %d fields", self.prefix, flyout_id, len(normalized))
        return self

    def normalize_fields(self, fields: FieldMap) -> List[FieldSpec]:
        return normalize_fields(
            fields,
            search_backend=self.search_backend,
            components=self.components,
            sanitizers=self.sanitizers,
        )

    def _fields_for(self, config: Mapping[str, Any]) -> List[FieldSpec]:
        flyout_id = config.get("flyout_id")
        if flyout_id in self._normalized and self._flyouts.get(flyout_id) is config:
            return self._normalized[flyout_id]
        return self.normalize_fields(config.get("fields") or {})

    # -- building ------------------------------------------------------------

    def render_fields(
        self,
        fields: Union[FieldMap, Iterable[FieldSpec]],
        data: Any = None,
        *,
        flyout_id: str = "",
    ) -> str:
        specs = list(fields) if not isinstance(fields, Mapping) else None
        if specs is None or not all(isinstance(s, FieldSpec) for s in specs):
            specs = self.normalize_fields(fields)
        return self.renderer.render(specs, data, flyout=flyout_id)

    def build_flyout(self, config: Mapping[str, Any], data: Any = None, record_id: Any = None) -> Flyout:
        """Build the panel for one record (or a blank one for ``record_id=None``)."""
        flyout_id = str(config.get("flyout_id") or "")
        instance_id = config.get("id") or sanitize_key(f"{self.prefix}_{flyout_id}_{record_id or 'new'}")

        flyout = Flyout(
            instance_id,
            title=str(config.get("title") or ""),
            subtitle=str(config.get("subtitle") or ""),
            size=str(config.get("size") or self.settings.default_size),
        )

        fields = self._fields_for(config)
        tabs = config.get("tabs") or {}
        if tabs:
            by_tab: Dict[str, List[FieldSpec]] = {}
            for spec in fields:
                by_tab.setdefault(spec.tab or DEFAULT_TAB, []).append(spec)
            for index, (tab_id, tab_config) in enumerate(tabs.items()):
                label = tab_config.get("label", tab_id) if isinstance(tab_config, Mapping) else tab_config
                flyout.add_tab(tab_id, str(label), active=index == 0)
                flyout.set_tab_content(tab_id, self.render_fields(by_tab.get(tab_id, []), data, flyout_id=flyout_id))
        else:
            flyout.add_content("", self.render_fields(fields, data, flyout_id=flyout_id))

        if record_id:
            first_tab = next(iter(tabs), "") if tabs else ""
            flyout.add_content(first_tab, tag("input", values={"type": "hidden", "name": "id", "value": record_id}))

        actions = config.get("actions") or self.default_actions(config)
        if actions:
            flyout.set_footer(ActionBar(actions=list(actions)).render())

        return flyout

    @staticmethod
    def default_actions(config: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """Save/Delete buttons for whichever callbacks exist."""
        actions = []
        if config.get("save"):
            actions.append({"text": "Save", "style": "primary", "class": "wp-flyout-save"})
        if config.get("delete"):
            actions.append({"text": "Delete", "style": "link-delete", "class": "wp-flyout-delete"})
        return actions

    # -- triggers ------------------------------------------------------------

    def can_access(self, flyout_id: str) -> bool:
        config = self._flyouts.get(flyout_id)
        if config is None:
            return False
        return bool(self.can(config["capability"]))

    def _trigger_attrs(self, flyout_id: str, data: Optional[Mapping[str, Any]], css_class: str) -> Dict[str, Any]:
        values: Dict[str, Any] = {
            "class": classes("wp-flyout-trigger", css_class),
            "data-flyout-manager": self.prefix,
            "data-flyout": flyout_id,
        }
        values.update({k: str(v) for k, v in data_attrs(data or {}).items()})
        return values

    def get_button(
        self,
        flyout_id: str,
        data: Optional[Mapping[str, Any]] = None,
        *,
        text: str = "Open",
        css_class: str = "button",
        icon: str = "",
    ) -> str:
        """Trigger button markup, or ``""`` when the flyout is unknown or denied."""
        if not self.can_access(flyout_id):
            return ""
        values = {"type": "button", **self._trigger_attrs(flyout_id, data, f"button {css_class}")}
        icon_html = tag("span", "", {"class": f"dashicons dashicons-{icon}"}) + " " if icon else ""
        return tag("button", icon_html + esc(text), values)

    def link(
        self,
        flyout_id: str,
        text: str,
        data: Optional[Mapping[str, Any]] = None,
        *,
        css_class: str = "",
    ) -> str:
        if not self.can_access(flyout_id):
            return ""
        values = {**self._trigger_attrs(flyout_id, data, css_class), "href": "#"}
        return tag("a", esc(text), values)

    # -- accessors -----------------------------------------------------------

    def get_flyout(self, flyout_id: str) -> Optional[Dict[str, Any]]:
        return self._flyouts.get(flyout_id)

    def get_flyouts(self) -> Dict[str, Dict[str, Any]]:
        return dict(self._flyouts)

    def has_flyout(self, flyout_id: str) -> bool:
        return flyout_id in self._flyouts

    def get_fields(self, flyout_id: str) -> List[FieldSpec]:
        """Normalized fields of a registered flyout (empty when unknown)."""
        return list(self._normalized.get(flyout_id, []))

    def find_field(self, flyout_id: str, key: str) -> Optional[FieldSpec]:
        """Find a field by key, falling back to its submitted name."""
        specs = list(flatten_fields(self._normalized.get(flyout_id, [])))
        for spec in specs:
            if spec.key == key:
                return spec
        for spec in specs:
            if spec.name == key:
                return spec
        return None

    def get_flyout_id_for_field(self, field_key: str) -> Optional[str]:
        for flyout_id in self._flyouts:
            if self.find_field(flyout_id, field_key) is not None:
                return flyout_id
        return None

    def sanitize(self, flyout_id: str, raw_form: Mapping[str, Any]) -> Dict[str, Any]:
        """Sanitize a submission against a registered flyout's fields."""
        return self.sanitizers.sanitize_form(raw_form, self._normalized.get(flyout_id, []), components=self.components)

    @property
    def required_assets(self) -> List[str]:
        """Component assets needed by the registered flyouts, first-use order."""
        return list(self._assets)

    def loads_on(self, page: str) -> bool:
        """Whether assets should load on an admin page; only declared pages qualify."""
        return page in self.admin_pages

    def __repr__(self) -> str:
        return f"Manager(prefix={self.prefix!r}, flyouts={list(self._flyouts)!r})"
