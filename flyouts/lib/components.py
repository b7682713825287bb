"""Component registry.

Components are field types with their own renderer and a declared set of
data fields resolved from the record (see
``ValueResolver.resolve_component_data``). The registry also answers
which front-end assets a flyout needs and whether a component posts form
data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from flyouts.lib.errors import ConfigurationError
from flyouts.lib.fields import FieldSpec
from flyouts.lib.resolver import ValueResolver
from flyouts.lib.widgets import BUILTIN_WIDGETS

__all__ = ["CATEGORIES", "ComponentDefinition", "ComponentRegistry"]

logger = logging.getLogger(__name__)

CATEGORIES = ("display", "interactive", "form", "layout", "data", "utility")

WidgetRenderer = Callable[[FieldSpec], str]


@dataclass(frozen=True)
class ComponentDefinition:
    """Registration record for one component type."""

    type: str
    renderer: WidgetRenderer
    data_fields: Union[str, Tuple[str, ...]] = "value"
    category: str = "display"
    asset: Optional[str] = None
    description: str = ""
    submits: bool = False

    @property
    def field_names(self) -> Tuple[str, ...]:
        if isinstance(self.data_fields, str):
            return (self.data_fields,)
        return tuple(self.data_fields)


# type, data fields, category, asset, submits, description
_BUILTIN_DEFINITIONS: List[Tuple[str, Union[str, Tuple[str, ...]], str, Optional[str], bool, str]] = [
    ("header", ("title", "subtitle", "image", "icon", "badges", "meta", "description",
                "attachment_id", "editable", "image_size", "image_shape",
                "fallback_image", "fallback_attachment_id"), "display", None, False,
     "Unified header for any entity with optional image picker"),
    ("alert", ("alert_type", "message", "title"), "display", None, False, "Alert messages with various styles"),
    ("empty_state", ("icon", "title", "description", "action_text"), "display", None, False, "Empty state messages"),
    ("articles", "items", "display", "articles", False, "Article cards with images and excerpts"),
    ("timeline", "items", "display", "timeline", False, "Chronological event timeline"),
    ("stats", "items", "display", "stats", False, "Statistical metric cards with trends"),
    ("action_buttons", "buttons", "interactive", "action-buttons", False, "Buttons wired to action callbacks"),
    ("action_menu", "items", "interactive", "action-menu", False, "Dropdown menu of action callbacks"),
    ("notes", "items", "interactive", "notes", False, "Notes with add/delete callbacks"),
    ("files", "items", "interactive", "file-manager", True, "File attachments with sorting"),
    ("feature_list", "items", "interactive", "feature-list", True, "Sortable feature list"),
    ("key_value_list", "items", "interactive", "key-value-list", True, "Sortable key/value rows"),
    ("line_items", "items", "interactive", "line-items", True, "Order line items with quantities and pricing"),
    ("gallery", "items", "interactive", "gallery", True, "Multi-image gallery"),
    ("card_choice", ("options", "value"), "form", "card-choice", True, "Card-style radio/checkbox selections"),
    ("image", "value", "form", "image-picker", True, "Single image picker"),
    ("price_config", ("amount", "compare_at_amount", "currency", "recurring_interval",
                      "recurring_interval_count"), "form", "price-config", True,
     "Pricing configuration with billing presets"),
    ("discount_config", ("rate_type", "amount", "currency", "duration", "duration_in_months",
                         "max_redemptions"), "form", "discount-config", True,
     "Discount configuration with duration controls"),
    ("accordion", "items", "layout", "accordion", False, "Collapsible content sections"),
    ("data_table", ("columns", "data"), "data", None, False, "Structured data table display"),
    ("info_grid", "items", "data", None, False, "Information grid layout"),
    ("payment_method", ("payment_method", "payment_brand", "payment_last4",
                        "stripe_risk_score", "stripe_risk_level"), "data", "payment-method", False,
     "Payment method with brand and risk indicators"),
    ("price_summary", ("items", "subtotal", "tax", "discount", "total", "currency"), "data",
     "price-summary", False, "Price summary with line items and totals"),
]


class ComponentRegistry:
    """Registry of component types available to a manager."""

    def __init__(self, resolver: Optional[ValueResolver] = None) -> None:
        self._definitions: Dict[str, ComponentDefinition] = {}
        self.resolver = resolver or ValueResolver()

    @classmethod
    def with_defaults(cls, resolver: Optional[ValueResolver] = None) -> "ComponentRegistry":
        registry = cls(resolver)
        for type_name, data_fields, category, asset, submits, description in _BUILTIN_DEFINITIONS:
            registry.register(
                type_name,
                BUILTIN_WIDGETS[type_name],
                data_fields=data_fields,
                category=category,
                asset=asset,
                submits=submits,
                description=description,
            )
        return registry

    def register(
        self,
        type_name: str,
        renderer: Optional[WidgetRenderer],
        *,
        data_fields: Union[str, Iterable[str]] = "value",
        category: str = "display",
        asset: Optional[str] = None,
        submits: bool = False,
        description: str = "",
    ) -> ComponentDefinition:
        """Register a component type.

        Raises:
            ConfigurationError: If the renderer is missing or the category unknown.
        """
        if renderer is None or not callable(renderer):
            raise ConfigurationError(
                f"Component '{type_name}' must have a renderer",
                field=type_name,
            )
        if category not in CATEGORIES:
            raise ConfigurationError(
                f"Unknown component category '{category}'",
                field=type_name,
                value=category,
                suggestion=f"Use one of: {', '.join(CATEGORIES)}",
            )

        definition = ComponentDefinition(
            type=type_name,
            renderer=renderer,
            data_fields=data_fields if isinstance(data_fields, str) else tuple(data_fields),
            category=category,
            asset=asset,
            description=description,
            submits=submits,
        )
        self._definitions[type_name] = definition
        return definition

    def unregister(self, type_name: str) -> bool:
        return self._definitions.pop(type_name, None) is not None

    def get(self, type_name: str) -> Optional[ComponentDefinition]:
        return self._definitions.get(type_name)

    def all(self) -> Dict[str, ComponentDefinition]:
        return dict(self._definitions)

    def is_component(self, type_name: str) -> bool:
        return type_name in self._definitions

    def by_category(self, category: str) -> Dict[str, ComponentDefinition]:
        return {name: d for name, d in self._definitions.items() if d.category == category}

    def asset_for(self, type_name: str, config: Optional[Mapping[str, Any]] = None) -> Optional[str]:
        """Asset a single field needs; the header only needs one when editable."""
        if type_name == "header":
            return "image-picker" if (config or {}).get("editable") else None
        definition = self._definitions.get(type_name)
        return definition.asset if definition else None

    def assets_for(self, fields: Iterable[Union[FieldSpec, Mapping[str, Any]]]) -> List[str]:
        """Unique assets needed by a set of fields, in first-use order."""
        assets: List[str] = []
        for spec in fields:
            if isinstance(spec, FieldSpec):
                type_name, config = spec.type, spec.to_config()
            else:
                type_name, config = str(spec.get("type", "text")), spec
            asset = self.asset_for(type_name, config)
            if asset and asset not in assets:
                assets.append(asset)
        return assets

    def resolve_data(self, type_name: str, name: str, data: Any) -> Dict[str, Any]:
        """Resolve a component's structured data from the record."""
        definition = self._definitions.get(type_name)
        if definition is None:
            return {"value": self.resolver.resolve(data, name)}
        return self.resolver.resolve_component_data(definition.data_fields, name, data)

    def render(self, spec: FieldSpec) -> str:
        definition = self._definitions.get(spec.type)
        if definition is None:
            raise ConfigurationError(f"Unknown component '{spec.type}'", field=spec.key, value=spec.type)
        return definition.renderer(spec)
