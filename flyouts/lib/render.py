"""Field rendering.

``Renderer.render`` walks normalized fields in declaration order and, per
field:

    1. prepares ajax_select fields (search params, value, hydration)
    2. attaches dependency metadata to the wrapper (initially hidden)
    3. merges resolved component data, or resolves the plain value
    4. dispatches to the renderer for the field's type

Built-in field types dispatch through a table keyed by ``FieldType``,
components through the ``ComponentRegistry``, and anything else through
renderers added with ``Renderer.register``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from flyouts.lib.components import ComponentRegistry
from flyouts.lib.errors import ConfigurationError
from flyouts.lib.fields import FieldSpec, FieldType
from flyouts.lib.html import classes, esc, money, tag
from flyouts.lib.resolver import ValueResolver
from flyouts.lib.sanitize import sanitize_key

__all__ = ["Renderer", "FieldRenderer", "option_pairs"]

logger = logging.getLogger(__name__)

FieldRenderer = Callable[[FieldSpec], str]

DEFAULT_SEARCH_URL = "/wp-json/wp-flyout/v1/search"

_INPUT_TYPES = ("text", "email", "url", "number", "tel", "password", "date")
_NO_VALUE_TYPES = (FieldType.GROUP.value, FieldType.SEPARATOR.value)

_DEFAULT_CLASSES = {
    "text": "regular-text",
    "email": "regular-text",
    "url": "large-text",
    "textarea": "large-text",
    "select": "regular-text",
    "number": "small-text",
    "color": "small-text",
}


def option_pairs(options: Any) -> List[Tuple[Any, str]]:
    """Normalize ``{value: label}``, ``[value, ...]`` or ``[{value, label}]``."""
    if not options:
        return []
    if isinstance(options, Mapping):
        return [(value, str(label)) for value, label in options.items()]
    pairs = []
    for option in options:
        if isinstance(option, Mapping):
            value = option.get("value", option.get("id"))
            pairs.append((value, str(option.get("label", option.get("text", value)))))
        else:
            pairs.append((option, str(option)))
    return pairs


def _selected_values(value: Any) -> List[str]:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value]
    return [str(value)]


class Renderer:
    """Render normalized fields against one record.

    Args:
        components: Component registry used for component types
        resolver: Value resolver for record lookups
        manager: Manager prefix, sent with ajax_select search requests
        search_url: Endpoint ajax_select fields search against
    """

    def __init__(
        self,
        *,
        components: Optional[ComponentRegistry] = None,
        resolver: Optional[ValueResolver] = None,
        manager: str = "",
        search_url: str = DEFAULT_SEARCH_URL,
    ) -> None:
        self.components = components if components is not None else ComponentRegistry.with_defaults()
        self.resolver = resolver or ValueResolver()
        self.manager = manager
        self.search_url = search_url
        self._custom: Dict[str, FieldRenderer] = {}
        self._builtin: Dict[FieldType, FieldRenderer] = {
            FieldType.TEXT: self._render_input,
            FieldType.EMAIL: self._render_input,
            FieldType.URL: self._render_input,
            FieldType.TEL: self._render_input,
            FieldType.NUMBER: self._render_input,
            FieldType.PASSWORD: self._render_input,
            FieldType.DATE: self._render_input,
            FieldType.HIDDEN: self._render_hidden,
            FieldType.TEXTAREA: self._render_textarea,
            FieldType.SELECT: self._render_select,
            FieldType.AJAX_SELECT: self._render_ajax_select,
            FieldType.TOGGLE: self._render_toggle,
            FieldType.RADIO: self._render_radio,
            FieldType.TAGS: self._render_tags,
            FieldType.COLOR: self._render_color,
            FieldType.GROUP: self._render_group,
            FieldType.SEPARATOR: self._render_separator,
            # Shortcuts are rewritten during normalization; render defensively
            FieldType.POST: self._render_ajax_select,
            FieldType.TAXONOMY: self._render_ajax_select,
            FieldType.USER: self._render_ajax_select,
        }

    def register(self, type_name: str, fn: FieldRenderer) -> None:
        """Register a renderer for a custom field type."""
        if not callable(fn):
            raise ConfigurationError("Field renderer must be callable", field=type_name, value=fn)
        self._custom[type_name] = fn

    def has_renderer(self, type_name: str) -> bool:
        return (
            FieldType.is_builtin(type_name)
            or self.components.is_component(type_name)
            or type_name in self._custom
        )

    # -- preparation ---------------------------------------------------------

    def prepare(self, spec: FieldSpec, data: Any, *, flyout: str = "") -> FieldSpec:
        """Apply the per-field preparation steps and return the render-ready spec."""
        if spec.type == FieldType.AJAX_SELECT.value:
            spec = self._prepare_ajax_select(spec, data, flyout)

        if spec.depends_on is not None:
            spec = self._attach_dependency(spec)

        if self.components.is_component(spec.type):
            resolved = self.components.resolve_data(spec.type, spec.name, data)
            merged = {
                key: value
                for key, value in resolved.items()
                if value is not None and spec.get(key) is None and key not in ("type", "key", "name")
            }
            if merged:
                spec = spec.replace(**merged)
        elif not spec.has_value and data and spec.type not in _NO_VALUE_TYPES:
            spec = spec.replace(value=self.resolver.resolve(data, spec.name))

        return spec

    def _prepare_ajax_select(self, spec: FieldSpec, data: Any, flyout: str) -> FieldSpec:
        changes: Dict[str, Any] = {
            "ajax_url": spec.get("ajax_url") or self.search_url,
            "ajax_params": {"manager": self.manager, "flyout": flyout, "field_key": spec.name},
        }

        value = spec.value if spec.has_value else None
        if not spec.has_value and data:
            value = self.resolver.resolve(data, spec.name)
            changes["value"] = value

        callback = spec.get("callback")
        if value not in (None, "", []) and not spec.options and callable(callback):
            ids = list(value) if isinstance(value, (list, tuple)) else [value]
            logger.debug("Hydrating ajax_select '%s' with ids %s", spec.key, ids)
            changes["options"] = callback("", ids) or {}

        return spec.replace(**changes)

    def _attach_dependency(self, spec: FieldSpec) -> FieldSpec:
        wrapper = dict(spec.get("wrapper_attrs") or {})
        wrapper["data-depends"] = spec.depends_on.to_json()
        wrapper.setdefault("id", f"field-{sanitize_key(spec.key)}")
        wrapper["style"] = "display: none;"
        wrapper["class"] = classes(wrapper.get("class"), "has-dependency")
        return spec.replace(wrapper_attrs=wrapper)

    # -- dispatch ------------------------------------------------------------

    def render(self, fields: Iterable[FieldSpec], data: Any = None, *, flyout: str = "") -> str:
        """Render fields in declaration order."""
        return "".join(self.render_field(spec, data, flyout=flyout) for spec in fields)

    def render_field(self, spec: FieldSpec, data: Any = None, *, flyout: str = "") -> str:
        spec = self.prepare(spec, data, flyout=flyout)

        if spec.type in self._custom:
            return self._wrap_dependent(spec, self._custom[spec.type](spec))

        if self.components.is_component(spec.type):
            return self._wrap_dependent(spec, self.components.render(spec))

        if FieldType.is_builtin(spec.type):
            field_type = FieldType(spec.type)
            if field_type == FieldType.HIDDEN:
                return self._wrap_dependent(spec, self._render_hidden(spec))
            if field_type == FieldType.GROUP:
                return self._render_wrapped(spec, self._render_group(spec, data, flyout=flyout))
            return self._render_wrapped(spec, self._builtin[field_type](spec))

        raise ConfigurationError(f"No renderer for field type '{spec.type}'", field=spec.key, value=spec.type)

    def _wrap_dependent(self, spec: FieldSpec, body: str) -> str:
        wrapper = spec.get("wrapper_attrs")
        if not wrapper:
            return body
        wrapper = dict(wrapper)
        css = classes("wp-flyout-field", f"field-type-{spec.type}", wrapper.pop("class", ""))
        return tag("div", body, {"class": css, **wrapper})

    def _render_wrapped(self, spec: FieldSpec, control: str) -> str:
        wrapper = dict(spec.get("wrapper_attrs") or {})
        css = classes("wp-flyout-field", f"field-type-{spec.type}", spec.get("wrapper_class"), wrapper.pop("class", ""))

        label = ""
        if spec.label and spec.type not in (FieldType.TOGGLE.value, FieldType.RADIO.value):
            required = tag("span", "*", {"class": "required"}) if spec.required else ""
            label = tag("label", esc(spec.label) + required, {"for": self._id(spec)})

        description = ""
        if spec.get("description"):
            description = tag("p", esc(spec.get("description")), {"class": "description"})

        return tag("div", label + control + description, {"class": css, **wrapper})

    # -- built-in field types -----------------------------------------------

    @staticmethod
    def _id(spec: FieldSpec) -> str:
        return str(spec.get("id") or sanitize_key(spec.name))

    def _common(self, spec: FieldSpec) -> Dict[str, Any]:
        return {
            "id": self._id(spec),
            "name": spec.name,
            "required": spec.required,
            "disabled": spec.disabled,
            "readonly": spec.readonly,
        }

    def _render_input(self, spec: FieldSpec) -> str:
        input_type = spec.type if spec.type in _INPUT_TYPES else "text"
        value = spec.get("value", spec.get("default"))
        values = {
            "type": input_type,
            **self._common(spec),
            "value": value,
            "class": spec.get("class") or _DEFAULT_CLASSES.get(input_type, ""),
            "placeholder": spec.get("placeholder") or None,
        }
        if input_type == "number":
            is_money = spec.get("subtype") == "money" or spec.get("money")
            if is_money and value not in (None, ""):
                values["value"] = money(value).replace(",", "")
            values["min"] = spec.get("min")
            values["max"] = spec.get("max")
            values["step"] = "0.01" if is_money else spec.get("step", 1)
        return tag("input", values=values)

    def _render_hidden(self, spec: FieldSpec) -> str:
        return tag("input", values={"type": "hidden", "name": spec.name, "value": spec.get("value", "")})

    def _render_textarea(self, spec: FieldSpec) -> str:
        values = {
            **self._common(spec),
            "class": spec.get("class") or _DEFAULT_CLASSES["textarea"],
            "rows": spec.get("rows", 5),
            "cols": spec.get("cols", 50),
            "placeholder": spec.get("placeholder") or None,
        }
        return tag("textarea", esc(spec.get("value", "")), values)

    def _options_html(self, spec: FieldSpec) -> str:
        selected = _selected_values(spec.get("value"))
        placeholder = ""
        if spec.get("placeholder") and not spec.is_multiple:
            placeholder = tag("option", esc(spec.get("placeholder")), {"value": ""})
        return placeholder + "".join(
            tag("option", esc(label), {"value": value, "selected": str(value) in selected})
            for value, label in option_pairs(spec.options)
        )

    def _render_select(self, spec: FieldSpec) -> str:
        values = self._common(spec)
        values.pop("readonly")
        values["name"] = f"{spec.name}[]" if spec.is_multiple else spec.name
        values["class"] = spec.get("class") or _DEFAULT_CLASSES["select"]
        values["multiple"] = spec.is_multiple
        return tag("select", self._options_html(spec), values)

    def _render_ajax_select(self, spec: FieldSpec) -> str:
        values = self._common(spec)
        values.pop("readonly")
        values.update(
            {
                "name": f"{spec.name}[]" if spec.is_multiple else spec.name,
                "class": classes("wp-flyout-ajax-select", spec.get("class")),
                "data-ajax-url": spec.get("ajax_url"),
                "data-ajax-params": spec.get("ajax_params") or {},
                "data-placeholder": spec.get("placeholder", "Type to search..."),
                "data-tags": "true" if spec.get("tags") else None,
                "multiple": spec.is_multiple,
            }
        )
        selected = _selected_values(spec.get("value"))
        options = "".join(
            tag("option", esc(label), {"value": value, "selected": str(value) in selected})
            for value, label in option_pairs(spec.options)
        )
        return tag("select", options, values)

    def _render_toggle(self, spec: FieldSpec) -> str:
        value = spec.get("value")
        checked = bool(spec.get("checked")) or (value not in (None, "", "0", 0, False))
        control = tag(
            "input",
            values={
                "type": "checkbox",
                "id": self._id(spec),
                "name": spec.name,
                "value": "1",
                "checked": checked,
                "disabled": spec.disabled,
            },
        )
        body = control + tag("span", "", {"class": "toggle-slider"})
        body += tag("span", esc(spec.label), {"class": "toggle-label"})
        return tag("label", body, {"class": "wp-flyout-toggle"})

    def _render_radio(self, spec: FieldSpec) -> str:
        current = _selected_values(spec.get("value"))
        radios = ""
        for value, label in option_pairs(spec.options):
            control = tag(
                "input",
                values={
                    "type": "radio",
                    "name": spec.name,
                    "value": value,
                    "checked": str(value) in current,
                    "required": spec.required,
                    "disabled": spec.disabled,
                },
            )
            radios += tag("label", control + tag("span", esc(label), {"class": "radio-label"}), {"class": "wp-flyout-radio"})
        legend = tag("span", esc(spec.label), {"class": "radio-group-label"}) if spec.label else ""
        return legend + tag("div", radios, {"class": "wp-flyout-radio-group"})

    def _render_tags(self, spec: FieldSpec) -> str:
        value = spec.get("value")
        tags_list = value if isinstance(value, (list, tuple)) else []
        chips = ""
        hidden = ""
        for item in tags_list:
            chip = tag("span", esc(item), {"class": "tag-text"})
            if not spec.readonly:
                chip += tag("button", tag("span", "", {"class": "dashicons dashicons-no-alt"}), {"type": "button", "class": "tag-remove", "aria-label": "Remove"})
            chips += tag("span", chip, {"class": "tag-item", "data-tag": item})
            hidden += tag("input", values={"type": "hidden", "name": f"{spec.name}[]", "value": item})
        if not spec.readonly:
            chips += tag("input", values={"type": "text", "class": "tag-input-field", "placeholder": spec.get("placeholder", "Add tags...")})
        container = tag("div", chips, {"class": "tag-input-container"})
        return tag("div", container + hidden, {"class": "wp-flyout-tag-input", "data-name": spec.name})

    def _render_color(self, spec: FieldSpec) -> str:
        value = spec.get("value") or spec.get("default", "#000000")
        control = tag(
            "input",
            values={
                "type": "color",
                "id": self._id(spec),
                "name": spec.name,
                "value": value,
                "class": "wp-flyout-color-input",
                "required": spec.required,
                "disabled": spec.disabled,
            },
        )
        preview = tag("input", values={"type": "text", "value": value, "class": "wp-flyout-color-preview", "readonly": True})
        return tag("div", control + preview, {"class": "wp-flyout-color-wrapper"})

    def _render_group(self, spec: FieldSpec, data: Any = None, *, flyout: str = "") -> str:
        children: List[FieldSpec] = spec.get("fields") or []
        horizontal = spec.get("layout") == "horizontal"
        style = f"display: flex; gap: {spec.get('gap', '10px')};" if horizontal else "display: block;"
        cells = "".join(
            tag("div", self.render_field(child, data, flyout=flyout), {"style": f"flex: {child.get('flex', 1)};"})
            for child in children
        )
        return tag("div", cells, {"class": "wp-flyout-field-group", "style": style})

    def _render_separator(self, spec: FieldSpec) -> str:
        text = spec.get("text", "")
        body = ""
        if spec.get("icon"):
            body += tag("span", "", {"class": f"dashicons dashicons-{esc(spec.get('icon'))}"})
        if text:
            body += tag("span", esc(text), {"class": "separator-text"})
        css = classes("wp-flyout-separator", f"separator-{spec.get('style', 'line')}", f"align-{spec.get('align', 'center')}")
        return tag("div", body, {"class": css, "style": f"margin: {spec.get('margin', '20px')} 0;"})
