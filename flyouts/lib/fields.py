"""Field declarations and dependency rules.

A ``FieldSpec`` is the normalized form of one field declaration. A
``Rule`` is the canonical AND-list of ``Condition`` triples parsed from
any of the accepted ``depends`` shorthands.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from dataclasses import replace as dataclass_replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from flyouts.lib.errors import ConfigurationError

__all__ = [
    "UNSET",
    "FieldType",
    "DERIVATIVE_TYPES",
    "FieldSpec",
    "Condition",
    "Rule",
    "parse_rule",
    "flatten_fields",
    "iter_fields",
]


class _Unset:
    """Marker for a field value that was never declared."""

    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class FieldType(str, Enum):
    """Built-in field kinds rendered by the core renderer."""

    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    URL = "url"
    TEL = "tel"
    PASSWORD = "password"
    NUMBER = "number"
    DATE = "date"
    HIDDEN = "hidden"
    SELECT = "select"
    AJAX_SELECT = "ajax_select"
    TOGGLE = "toggle"
    RADIO = "radio"
    COLOR = "color"
    TAGS = "tags"
    GROUP = "group"
    SEPARATOR = "separator"
    # Shortcuts rewritten to ajax_select during normalization
    POST = "post"
    TAXONOMY = "taxonomy"
    USER = "user"

    @classmethod
    def values(cls) -> List[str]:
        return [t.value for t in cls]

    @classmethod
    def is_builtin(cls, type_name: str) -> bool:
        return type_name in cls._value2member_map_


DERIVATIVE_TYPES = frozenset({FieldType.POST.value, FieldType.TAXONOMY.value, FieldType.USER.value})

# Attributes with a dedicated slot on FieldSpec; everything else goes to attrs
_DECLARED_ATTRS = (
    "type",
    "name",
    "label",
    "value",
    "required",
    "readonly",
    "disabled",
    "depends",
    "depends_on",
    "sanitizer",
    "tab",
    "options",
)


@dataclass(frozen=True)
class Condition:
    """One ``(field, operator, value)`` triple."""

    field: str
    operator: str = "=="
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "operator": self.operator, "value": self.value}


@dataclass(frozen=True)
class Rule:
    """An ordered, non-empty AND-list of conditions."""

    conditions: Tuple[Condition, ...]

    def __post_init__(self) -> None:
        if not self.conditions:
            raise ConfigurationError("A dependency rule needs at least one condition")

    def __iter__(self):
        return iter(self.conditions)

    def __len__(self) -> int:
        return len(self.conditions)

    @property
    def fields(self) -> List[str]:
        """Referenced field names, first-seen order, no duplicates."""
        seen: List[str] = []
        for condition in self.conditions:
            if condition.field not in seen:
                seen.append(condition.field)
        return seen

    def to_list(self) -> List[Dict[str, Any]]:
        return [c.to_dict() for c in self.conditions]

    def to_json(self) -> str:
        """Serialize for the ``data-depends`` attribute."""
        return json.dumps(self.to_list(), separators=(",", ":"), default=str)


def _parse_triple(item: Any) -> Condition:
    if isinstance(item, str):
        if not item:
            raise ConfigurationError("Dependency field name cannot be empty", value=item)
        return Condition(item, "not_empty", None)

    if not isinstance(item, Mapping):
        raise ConfigurationError(
            "Dependency condition must be a field name or a mapping",
            value=item,
        )

    field_name = item.get("field")
    if not field_name or not isinstance(field_name, str):
        raise ConfigurationError("Dependency condition is missing 'field'", value=dict(item))

    operator = item.get("operator", item.get("compare"))
    if operator is not None:
        return Condition(field_name, str(operator), item.get("value"))
    if "contains" in item:
        return Condition(field_name, "contains", item["contains"])
    if "value" in item:
        return Condition(field_name, "==", item["value"])
    return Condition(field_name, "not_empty", None)


def parse_rule(expression: Any) -> Rule:
    """Parse any accepted rule shorthand into a canonical ``Rule``.

    Accepted forms:
        * ``"field"`` - the field must be non-empty
        * ``{"a": 1, "b": "x"}`` - equality on every pair
        * ``{"field": "a", "operator": ">", "value": 3}`` - one triple
        * ``[triple, "field", ...]`` - triples ANDed in order

    Raises:
        ConfigurationError: If the expression has none of these shapes.
    """
    if isinstance(expression, Rule):
        return expression

    if isinstance(expression, str):
        return Rule((_parse_triple(expression),))

    if isinstance(expression, Mapping):
        if not expression:
            raise ConfigurationError("Dependency rule cannot be empty")
        if "field" in expression:
            return Rule((_parse_triple(expression),))
        return Rule(
            tuple(Condition(str(name), "==", value) for name, value in expression.items())
        )

    if isinstance(expression, (list, tuple)):
        if not expression:
            raise ConfigurationError("Dependency rule cannot be empty")
        return Rule(tuple(_parse_triple(item) for item in expression))

    raise ConfigurationError("Unsupported dependency rule", value=expression)


@dataclass(frozen=True)
class FieldSpec:
    """A normalized field declaration.

    Attributes:
        key: Declaration key (unique within a flyout)
        type: Field or component type name
        name: Submitted form name (defaults to key)
        value: Declared value, or ``UNSET`` to resolve from the record
        depends_on: Parsed visibility rule, if any
        sanitizer: Per-field sanitizer override
        attrs: Remaining type-specific attributes, declaration order kept
    """

    key: str
    type: str = FieldType.TEXT.value
    name: str = ""
    label: str = ""
    value: Any = UNSET
    required: bool = False
    readonly: bool = False
    disabled: bool = False
    depends_on: Optional[Rule] = None
    sanitizer: Optional[Callable[[Any, "FieldSpec"], Any]] = None
    tab: Optional[str] = None
    options: Any = None
    attrs: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            object.__setattr__(self, "name", self.key)

    @classmethod
    def from_config(cls, key: str, config: Mapping[str, Any]) -> "FieldSpec":
        """Build a spec from a raw declaration mapping."""
        rule_expr = config.get("depends_on", config.get("depends"))
        depends_on = parse_rule(rule_expr) if rule_expr not in (None, "") else None
        sanitizer = config.get("sanitizer")
        if sanitizer is not None and not callable(sanitizer):
            raise ConfigurationError("Field sanitizer must be callable", field=key, value=sanitizer)

        return cls(
            key=key,
            type=str(config.get("type") or FieldType.TEXT.value),
            name=str(config.get("name") or key),
            label=str(config.get("label") or ""),
            value=config["value"] if "value" in config else UNSET,
            required=bool(config.get("required", False)),
            readonly=bool(config.get("readonly", False)),
            disabled=bool(config.get("disabled", False)),
            depends_on=depends_on,
            sanitizer=sanitizer,
            tab=config.get("tab"),
            options=config.get("options"),
            attrs={k: v for k, v in config.items() if k not in _DECLARED_ATTRS},
        )

    @property
    def has_value(self) -> bool:
        return self.value is not UNSET

    @property
    def is_multiple(self) -> bool:
        return bool(self.attrs.get("multiple", False))

    def get(self, attr: str, default: Any = None) -> Any:
        """Read a declared slot or an extra attribute."""
        if attr in self.__dataclass_fields__ and attr != "attrs":
            current = getattr(self, attr)
            return default if current is UNSET or current is None else current
        return self.attrs.get(attr, default)

    def replace(self, **changes: Any) -> "FieldSpec":
        """Return a copy with changes applied; unknown keys update attrs."""
        slots = {k: v for k, v in changes.items() if k in self.__dataclass_fields__}
        extras = {k: v for k, v in changes.items() if k not in self.__dataclass_fields__}
        if extras:
            slots["attrs"] = {**slots.get("attrs", self.attrs), **extras}
        return dataclass_replace(self, **slots)

    def to_config(self) -> Dict[str, Any]:
        """Flatten back into a declaration-style mapping."""
        config: Dict[str, Any] = {
            "type": self.type,
            "name": self.name,
            "label": self.label,
            "required": self.required,
            "readonly": self.readonly,
            "disabled": self.disabled,
        }
        if self.has_value:
            config["value"] = self.value
        if self.options is not None:
            config["options"] = self.options
        if self.tab:
            config["tab"] = self.tab
        if self.depends_on is not None:
            config["depends_on"] = self.depends_on
        if self.sanitizer is not None:
            config["sanitizer"] = self.sanitizer
        config.update(self.attrs)
        return config


def flatten_fields(fields: Iterable[FieldSpec]) -> Iterator[FieldSpec]:
    """Yield fields depth-first, replacing each group with its children."""
    for spec in fields:
        if spec.type == FieldType.GROUP.value:
            yield from flatten_fields(spec.attrs.get("fields") or [])
        else:
            yield spec


def iter_fields(fields: Iterable[FieldSpec]) -> Iterator[FieldSpec]:
    """Yield every field depth-first, groups before their children."""
    for spec in fields:
        yield spec
        if spec.type == FieldType.GROUP.value:
            yield from iter_fields(spec.attrs.get("fields") or [])
