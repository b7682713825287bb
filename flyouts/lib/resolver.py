"""Field value resolution against arbitrary record objects.

A record handed to a flyout may be a plain dict, a model object with
getters, or anything in between. ``ValueResolver`` tries an ordered list
of strategies and returns the first match:

    1. ``{name}_data()``         component data provider
    2. ``source[name]``          mapping key
    3. ``get_{name}()``          getter
    4. ``source.name``           plain attribute
    5. ``source.name()``         method
    6. ``source.camelName()``    camelCase method for snake_case names

Strategies never catch exceptions raised by the record; a failing getter
surfaces as a load failure in the request handler.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

__all__ = [
    "ResolverStrategy",
    "DataMethodStrategy",
    "MappingKeyStrategy",
    "GetterStrategy",
    "AttributeStrategy",
    "MethodStrategy",
    "CamelCaseStrategy",
    "DEFAULT_STRATEGIES",
    "ValueResolver",
    "resolve_value",
    "resolve_component_data",
    "to_camel_case",
]

logger = logging.getLogger(__name__)


def to_camel_case(name: str) -> str:
    """Convert ``snake_case`` to ``camelCase``."""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _is_object_source(source: Any) -> bool:
    # Plain dicts only participate through the mapping strategy
    return type(source) is not dict


# Modules whose mapping classes contribute no record methods
_MAPPING_BASE_MODULES = frozenset({"builtins", "collections", "collections.abc", "_collections_abc", "typing"})


def _is_mapping_internal(source: Mapping, attr: str) -> bool:
    """True when ``attr`` comes from dict, OrderedDict, Mapping and the like."""
    if attr in getattr(source, "__dict__", {}):
        return False
    for klass in type(source).__mro__:
        if attr in vars(klass):
            return klass.__module__ in _MAPPING_BASE_MODULES
    return False


def _callable_attr(source: Any, attr: str) -> Optional[Any]:
    if not _is_object_source(source):
        return None
    if isinstance(source, Mapping) and _is_mapping_internal(source, attr):
        return None
    candidate = getattr(source, attr, None)
    return candidate if callable(candidate) else None


class ResolverStrategy:
    """One step in the resolution order.

    Subclasses implement ``applies`` as a cheap capability check and
    ``resolve`` to produce the value. ``resolve`` is only called when
    ``applies`` returned True.
    """

    name = "base"

    def applies(self, source: Any, name: str) -> bool:
        raise NotImplementedError

    def resolve(self, source: Any, name: str) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class DataMethodStrategy(ResolverStrategy):
    name = "data_method"

    def applies(self, source: Any, name: str) -> bool:
        return _callable_attr(source, f"{name}_data") is not None

    def resolve(self, source: Any, name: str) -> Any:
        return getattr(source, f"{name}_data")()


class MappingKeyStrategy(ResolverStrategy):
    name = "mapping_key"

    def applies(self, source: Any, name: str) -> bool:
        return isinstance(source, Mapping) and name in source

    def resolve(self, source: Any, name: str) -> Any:
        return source[name]


class GetterStrategy(ResolverStrategy):
    name = "getter"

    def applies(self, source: Any, name: str) -> bool:
        return _callable_attr(source, f"get_{name}") is not None

    def resolve(self, source: Any, name: str) -> Any:
        return getattr(source, f"get_{name}")()


class AttributeStrategy(ResolverStrategy):
    name = "attribute"

    def applies(self, source: Any, name: str) -> bool:
        if not _is_object_source(source) or isinstance(source, Mapping):
            return False
        try:
            candidate = getattr(source, name)
        except AttributeError:
            return False
        return not callable(candidate)

    def resolve(self, source: Any, name: str) -> Any:
        return getattr(source, name)


class MethodStrategy(ResolverStrategy):
    name = "method"

    def applies(self, source: Any, name: str) -> bool:
        return _callable_attr(source, name) is not None

    def resolve(self, source: Any, name: str) -> Any:
        return getattr(source, name)()


class CamelCaseStrategy(ResolverStrategy):
    name = "camel_case"

    def applies(self, source: Any, name: str) -> bool:
        if "_" not in name:
            return False
        return _callable_attr(source, to_camel_case(name)) is not None

    def resolve(self, source: Any, name: str) -> Any:
        return getattr(source, to_camel_case(name))()


DEFAULT_STRATEGIES: Tuple[ResolverStrategy, ...] = (
    DataMethodStrategy(),
    MappingKeyStrategy(),
    GetterStrategy(),
    AttributeStrategy(),
    MethodStrategy(),
    CamelCaseStrategy(),
)


class ValueResolver:
    """Resolve field values from a record using an ordered strategy list."""

    def __init__(self, strategies: Optional[Iterable[ResolverStrategy]] = None):
        self.strategies: List[ResolverStrategy] = list(
            DEFAULT_STRATEGIES if strategies is None else strategies
        )

    def resolve(self, source: Any, name: str) -> Any:
        """Return the first strategy's value, or None if nothing matches."""
        if not source or not name:
            return None

        for strategy in self.strategies:
            if strategy.applies(source, name):
                logger.debug("Resolved '%s' via %s", name, strategy.name)
                return strategy.resolve(source, name)

        return None

    def resolve_component_data(
        self,
        data_fields: Union[str, Sequence[str]],
        name: str,
        source: Any,
    ) -> Dict[str, Any]:
        """Resolve the structured data a component renders from.

        A mapping at ``name`` that already carries any of the component's
        data fields is used as-is. Otherwise a single-field component gets
        ``{field: value}`` and a multi-field component resolves each data
        field independently (the ``value`` field reads the component's own
        ``name``).
        """
        fields = [data_fields] if isinstance(data_fields, str) else list(data_fields)
        if not fields:
            return {}

        direct = self.resolve(source, name)
        if isinstance(direct, Mapping) and any(f in direct for f in fields):
            return dict(direct)

        if len(fields) == 1:
            return {fields[0]: direct}

        resolved: Dict[str, Any] = {}
        for data_field in fields:
            lookup = name if data_field == "value" else data_field
            resolved[data_field] = self.resolve(source, lookup)
        return resolved


_default_resolver = ValueResolver()


def resolve_value(source: Any, name: str) -> Any:
    """Resolve ``name`` against ``source`` with the default strategy order."""
    return _default_resolver.resolve(source, name)


def resolve_component_data(
    data_fields: Union[str, Sequence[str]],
    name: str,
    source: Any,
) -> Dict[str, Any]:
    """Module-level shortcut for ``ValueResolver.resolve_component_data``."""
    return _default_resolver.resolve_component_data(data_fields, name, source)
