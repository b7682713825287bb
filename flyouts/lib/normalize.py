"""Field normalization.

Turns the loose field declarations a flyout is registered with into an
ordered list of ``FieldSpec`` objects:

* positional declarations get stable, unique keys and names
* ``post`` / ``taxonomy`` / ``user`` shortcuts become ``ajax_select``
  fields with a built-in search callback
* ``depends`` expressions are parsed once into ``Rule`` objects

Configuration mistakes raise ``ConfigurationError`` here, at registration
time, instead of surfacing as broken markup later.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from flyouts.lib.errors import ConfigurationError
from flyouts.lib.fields import DERIVATIVE_TYPES, FieldSpec, FieldType, iter_fields
from flyouts.lib.search import ContentBackend, SearchCallbacks

if TYPE_CHECKING:
    from flyouts.lib.components import ComponentRegistry
    from flyouts.lib.sanitize import SanitizerRegistry

__all__ = ["normalize_fields", "expand_derivative", "build_dependency_index"]

logger = logging.getLogger(__name__)

FieldMap = Union[Mapping[Any, Any], Iterable[Any]]


def _is_positional(key: Any) -> bool:
    if isinstance(key, bool):
        return False
    if isinstance(key, int):
        return True
    return isinstance(key, str) and key.isdigit()


def _iter_declarations(field_map: FieldMap) -> List[Tuple[Any, Any]]:
    if isinstance(field_map, Mapping):
        return list(field_map.items())
    return list(enumerate(field_map))


def _unique(candidate: str, taken: Set[str]) -> str:
    if candidate not in taken:
        return candidate
    suffix = 2
    while f"{candidate}_{suffix}" in taken:
        suffix += 1
    return f"{candidate}_{suffix}"


def expand_derivative(spec: FieldSpec, search_backend: Optional[ContentBackend]) -> FieldSpec:
    """Rewrite a ``post``/``taxonomy``/``user`` field as ``ajax_select``."""
    if spec.type not in DERIVATIVE_TYPES:
        return spec

    if search_backend is None:
        raise ConfigurationError(
            f"Field type '{spec.type}' needs a search backend",
            field=spec.key,
            value=spec.type,
            suggestion="Pass search_backend= to the Manager or use ajax_select with a callback",
        )

    callbacks = SearchCallbacks(search_backend)
    query_args = spec.attrs.get("query_args") or {}

    if spec.type == FieldType.POST.value:
        callback = callbacks.posts(spec.attrs.get("post_type", "post"), query_args)
    elif spec.type == FieldType.TAXONOMY.value:
        callback = callbacks.taxonomy(spec.attrs.get("taxonomy", "category"), query_args)
    else:
        callback = callbacks.users(spec.attrs.get("role", ""), query_args)

    logger.debug("Expanded %s field '%s' to ajax_select", spec.type, spec.key)
    return spec.replace(type=FieldType.AJAX_SELECT.value, callback=callback)


def _check_type(
    spec: FieldSpec,
    components: Optional["ComponentRegistry"],
    sanitizers: Optional["SanitizerRegistry"],
) -> None:
    if FieldType.is_builtin(spec.type):
        return
    if components is not None and components.is_component(spec.type):
        return
    if sanitizers is not None and sanitizers.has(spec.type):
        return
    raise ConfigurationError(
        f"Unknown field type '{spec.type}'",
        field=spec.key,
        value=spec.type,
        suggestion="Register a component or a sanitizer for this type first",
    )


def _check_ajax_select(spec: FieldSpec) -> None:
    if spec.type != FieldType.AJAX_SELECT.value:
        return
    callback = spec.attrs.get("callback") or spec.attrs.get("search_callback")
    if callback is None and not spec.options:
        raise ConfigurationError(
            "ajax_select field needs a 'callback' or static 'options'",
            field=spec.key,
        )
    if callback is not None and not callable(callback):
        raise ConfigurationError("ajax_select callback must be callable", field=spec.key, value=callback)


def normalize_fields(
    field_map: FieldMap,
    *,
    search_backend: Optional[ContentBackend] = None,
    components: Optional["ComponentRegistry"] = None,
    sanitizers: Optional["SanitizerRegistry"] = None,
) -> List[FieldSpec]:
    """Normalize raw declarations into an ordered list of ``FieldSpec``.

    Args:
        field_map: Mapping of key -> declaration, or a list of declarations
        search_backend: Backend for the post/taxonomy/user shortcuts
        components: Registry used to accept component types
        sanitizers: Registry used to accept custom sanitized types

    Returns:
        FieldSpecs in declaration order, with unique keys and names

    Raises:
        ConfigurationError: On any malformed declaration
    """
    declarations = _iter_declarations(field_map)

    # Explicit keys are reserved up front so synthesized keys never steal them
    taken_keys: Set[str] = {str(k) for k, _ in declarations if not _is_positional(k)}
    taken_names: Set[str] = set()
    emitted_keys: Set[str] = set()
    normalized: List[FieldSpec] = []

    for raw_key, declaration in declarations:
        if isinstance(declaration, FieldSpec):
            config: Mapping[str, Any] = declaration.to_config()
            if not _is_positional(raw_key):
                raw_key = declaration.key
        elif isinstance(declaration, Mapping):
            config = declaration
        else:
            raise ConfigurationError(
                "Field declaration must be a mapping",
                field=str(raw_key),
                value=declaration,
            )

        declared_name = config.get("name")
        if _is_positional(raw_key):
            key = _unique(str(declared_name or f"field_{raw_key}"), taken_keys | emitted_keys)
        else:
            key = str(raw_key)
            if key in emitted_keys:
                raise ConfigurationError("Duplicate field key", field=key)
        emitted_keys.add(key)
        taken_keys.add(key)

        name = str(declared_name) if declared_name else key
        if name in taken_names and _is_positional(raw_key):
            name = key
        taken_names.add(name)

        spec = FieldSpec.from_config(key, {**config, "name": name})
        spec = expand_derivative(spec, search_backend)
        if spec.type == FieldType.GROUP.value:
            children = normalize_fields(
                spec.attrs.get("fields") or [],
                search_backend=search_backend,
                components=components,
                sanitizers=sanitizers,
            )
            spec = spec.replace(fields=children)
        _check_type(spec, components, sanitizers)
        _check_ajax_select(spec)
        normalized.append(spec)

    return normalized


def build_dependency_index(fields: Iterable[FieldSpec]) -> Dict[str, List[str]]:
    """Map each referenced field name to the keys of fields depending on it."""
    index: Dict[str, List[str]] = {}
    for spec in iter_fields(fields):
        if spec.depends_on is None:
            continue
        for name in spec.depends_on.fields:
            dependents = index.setdefault(name, [])
            if spec.key not in dependents:
                dependents.append(spec.key)
    return index
