"""Flyout library modules.

This package contains the field model, the normalization, conditional
visibility and sanitization rules, and the rendering pipeline behind
declarative WordPress admin flyout panels.
"""

from flyouts.lib.components import ComponentDefinition, ComponentRegistry
from flyouts.lib.conditions import evaluate, evaluate_condition, is_empty, loose_equals
from flyouts.lib.errors import (
    ConfigurationError,
    ErrorResult,
    FlyoutError,
    LoadError,
    PersistenceError,
    RemoteError,
    ValidationError,
    is_error,
)
from flyouts.lib.fields import UNSET, Condition, FieldSpec, FieldType, Rule, flatten_fields, parse_rule
from flyouts.lib.flyout import ActionBar, Flyout
from flyouts.lib.form_data import decode_form_pairs
from flyouts.lib.manager import Manager, ManagerRegistry, default_registry
from flyouts.lib.normalize import build_dependency_index, normalize_fields
from flyouts.lib.render import Renderer
from flyouts.lib.resolver import ValueResolver, resolve_component_data, resolve_value
from flyouts.lib.sanitize import SanitizerRegistry
from flyouts.lib.search import ContentBackend, ContentRecord, InMemoryContentBackend, SearchCallbacks

__all__ = [
    # Fields
    "UNSET",
    "Condition",
    "FieldSpec",
    "FieldType",
    "Rule",
    "flatten_fields",
    "parse_rule",
    "normalize_fields",
    "build_dependency_index",
    # Values
    "ValueResolver",
    "resolve_value",
    "resolve_component_data",
    # Conditions
    "evaluate",
    "evaluate_condition",
    "is_empty",
    "loose_equals",
    # Sanitization
    "SanitizerRegistry",
    "decode_form_pairs",
    # Rendering
    "ComponentDefinition",
    "ComponentRegistry",
    "Renderer",
    "Flyout",
    "ActionBar",
    "Manager",
    "ManagerRegistry",
    "default_registry",
    # Search
    "ContentBackend",
    "ContentRecord",
    "InMemoryContentBackend",
    "SearchCallbacks",
    # Errors
    "FlyoutError",
    "ConfigurationError",
    "LoadError",
    "ValidationError",
    "PersistenceError",
    "RemoteError",
    "ErrorResult",
    "is_error",
]
