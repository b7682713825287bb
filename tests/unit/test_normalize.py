"""Tests for field normalization."""

from __future__ import annotations

import pytest

from flyouts.lib.errors import ConfigurationError
from flyouts.lib.fields import FieldSpec, FieldType
from flyouts.lib.normalize import build_dependency_index, expand_derivative, normalize_fields
from flyouts.lib.sanitize import SanitizerRegistry


class TestKeysAndNames:
    """Tests for key and name synthesis."""

    def test_mapping_keeps_declaration_order(self):
        fields = normalize_fields({"name": {}, "sku": {}, "notes": {"type": "textarea"}})

        assert [f.key for f in fields] == ["name", "sku", "notes"]
        assert fields[2].type == "textarea"

    def test_positional_declarations_get_unique_names(self):
        """Numeric-key declarations never collide."""
        fields = normalize_fields([{"type": "text"}, {"type": "email"}, {"type": "text"}])

        assert [f.key for f in fields] == ["field_0", "field_1", "field_2"]
        assert len({f.name for f in fields}) == 3

    def test_positional_declarations_reuse_declared_names(self):
        fields = normalize_fields([{"name": "note"}, {"name": "note"}])

        assert [f.key for f in fields] == ["note", "note_2"]
        assert [f.name for f in fields] == ["note", "note_2"]

    def test_synthesized_keys_never_take_explicit_keys(self):
        """Explicit keys are reserved before positional keys are made."""
        fields = normalize_fields({0: {"label": "First"}, "field_0": {"label": "Explicit"}})

        assert [f.key for f in fields] == ["field_0_2", "field_0"]

    def test_digit_string_keys_are_positional(self):
        fields = normalize_fields({"0": {"type": "text"}, "1": {"type": "text"}})

        assert [f.key for f in fields] == ["field_0", "field_1"]

    def test_declared_name_differs_from_key(self):
        fields = normalize_fields({"title": {"name": "post_title"}})

        assert fields[0].key == "title"
        assert fields[0].name == "post_title"

    def test_field_specs_are_accepted(self):
        spec = FieldSpec(key="sku", label="SKU")

        fields = normalize_fields([spec])

        assert fields[0].key == "sku"
        assert fields[0].label == "SKU"

    def test_non_mapping_declaration_raises(self):
        with pytest.raises(ConfigurationError) as exc_info:
            normalize_fields({"name": "text"})

        assert exc_info.value.field == "name"


class TestTypeChecks:
    """Tests for type validation at registration time."""

    def test_unknown_type_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown field type 'rating'"):
            normalize_fields({"stars": {"type": "rating"}})

    def test_component_types_accepted_with_registry(self, components):
        fields = normalize_fields({"price": {"type": "price_config"}}, components=components)

        assert fields[0].type == "price_config"

    def test_component_types_rejected_without_registry(self):
        with pytest.raises(ConfigurationError):
            normalize_fields({"price": {"type": "price_config"}})

    def test_custom_sanitized_type_accepted(self):
        sanitizers = SanitizerRegistry.with_defaults()
        sanitizers.register("sku", lambda raw, field: str(raw).upper())

        fields = normalize_fields({"code": {"type": "sku"}}, sanitizers=sanitizers)

        assert fields[0].type == "sku"

    def test_ajax_select_needs_callback_or_options(self):
        with pytest.raises(ConfigurationError, match="callback"):
            normalize_fields({"related": {"type": "ajax_select"}})

    def test_ajax_select_with_static_options(self):
        fields = normalize_fields({"related": {"type": "ajax_select", "options": {1: "One"}}})

        assert fields[0].options == {1: "One"}

    def test_ajax_select_callback_must_be_callable(self):
        with pytest.raises(ConfigurationError):
            normalize_fields({"related": {"type": "ajax_select", "callback": "find_posts"}})

    def test_bad_depends_raises(self):
        with pytest.raises(ConfigurationError):
            normalize_fields({"percent": {"depends": 12}})


class TestDerivativeTypes:
    """Tests for the post/taxonomy/user shortcuts."""

    def test_post_becomes_ajax_select(self, content_backend):
        fields = normalize_fields(
            {"related": {"type": "post", "post_type": "product", "multiple": True}},
            search_backend=content_backend,
        )
        spec = fields[0]

        assert spec.type == FieldType.AJAX_SELECT.value
        assert spec.is_multiple is True
        assert spec.get("callback")("mug", None) == {3: "Blue Mug", 7: "Red Mug"}

    def test_taxonomy_becomes_ajax_select(self, content_backend):
        spec = FieldSpec(key="category", type="taxonomy", attrs={"taxonomy": "product_cat"})

        expanded = expand_derivative(spec, content_backend)

        assert expanded.get("callback")("", [22]) == {22: "Garden"}

    def test_user_becomes_ajax_select(self, content_backend):
        spec = FieldSpec(key="owner", type="user", attrs={"role": "customer"})

        expanded = expand_derivative(spec, content_backend)

        assert expanded.get("callback")("", None) == {32: "Sam Shopper"}

    def test_shortcut_without_backend_raises(self):
        with pytest.raises(ConfigurationError, match="search backend"):
            normalize_fields({"related": {"type": "post"}})

    def test_other_types_pass_through(self, content_backend):
        spec = FieldSpec(key="name")

        assert expand_derivative(spec, content_backend) is spec


class TestGroups:
    """Tests for nested group fields."""

    def test_group_children_are_normalized(self):
        fields = normalize_fields(
            {
                "dimensions": {
                    "type": "group",
                    "layout": "horizontal",
                    "fields": {"width": {"type": "number"}, "height": {"type": "number"}},
                }
            }
        )
        children = fields[0].get("fields")

        assert [c.key for c in children] == ["width", "height"]
        assert all(isinstance(c, FieldSpec) for c in children)

    def test_group_children_are_type_checked(self):
        with pytest.raises(ConfigurationError):
            normalize_fields({"dimensions": {"type": "group", "fields": {"depth": {"type": "rating"}}}})


class TestDependencyIndex:
    """Tests for the field name -> dependents index."""

    def test_index_maps_referenced_fields_to_dependents(self):
        fields = normalize_fields(
            {
                "discount_type": {"type": "select", "options": ["fixed", "percentage"]},
                "discount_percent": {"type": "number", "depends": {"discount_type": "percentage"}},
                "discount_note": {"depends": ["discount_type", "discount_percent"]},
                "name": {},
            }
        )

        assert build_dependency_index(fields) == {
            "discount_type": ["discount_percent", "discount_note"],
            "discount_percent": ["discount_note"],
        }

    def test_group_rules_and_child_rules_are_indexed(self):
        fields = normalize_fields(
            {
                "shipping": {
                    "type": "group",
                    "depends": "ships",
                    "fields": {"weight": {"type": "number", "depends": {"field": "ships", "operator": "==", "value": "1"}}},
                },
            }
        )

        assert build_dependency_index(fields) == {"ships": ["shipping", "weight"]}
