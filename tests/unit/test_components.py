"""Tests for the component registry and built-in widgets."""

from __future__ import annotations

import pytest

from flyouts.lib.components import CATEGORIES, ComponentRegistry
from flyouts.lib.errors import ConfigurationError
from flyouts.lib.fields import FieldSpec


class TestComponentRegistry:
    """Tests for registering and looking up components."""

    def test_default_components_use_known_categories(self, components):
        categories = {definition.category for definition in components.all().values()}

        assert categories <= set(CATEGORIES)
        assert {"display", "form", "data"} <= categories
        assert components.is_component("price_config")
        assert not components.is_component("text")

    def test_submitting_components(self, components):
        assert components.get("feature_list").submits is True
        assert components.get("alert").submits is False

    def test_by_category(self, components):
        assert set(components.by_category("form")) == {"card_choice", "image", "price_config", "discount_config"}

    def test_register_custom_component(self, components):
        components.register("rating", lambda spec: "<span>*</span>", data_fields=("value", "max"), category="form", submits=True)

        definition = components.get("rating")
        assert definition.field_names == ("value", "max")
        assert components.render(FieldSpec(key="stars", type="rating")) == "<span>*</span>"

    def test_register_requires_renderer(self, components):
        with pytest.raises(ConfigurationError, match="must have a renderer"):
            components.register("rating", None)

    def test_register_rejects_unknown_category(self, components):
        with pytest.raises(ConfigurationError, match="Unknown component category"):
            components.register("rating", lambda spec: "", category="widgets")

    def test_unregister(self, components):
        assert components.unregister("stats") is True
        assert components.get("stats") is None
        assert components.unregister("stats") is False

    def test_render_unknown_component_raises(self):
        with pytest.raises(ConfigurationError):
            ComponentRegistry().render(FieldSpec(key="x", type="stats"))


class TestAssets:
    """Tests for asset discovery."""

    def test_assets_unique_in_first_use_order(self, components):
        fields = [
            {"type": "line_items"},
            {"type": "text"},
            {"type": "notes"},
            {"type": "line_items"},
            {"type": "alert"},
        ]

        assert components.assets_for(fields) == ["line-items", "notes"]

    def test_header_needs_image_picker_only_when_editable(self, components):
        assert components.asset_for("header", {"editable": False}) is None
        assert components.asset_for("header", {"editable": True}) == "image-picker"

    def test_assets_from_field_specs(self, components):
        fields = [FieldSpec(key="gallery", type="gallery"), FieldSpec(key="head", type="header", attrs={"editable": True})]

        assert components.assets_for(fields) == ["gallery", "image-picker"]


class TestResolveData:
    """Tests for component data resolution."""

    def test_multi_field_component(self, components):
        record = {"summary": {"items": [], "total": 2500, "currency": "USD"}}

        data = components.resolve_data("price_summary", "summary", record)

        assert data == {"items": [], "total": 2500, "currency": "USD"}

    def test_unknown_type_resolves_plain_value(self, components):
        assert components.resolve_data("rating", "stars", {"stars": 4}) == {"value": 4}


class TestWidgets:
    """Tests for selected built-in widget markup."""

    def render(self, components, type_name, key="field", **attrs):
        return components.render(FieldSpec(key=key, type=type_name, attrs=attrs))

    def test_alert_type_and_fallback(self, components):
        html = self.render(components, "alert", alert_type="warning", message="Low stock")
        fallback = self.render(components, "alert", alert_type="loud", message="x")

        assert 'class="wp-flyout-alert notice notice-warning"' in html
        assert "<p>Low stock</p>" in html
        assert "notice-info" in fallback

    def test_feature_list_posts_array(self, components):
        html = self.render(components, "feature_list", key="features", items=["Dishwasher safe"])

        assert '<input type="text" name="features[]" value="Dishwasher safe">' in html

    def test_key_value_list_posts_indexed_rows(self, components):
        html = self.render(components, "key_value_list", key="meta", items=[{"key": "color", "value": "blue"}])

        assert 'name="meta[0][key]" value="color"' in html
        assert 'name="meta[0][value]" value="blue"' in html

    def test_line_items_total(self, components):
        html = self.render(
            components,
            "line_items",
            key="items",
            items=[{"id": 3, "name": "Mug", "quantity": 2, "price": 1250}],
            currency="USD",
        )

        assert "25.00 USD" in html
        assert 'name="items[0][quantity]" value="2"' in html

    def test_action_buttons(self, components):
        html = self.render(
            components,
            "action_buttons",
            buttons=[{"text": "Refund", "action": "refund", "style": "primary", "confirm": "Sure?"}],
        )

        assert 'data-action="refund"' in html
        assert 'data-confirm="Sure?"' in html
        assert "button-primary" in html

    def test_action_menu_separator(self, components):
        html = self.render(components, "action_menu", items=[{"text": "A", "action": "a"}, {"type": "separator"}])

        assert 'class="menu-separator"' in html
        assert 'data-action="a"' in html

    def test_card_choice_multiple(self, components):
        spec = FieldSpec(key="plan", type="card_choice", value=["pro"], options={"basic": "Basic", "pro": {"title": "Pro"}}, attrs={"multiple": True})

        html = components.render(spec)

        assert '<input type="checkbox" name="plan[]" value="pro" checked>' in html
        assert '<span class="card-title">Pro</span>' in html

    def test_price_config_detects_preset(self, components):
        html = self.render(components, "price_config", key="price", amount=990, recurring_interval="month", recurring_interval_count=3)

        assert 'data-preset="quarterly"' in html
        assert 'name="price[amount]" value="9.90"' in html

    def test_notes_actions(self, components):
        html = self.render(components, "notes", key="notes", items=[{"id": 5, "content": "Called customer", "author": "Ada"}])

        assert 'data-note-id="5"' in html
        assert 'data-action="add_note"' in html
        assert "Called customer" in html
