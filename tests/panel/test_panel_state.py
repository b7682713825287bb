"""Tests for the panel state model: conditional visibility and submission."""

from __future__ import annotations

import pytest

from flyouts.lib.fields import FieldSpec, parse_rule
from flyouts.lib.normalize import normalize_fields
from flyouts.panel import ChangeChannel, FieldChange, FieldInput, InputKind, PanelField, PanelState
from flyouts.panel.models import HIDDEN_DISABLED_CLEARED, VISIBLE_ENABLED


class TestInitialState:
    """Tests for opening a panel."""

    def test_unsatisfied_dependent_starts_hidden_disabled_cleared(self, product_panel):
        percent = product_panel.fields["discount_percent"]

        assert percent.state == HIDDEN_DISABLED_CLEARED
        assert percent.inputs[0].disabled is True
        assert percent.inputs[0].conditional_disabled is True
        assert percent.inputs[0].value == ""

    def test_independent_fields_are_visible(self, product_panel):
        assert product_panel.fields["name"].state == VISIBLE_ENABLED
        assert "discount_percent" not in product_panel.visible_fields()
        assert product_panel.visible_fields()[:3] == ["name", "sku", "discount_type"]

    def test_satisfied_dependent_starts_visible(self, build_panel, product_fields, product):
        panel = build_panel(product_fields, {**product, "discount_type": "percentage", "discount_percent": "15"})

        assert panel.fields["discount_percent"].visible is True
        assert panel.field_value("discount_percent") == "15"

    def test_initial_values_fall_back_to_declared_value_and_default(self, build_panel):
        panel = build_panel({"sku": {"value": "FIXED"}, "status": {"default": "draft"}, "note": {}})

        assert panel.form_state() == {"sku": "FIXED", "status": "draft", "note": ""}

    def test_components_contribute_no_controls(self, product_panel):
        assert product_panel.fields["price"].inputs == []


class TestDiscountScenario:
    """The discount type switch drives the percent field."""

    def test_switching_to_percentage_shows_empty_field(self, product_panel):
        product_panel.set_value("discount_type", "percentage")

        percent = product_panel.fields["discount_percent"]
        assert percent.state == VISIBLE_ENABLED
        assert percent.inputs[0].disabled is False
        assert percent.inputs[0].value == ""

    def test_switching_back_hides_and_clears(self, product_panel):
        product_panel.set_value("discount_type", "percentage")
        product_panel.set_value("discount_percent", "25")

        product_panel.set_value("discount_type", "fixed")

        percent = product_panel.fields["discount_percent"]
        assert percent.state == HIDDEN_DISABLED_CLEARED
        assert percent.inputs[0].value == ""

    def test_cleared_value_is_not_restored(self, build_panel):
        panel = build_panel({"mode": {}, "detail": {"depends": {"mode": "on"}}}, {"mode": "on"})
        panel.set_value("detail", "hello")

        panel.set_value("mode", "off")
        panel.set_value("mode", "on")

        assert panel.fields["detail"].visible is True
        assert panel.field_value("detail") == ""

    def test_hidden_field_is_not_submitted(self, product_panel):
        assert product_panel.collect_form_data() == {
            "name": "Blue Mug",
            "sku": "MUG-BLUE",
            "discount_type": "fixed",
            "active": "1",
        }

    def test_shown_field_is_submitted(self, product_panel):
        product_panel.set_value("discount_type", "percentage")
        product_panel.set_value("discount_percent", "10")

        assert product_panel.collect_form_data()["discount_percent"] == "10"


class TestValueExtraction:
    """Tests for reading control values the way rules see them."""

    @pytest.fixture
    def panel(self, build_panel):
        return build_panel(
            {
                "colors": {"type": "select", "multiple": True, "options": ["red", "blue", "green"]},
                "size": {"type": "radio", "options": {"s": "Small", "l": "Large"}},
                "active": {"type": "toggle"},
                "gift_note": {"type": "textarea", "depends": {"field": "colors", "operator": "contains", "value": "blue"}},
                "large_note": {"depends": {"size": "l"}},
                "expires": {"type": "date", "depends": "active"},
            },
            {"colors": ["red"], "size": "l", "active": ""},
        )

    def test_checkbox_group_gives_checked_values(self, panel):
        assert panel.field_value("colors") == ["red"]

        panel.check("colors", "blue")

        assert panel.field_value("colors") == ["red", "blue"]
        assert panel.fields["gift_note"].visible is True

    def test_unchecking_group_member(self, panel):
        panel.check("colors", "blue")
        panel.check("colors", "blue", checked=False)

        assert panel.field_value("colors") == ["red"]
        assert panel.fields["gift_note"].visible is False

    def test_single_checkbox_gives_bool(self, panel):
        assert panel.field_value("active") is False
        assert panel.fields["expires"].visible is False

        panel.check("active")

        assert panel.field_value("active") is True
        assert panel.fields["expires"].visible is True

    def test_radio_gives_selected_value(self, panel):
        assert panel.field_value("size") == "l"
        assert panel.fields["large_note"].visible is True

        panel.check("size", "s")

        assert panel.field_value("size") == "s"
        assert [c.checked for c in panel.inputs_named("size")] == [True, False]
        assert panel.fields["large_note"].visible is False

    def test_radio_without_selection(self, build_panel):
        panel = build_panel({"size": {"type": "radio", "options": ["s", "l"]}})

        assert panel.field_value("size") is None

    def test_unknown_name(self, panel):
        assert panel.field_value("missing") is None

        with pytest.raises(KeyError):
            panel.set_value("missing", "x")
        with pytest.raises(KeyError):
            panel.check("size", "xl")
        with pytest.raises(KeyError):
            panel.check("large_note")

    def test_form_state_uses_base_names(self, panel):
        state = panel.form_state()

        assert state["colors"] == ["red"]
        assert state["size"] == "l"
        assert state["active"] is False
        assert "colors[]" not in state


class TestCollectFormData:
    """Tests for what a submit would send."""

    def test_checkbox_group_and_unchecked_toggle(self, build_panel):
        panel = build_panel(
            {
                "colors": {"type": "select", "multiple": True, "options": ["red", "blue"]},
                "active": {"type": "toggle"},
                "size": {"type": "radio", "options": ["s", "l"]},
            },
            {"colors": ["red", "blue"], "active": "0"},
        )

        assert panel.collect_form_data() == {"colors": ["red", "blue"], "active": "0"}

    def test_disabled_controls_are_skipped(self, build_panel):
        panel = build_panel({"name": {}, "locked": {"disabled": True, "value": "x"}})

        assert panel.collect_form_data() == {"name": ""}

    def test_list_values_submit_as_array(self):
        panel = PanelState([PanelField("tags", "tags", inputs=[FieldInput("tags", InputKind.HIDDEN, ["a", "b"])])])

        assert panel.collect_form_data() == {"tags": ["a", "b"]}


class TestGroups:
    """Tests for dependent groups."""

    def test_hidden_group_disables_children(self, build_panel):
        panel = build_panel(
            {
                "shipping": {"type": "toggle"},
                "address": {
                    "type": "group",
                    "depends": "shipping",
                    "fields": {"street": {}, "city": {}},
                },
            },
            {"street": "Main St", "city": "Springfield"},
        )

        assert panel.fields["address"].visible is False
        assert panel.fields["street"].inputs[0].disabled is True
        assert panel.field_value("street") == ""

        panel.check("shipping")

        assert panel.fields["address"].visible is True
        assert panel.fields["city"].inputs[0].disabled is False

    def test_child_dependency_on_outer_field(self, build_panel):
        panel = build_panel(
            {
                "kind": {},
                "box": {"type": "group", "fields": {"weight": {"depends": {"kind": "physical"}}}},
            },
            {"kind": "physical"},
        )

        assert panel.fields["weight"].visible is True

        panel.set_value("kind", "digital")

        assert panel.fields["weight"].visible is False


class TestChannel:
    """Tests for change propagation."""

    def test_shared_channel_drives_panel(self, product_fields, product, components):
        channel = ChangeChannel()
        panel = PanelState.from_fields(normalize_fields(product_fields, components=components), product, channel=channel)
        panel.fields["discount_type"].inputs[0].value = "percentage"

        channel.publish(FieldChange("discount_type", "percentage"))

        assert panel.fields["discount_percent"].visible is True

    def test_close_stops_listening(self, product_panel):
        product_panel.close()
        product_panel.fields["discount_type"].inputs[0].value = "percentage"

        product_panel.channel.publish(FieldChange("discount_type"))

        assert product_panel.fields["discount_percent"].visible is False

    def test_refresh_evaluates_every_dependent(self, product_panel):
        product_panel.fields["discount_type"].inputs[0].value = "percentage"

        assert product_panel.refresh() == {"discount_percent": True}

    def test_manual_panel_builds_dependency_index(self):
        rule = parse_rule({"mode": "on"})
        panel = PanelState(
            [
                PanelField("mode", "mode", inputs=[FieldInput("mode", value="off")]),
                PanelField("detail", "detail", rule, [FieldInput("detail", value="x")]),
            ]
        )

        assert panel.dependency_index == {"mode": ["detail"]}
        panel.set_value("mode", "on")
        assert panel.fields["detail"].visible is True


def test_field_spec_values_are_used_directly():
    spec = FieldSpec(key="name", value="Mug")

    panel = PanelState.from_fields([spec])

    assert panel.field_value("name") == "Mug"
