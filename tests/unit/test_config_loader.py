"""Tests for YAML configuration loader."""

import pytest

from flyouts.lib.config_loader import (
    YAMLConfigError,
    build_manager,
    load_config,
    load_manager,
    resolve_callable,
    validate_yaml_config,
)
from flyouts.lib.handlers import handle_action, handle_load, handle_search
from flyouts.lib.search import InMemoryContentBackend


class TestResolveCallable:
    """Tests for import-string resolution."""

    def test_resolves_module_attribute(self, callbacks_module):
        func = resolve_callable("flyout_test_callbacks:refund")

        assert func({}) == {"refunded": True}

    def test_dotted_attribute(self):
        assert resolve_callable("os:path.join")("a", "b").endswith("b")

    def test_callable_passes_through(self):
        assert resolve_callable(len) is len

    def test_missing_colon(self):
        with pytest.raises(YAMLConfigError, match="module:attribute"):
            resolve_callable("flyout_test_callbacks.refund", "edit_product.save")

    def test_unknown_module(self):
        with pytest.raises(YAMLConfigError, match="Cannot import module"):
            resolve_callable("no_such_module_xyz:func")

    def test_unknown_attribute(self, callbacks_module):
        with pytest.raises(YAMLConfigError, match="has no attribute"):
            resolve_callable("flyout_test_callbacks:missing")

    def test_not_callable(self, callbacks_module):
        with pytest.raises(YAMLConfigError, match="is not callable") as exc_info:
            resolve_callable("flyout_test_callbacks:NOT_CALLABLE", "edit_product.load")

        assert exc_info.value.field == "edit_product.load"


class TestLoadConfig:
    """Tests for reading YAML files."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("flyouts: [unclosed\n")

        with pytest.raises(YAMLConfigError, match="Invalid YAML syntax"):
            load_config(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        with pytest.raises(YAMLConfigError, match="Empty configuration file"):
            load_config(path)

    def test_root_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(YAMLConfigError, match="root must be a mapping"):
            load_config(path)

    def test_env_vars_are_expanded(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SHOP_TITLE", "Edit Product")
        monkeypatch.delenv("FLYOUT_TEST_SIZE", raising=False)
        path = tmp_path / "env.yaml"
        path.write_text(
            "manager: shop\n"
            "flyouts:\n"
            "  edit:\n"
            "    title: ${SHOP_TITLE}\n"
            "    size: ${FLYOUT_TEST_SIZE:-large}\n"
        )

        config = load_config(path)

        assert config["flyouts"]["edit"] == {"title": "Edit Product", "size": "large"}


class TestBuildManager:
    """Tests for building managers from parsed config."""

    def test_requires_manager_prefix(self, registry):
        with pytest.raises(YAMLConfigError, match="'manager' prefix"):
            build_manager({"flyouts": {"a": {}}}, registry=registry)

    def test_requires_flyouts(self, registry):
        with pytest.raises(YAMLConfigError, match="non-empty 'flyouts'"):
            build_manager({"manager": "shop", "flyouts": {}}, registry=registry)

    def test_flyout_must_be_mapping(self, registry):
        with pytest.raises(YAMLConfigError, match="must be a mapping"):
            build_manager({"manager": "shop", "flyouts": {"a": "oops"}}, registry=registry)

    def test_fields_must_be_mapping_or_list(self, registry):
        with pytest.raises(YAMLConfigError, match="must be a mapping or a list"):
            build_manager({"manager": "shop", "flyouts": {"a": {"fields": "name"}}}, registry=registry)

    def test_bad_content_record(self, registry):
        config = {"manager": "shop", "content": [{"id": 1, "title": "x"}], "flyouts": {"a": {}}}

        with pytest.raises(YAMLConfigError, match="Invalid content record"):
            build_manager(config, registry=registry)

    def test_explicit_backend_wins(self, registry, content_backend):
        config = {
            "manager": "shop",
            "content": [{"id": 1, "label": "Ignored"}],
            "flyouts": {"a": {"fields": {"related": {"type": "post", "post_type": "product"}}}},
        }

        manager = build_manager(config, search_backend=content_backend, registry=registry)

        assert manager.search_backend is content_backend

    def test_capability_hook_is_passed_through(self, registry):
        manager = build_manager({"manager": "crm", "flyouts": {"a": {}}}, registry=registry, can=lambda c: False)

        assert manager.get_button("a") == ""


class TestLoadManager:
    """Tests for loading a complete YAML file."""

    def test_loads_flyouts_and_callbacks(self, shop_yaml, registry):
        manager = load_manager(shop_yaml, registry=registry)

        assert registry.get("shop") is manager
        assert sorted(manager.get_flyouts()) == ["edit_product", "view_product"]
        assert manager.get_flyout("edit_product")["size"] == "large"
        assert callable(manager.get_flyout("edit_product")["load"])
        assert isinstance(manager.search_backend, InMemoryContentBackend)

    def test_loaded_manager_serves_requests(self, shop_yaml, registry):
        manager = load_manager(shop_yaml, registry=registry)

        loaded = handle_load(manager, "edit_product", 42)
        related = handle_search(manager, "edit_product", "related", "red")
        colors = handle_search(manager, "edit_product", "color", "", include=[2])
        action = handle_action(manager, "edit_product", "refund", 42)

        assert 'value="Blue Mug"' in loaded.data["html"]
        assert related.data["results"] == [{"id": "7", "text": "Red Mug"}]
        assert colors.data["results"] == [{"id": "2", "text": "Blue"}]
        assert action.to_dict() == {"success": True, "refunded": True}

    def test_positional_fields_get_keys(self, shop_yaml, registry):
        manager = load_manager(shop_yaml, registry=registry)

        assert [f.key for f in manager.get_fields("view_product")] == ["note"]


class TestValidateYamlConfig:
    """Tests for validate_yaml_config."""

    def test_valid_file(self, shop_yaml):
        assert validate_yaml_config(shop_yaml) == []

    def test_validation_does_not_register_globally(self, shop_yaml):
        from flyouts.lib.manager import default_registry

        validate_yaml_config(shop_yaml)

        assert not default_registry.has("shop")

    def test_reports_bad_callback(self, tmp_path, callbacks_module):
        path = tmp_path / "bad.yaml"
        path.write_text("manager: shop\nflyouts:\n  a:\n    save: flyout_test_callbacks:missing\n")

        errors = validate_yaml_config(path)

        assert len(errors) == 1
        assert "has no attribute" in errors[0]

    def test_reports_unknown_field_type(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("manager: shop\nflyouts:\n  a:\n    fields:\n      stars: {type: rating}\n")

        errors = validate_yaml_config(path)

        assert "Unknown field type 'rating'" in errors[0]

    def test_reports_missing_file(self, tmp_path):
        errors = validate_yaml_config(tmp_path / "missing.yaml")

        assert "not found" in errors[0]
