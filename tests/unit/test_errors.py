"""Tests for the structured exceptions and ErrorResult."""

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


class TestFlyoutError:
    """Tests for the base exception."""

    def test_plain_message(self):
        error = FlyoutError("Something broke")

        assert str(error) == "Something broke"
        assert error.message == "Something broke"

    def test_context_prefix_and_suggestion(self):
        error = FlyoutError("Bad config", manager="shop", flyout="edit_product", suggestion="Fix it")

        text = str(error)
        assert text.startswith("[shop.edit_product]")
        assert "Suggestion: Fix it" in text

    def test_to_dict(self):
        error = FlyoutError("Bad", manager="shop", details={"field": "name"})

        assert error.to_dict() == {
            "error_type": "FlyoutError",
            "message": "Bad",
            "manager": "shop",
            "flyout": None,
            "details": {"field": "name"},
            "suggestion": None,
        }


class TestSubclasses:
    """Tests for the specific error types."""

    def test_configuration_error_records_field_and_value(self):
        error = ConfigurationError("Unknown field type 'rating'", field="stars", value="rating")

        assert error.field == "stars"
        assert error.details == {"field": "stars", "value": "rating"}
        assert isinstance(error, FlyoutError)

    def test_load_error_has_default_suggestion(self):
        cause = RuntimeError("db down")
        error = LoadError("Load callback failed", item_id=42, cause=cause)

        assert error.details["item_id"] == "42"
        assert error.details["cause_type"] == "RuntimeError"
        assert "load callback" in error.suggestion

    def test_validation_error_lists_issues(self):
        error = ValidationError("Please fix the form.", issues=["Name is required", "SKU too long"])

        assert error.issues == ["Name is required", "SKU too long"]
        assert error.details["issue_count"] == 2
        assert "  - SKU too long" in error.message

    def test_persistence_error_operation(self):
        error = PersistenceError("Delete failed.", operation="delete", cause=ValueError("x"))

        assert error.details["operation"] == "delete"
        assert error.cause.args == ("x",)

    def test_remote_error(self):
        error = RemoteError("Record not found.", status=404, code="flyout_load_failed")

        assert error.status == 404
        assert error.details == {"status": 404, "code": "flyout_load_failed"}


class TestErrorResult:
    """Tests for the tagged error value."""

    def test_to_dict_without_data(self):
        result = ErrorResult("flyout_not_found", 'Flyout "x" not found.', 404)

        assert result.to_dict() == {
            "success": False,
            "code": "flyout_not_found",
            "message": 'Flyout "x" not found.',
            "status": 404,
        }

    def test_to_dict_with_data(self):
        result = ErrorResult("flyout_validation_failed", "Invalid", 422, {"issues": ["a"]})

        assert result.to_dict()["data"] == {"issues": ["a"]}

    def test_from_exception(self):
        flyout_error = ErrorResult.from_exception("x", ConfigurationError("Bad field", field="a"))
        plain = ErrorResult.from_exception("y", RuntimeError("boom"), 502)

        assert flyout_error.message == "Bad field"
        assert flyout_error.status == 500
        assert plain.message == "boom"
        assert plain.status == 502

    def test_is_error(self):
        assert is_error(ErrorResult("x", "y"))
        assert not is_error(False)
        assert not is_error({"success": False})
