"""Structured exception hierarchy for flyouts.

Provides specific exception types for the failure modes that must fail
loudly (configuration mistakes, load failures), plus ``ErrorResult``,
the tagged error value that crosses the request boundary for failures
that are reported to the end user instead of raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

__all__ = [
    "FlyoutError",
    "ConfigurationError",
    "LoadError",
    "ValidationError",
    "PersistenceError",
    "RemoteError",
    "ErrorResult",
    "is_error",
]


class FlyoutError(Exception):
    """Base exception for all flyout errors.

    Provides structured error information for debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        manager: Optional[str] = None,
        flyout: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.manager = manager
        self.flyout = flyout
        self.details = details or {}
        self.suggestion = suggestion

        parts = [message]

        if manager or flyout:
            context = f"{manager or '?'}.{flyout or '?'}"
            parts.insert(0, f"[{context}]")

        if details:
            detail_lines = [f"  {k}: {v}" for k, v in details.items()]
            parts.append("\nDetails:")
            parts.extend(detail_lines)

        if suggestion:
            parts.append(f"\nSuggestion: {suggestion}")

        super().__init__("\n".join(parts) if len(parts) > 1 else message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "manager": self.manager,
            "flyout": self.flyout,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class ConfigurationError(FlyoutError):
    """Error in a flyout or field declaration.

    Raised at registration/normalization time. Indicates a programming
    mistake, never bad user input.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value

        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(message, details=details, **kwargs)


class LoadError(FlyoutError):
    """A flyout's load callback failed.

    Raised when the callback (or value resolution against the data it
    returned) throws.
    """

    def __init__(
        self,
        message: str,
        *,
        item_id: Any = None,
        cause: Optional[BaseException] = None,
        **kwargs: Any,
    ) -> None:
        self.item_id = item_id
        self.cause = cause

        details = kwargs.pop("details", {})
        if item_id is not None:
            details["item_id"] = str(item_id)
        if cause:
            details["cause"] = str(cause)
            details["cause_type"] = type(cause).__name__

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = (
                "Check the flyout's load callback. It should return a data "
                "object, an ErrorResult, or False when the record is missing."
            )

        super().__init__(message, details=details, suggestion=suggestion, **kwargs)


class ValidationError(FlyoutError):
    """Validation failed for submitted form data."""

    def __init__(
        self,
        message: str,
        *,
        issues: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        self.issues = issues or []

        details = kwargs.pop("details", {})
        if issues:
            details["issue_count"] = len(issues)

        if issues:
            issue_lines = "\n".join(f"  - {issue}" for issue in issues)
            message = f"{message}\n\nIssues found:\n{issue_lines}"

        super().__init__(message, details=details, **kwargs)


class PersistenceError(FlyoutError):
    """A save or delete callback raised."""

    def __init__(
        self,
        message: str,
        *,
        operation: str = "save",
        cause: Optional[BaseException] = None,
        **kwargs: Any,
    ) -> None:
        self.operation = operation
        self.cause = cause

        details = kwargs.pop("details", {})
        details["operation"] = operation
        if cause:
            details["cause"] = str(cause)
            details["cause_type"] = type(cause).__name__

        super().__init__(message, details=details, **kwargs)


class RemoteError(FlyoutError):
    """A remote flyout endpoint answered with an error."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.status = status
        self.code = code

        details = kwargs.pop("details", {})
        if status is not None:
            details["status"] = status
        if code:
            details["code"] = code

        super().__init__(message, details=details, **kwargs)


@dataclass
class ErrorResult:
    """Tagged error value returned (not raised) across the request boundary.

    Callbacks may return one of these to report a failure with a
    human-readable message; handlers pass it through unchanged.

    Attributes:
        code: Machine-readable error code (e.g., "flyout_not_found")
        message: Human-readable message shown to the user
        status: HTTP-style status code
        data: Optional extra payload
    """

    code: str
    message: str
    status: int = 400
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the response payload shape."""
        payload: Dict[str, Any] = {
            "success": False,
            "code": self.code,
            "message": self.message,
            "status": self.status,
        }
        if self.data:
            payload["data"] = self.data
        return payload

    @classmethod
    def from_exception(
        cls, code: str, exc: BaseException, status: int = 500
    ) -> "ErrorResult":
        """Build an error result from a caught exception."""
        message = exc.message if isinstance(exc, FlyoutError) else str(exc)
        return cls(code=code, message=message, status=status)


def is_error(value: Any) -> bool:
    """Check whether a callback result is a tagged error."""
    return isinstance(value, ErrorResult)
