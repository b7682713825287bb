"""A single form control inside a rendered panel."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class InputKind(str, Enum):
    """Control kinds the panel model distinguishes."""

    TEXT = "text"
    EMAIL = "email"
    URL = "url"
    TEXTAREA = "textarea"
    NUMBER = "number"
    PASSWORD = "password"
    TEL = "tel"
    DATE = "date"
    HIDDEN = "hidden"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    COLOR = "color"


# Kinds whose value is wiped when their field is hidden
CLEARABLE_KINDS = frozenset(
    {
        InputKind.TEXT,
        InputKind.EMAIL,
        InputKind.URL,
        InputKind.TEXTAREA,
        InputKind.NUMBER,
        InputKind.TEL,
        InputKind.DATE,
    }
)

CHECKABLE_KINDS = frozenset({InputKind.CHECKBOX, InputKind.RADIO})


@dataclass(eq=False)
class FieldInput:
    """One control: its submitted name, kind and live state.

    Attributes:
        name: Submitted name, possibly with a ``[]`` suffix
        kind: Control kind
        value: Current value (the option value for checkables)
        checked: Checked state for checkboxes and radios
        disabled: Disabled controls are not submitted
        conditional_disabled: Set when the control was disabled by a hidden dependency
    """

    name: str
    kind: InputKind = InputKind.TEXT
    value: Any = ""
    checked: bool = False
    disabled: bool = False
    conditional_disabled: bool = False

    @property
    def base_name(self) -> str:
        return self.name[:-2] if self.name.endswith("[]") else self.name

    @property
    def is_checkable(self) -> bool:
        return self.kind in CHECKABLE_KINDS

    def clear(self) -> None:
        """Uncheck checkables and empty text-like values; other kinds keep their value."""
        if self.is_checkable:
            self.checked = False
        elif self.kind in CLEARABLE_KINDS:
            self.value = ""

    def enable(self) -> None:
        self.disabled = False
        self.conditional_disabled = False

    def disable(self) -> None:
        self.disabled = True
        self.conditional_disabled = True

    def __str__(self) -> str:
        state = "checked" if self.checked else repr(self.value)
        return f"{self.kind.value}:{self.name}={state}{' (disabled)' if self.disabled else ''}"
