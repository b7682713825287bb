"""UI-agnostic panel state.

Testable models of a rendered panel's controls and their conditional
visibility, usable without a browser.
"""

from flyouts.panel.models.field_input import CLEARABLE_KINDS, FieldInput, InputKind
from flyouts.panel.models.panel_state import (
    HIDDEN_DISABLED_CLEARED,
    VISIBLE_ENABLED,
    PanelField,
    PanelState,
)

__all__ = [
    "FieldInput",
    "InputKind",
    "CLEARABLE_KINDS",
    "PanelField",
    "PanelState",
    "VISIBLE_ENABLED",
    "HIDDEN_DISABLED_CLEARED",
]
