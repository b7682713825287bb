"""Client-side panel behavior modelled in Python."""

from flyouts.panel.events import ChangeChannel, FieldChange
from flyouts.panel.models import FieldInput, InputKind, PanelField, PanelState

__all__ = ["ChangeChannel", "FieldChange", "FieldInput", "InputKind", "PanelField", "PanelState"]
