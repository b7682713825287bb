"""UI-agnostic model of an open flyout panel.

Mirrors what the browser does with a rendered panel: reads live control
values into a form state, re-evaluates dependency rules when a control
changes, shows or hides dependent fields, and collects what a submit
would send. Dependent fields are always in one of two states:
``visible-enabled`` or ``hidden-disabled-cleared``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from flyouts.lib.conditions import evaluate, is_empty
from flyouts.lib.fields import FieldSpec, FieldType, Rule
from flyouts.lib.form_data import decode_form_pairs
from flyouts.lib.normalize import build_dependency_index
from flyouts.lib.render import option_pairs
from flyouts.panel.events import ChangeChannel, FieldChange
from flyouts.panel.models.field_input import FieldInput, InputKind

VISIBLE_ENABLED = "visible-enabled"
HIDDEN_DISABLED_CLEARED = "hidden-disabled-cleared"

_KIND_BY_TYPE = {
    FieldType.TEXT.value: InputKind.TEXT,
    FieldType.EMAIL.value: InputKind.EMAIL,
    FieldType.URL.value: InputKind.URL,
    FieldType.TEXTAREA.value: InputKind.TEXTAREA,
    FieldType.NUMBER.value: InputKind.NUMBER,
    FieldType.PASSWORD.value: InputKind.PASSWORD,
    FieldType.TEL.value: InputKind.TEL,
    FieldType.DATE.value: InputKind.DATE,
    FieldType.HIDDEN.value: InputKind.HIDDEN,
    FieldType.COLOR.value: InputKind.COLOR,
    FieldType.SELECT.value: InputKind.SELECT,
    FieldType.AJAX_SELECT.value: InputKind.SELECT,
}


@dataclass
class PanelField:
    """A rendered field wrapper and the controls inside it."""

    key: str
    name: str
    rule: Optional[Rule] = None
    inputs: List[FieldInput] = field(default_factory=list)
    visible: bool = True

    @property
    def is_dependent(self) -> bool:
        return self.rule is not None

    @property
    def state(self) -> str:
        return VISIBLE_ENABLED if self.visible else HIDDEN_DISABLED_CLEARED


def _initial_value(spec: FieldSpec, values: Mapping[str, Any]) -> Any:
    if spec.name in values:
        return values[spec.name]
    if spec.has_value:
        return spec.value
    return spec.get("default", "")


def _inputs_for(spec: FieldSpec, value: Any) -> List[FieldInput]:
    if spec.type == FieldType.TOGGLE.value:
        return [FieldInput(spec.name, InputKind.CHECKBOX, "1", checked=not is_empty(value))]

    if spec.type == FieldType.RADIO.value:
        return [
            FieldInput(spec.name, InputKind.RADIO, str(option), checked=str(option) == str(value))
            for option, _ in option_pairs(spec.options)
        ]

    if spec.type == FieldType.SELECT.value and spec.is_multiple:
        selected = {str(v) for v in value} if isinstance(value, (list, tuple, set)) else {str(value)}
        return [
            FieldInput(f"{spec.name}[]", InputKind.CHECKBOX, str(option), checked=str(option) in selected)
            for option, _ in option_pairs(spec.options)
        ]

    kind = _KIND_BY_TYPE.get(spec.type)
    if kind is None:
        return []
    return [FieldInput(spec.name, kind, "" if value is None else value, disabled=spec.disabled)]


def _build(spec: FieldSpec, values: Mapping[str, Any]) -> List[PanelField]:
    """Panel fields for a spec; a group shares its children's inputs."""
    if spec.type == FieldType.GROUP.value:
        children: List[PanelField] = []
        for child in spec.attrs.get("fields") or []:
            children.extend(_build(child, values))
        shared = [i for child in children for i in child.inputs]
        unique = list({id(i): i for i in shared}.values())
        return [PanelField(spec.key, spec.name, spec.depends_on, unique, spec.depends_on is None)] + children

    inputs = _inputs_for(spec, _initial_value(spec, values))
    # Dependent wrappers render hidden until the first evaluation
    return [PanelField(spec.key, spec.name, spec.depends_on, inputs, spec.depends_on is None)]


class PanelState:
    """Live state of one open panel.

    Example:
        panel = PanelState.from_fields(manager.get_fields("edit_product"), {"type": "fixed"})
        panel.set_value("type", "percentage")   # dependents re-evaluate
        submission = panel.collect_form_data()
    """

    def __init__(
        self,
        fields: Iterable[PanelField],
        *,
        dependency_index: Optional[Dict[str, List[str]]] = None,
        channel: Optional[ChangeChannel] = None,
    ) -> None:
        self.fields: Dict[str, PanelField] = {f.key: f for f in fields}
        if dependency_index is None:
            dependency_index = {}
            for panel_field in self.fields.values():
                for name in panel_field.rule.fields if panel_field.rule else []:
                    dependency_index.setdefault(name, []).append(panel_field.key)
        self.dependency_index = dependency_index
        self.channel = channel or ChangeChannel()
        self._unsubscribe = self.channel.subscribe(self._on_change)

    @classmethod
    def from_fields(
        cls,
        fields: Iterable[FieldSpec],
        values: Optional[Mapping[str, Any]] = None,
        *,
        channel: Optional[ChangeChannel] = None,
    ) -> "PanelState":
        """Build a panel from normalized fields and evaluate it once."""
        specs = list(fields)
        panel_fields: List[PanelField] = []
        for spec in specs:
            panel_fields.extend(_build(spec, values or {}))
        panel = cls(panel_fields, dependency_index=build_dependency_index(specs), channel=channel)
        panel.evaluate_all()
        return panel

    def close(self) -> None:
        """Stop listening for changes."""
        self._unsubscribe()

    # -- reading -------------------------------------------------------------

    def inputs(self) -> List[FieldInput]:
        """Every control once, in panel order."""
        seen: Dict[int, FieldInput] = {}
        for panel_field in self.fields.values():
            for control in panel_field.inputs:
                seen.setdefault(id(control), control)
        return list(seen.values())

    def inputs_named(self, name: str) -> List[FieldInput]:
        """Controls named exactly ``name``, else those named ``name[]``."""
        controls = self.inputs()
        exact = [c for c in controls if c.name == name]
        return exact or [c for c in controls if c.name == f"{name}[]"]

    def field_value(self, name: str) -> Any:
        """Current value of a field as the rule evaluator sees it.

        A checkbox group gives the list of checked values, a single
        checkbox gives a bool, a radio group gives the selected value (or
        ``None``); anything else gives its raw value. Unknown names give
        ``None``.
        """
        controls = self.inputs_named(name)
        if not controls:
            return None

        kind = controls[0].kind
        if kind == InputKind.CHECKBOX:
            if len(controls) > 1:
                return [c.value for c in controls if c.checked]
            return controls[0].checked
        if kind == InputKind.RADIO:
            return next((c.value for c in controls if c.checked), None)
        return controls[0].value

    def form_state(self) -> Dict[str, Any]:
        """Rebuild the name -> value map from the live controls."""
        names: List[str] = []
        for control in self.inputs():
            if control.base_name not in names:
                names.append(control.base_name)
        return {name: self.field_value(name) for name in names}

    def visible_fields(self) -> List[str]:
        return [key for key, panel_field in self.fields.items() if panel_field.visible]

    # -- changing ------------------------------------------------------------

    def _publish(self, name: str) -> None:
        base = name[:-2] if name.endswith("[]") else name
        self.channel.publish(FieldChange(base, self.field_value(base)))

    def set_value(self, name: str, value: Any) -> None:
        """Set a text-like or select control's value and announce the change.

        Raises:
            KeyError: If no such control exists
        """
        controls = [c for c in self.inputs_named(name) if not c.is_checkable]
        if not controls:
            raise KeyError(f"No input named '{name}'")
        controls[0].value = value
        self._publish(controls[0].name)

    def check(self, name: str, value: Any = None, checked: bool = True) -> None:
        """Check or uncheck a checkbox/radio and announce the change.

        ``value`` picks the option within a group; ``None`` picks the first.

        Raises:
            KeyError: If no matching control exists
        """
        controls = [c for c in self.inputs_named(name) if c.is_checkable]
        if value is not None:
            controls = [c for c in controls if str(c.value) == str(value)]
            if not controls:
                raise KeyError(f"No option '{value}' for '{name}'")
        if not controls:
            raise KeyError(f"No checkable input named '{name}'")

        target = controls[0]
        if target.kind == InputKind.RADIO and checked:
            for sibling in self.inputs_named(name):
                sibling.checked = False
        target.checked = checked
        self._publish(target.name)

    # -- evaluation ----------------------------------------------------------

    def _on_change(self, change: FieldChange) -> None:
        for key in self.dependency_index.get(change.name, []):
            if key in self.fields:
                self.evaluate_field(key)

    def evaluate_field(self, key: str) -> bool:
        """Re-evaluate one field's rule; returns whether it is shown."""
        panel_field = self.fields[key]
        if panel_field.rule is None:
            return panel_field.visible
        show = evaluate(panel_field.rule, self.form_state())
        self.toggle_visibility(panel_field, show)
        return show

    def evaluate_all(self) -> Dict[str, bool]:
        """Evaluate every dependent field (initial render, explicit refresh)."""
        return {
            key: self.evaluate_field(key)
            for key, panel_field in self.fields.items()
            if panel_field.is_dependent
        }

    refresh = evaluate_all

    @staticmethod
    def toggle_visibility(panel_field: PanelField, show: bool) -> None:
        """Show (re-enable) or hide (disable and clear) a field's controls.

        Clearing is one-way: showing a field again does not restore values.
        """
        for control in panel_field.inputs:
            if show:
                control.enable()
            else:
                control.disable()
                control.clear()
        panel_field.visible = show

    # -- submitting ----------------------------------------------------------

    def collect_form_data(self) -> Dict[str, Any]:
        """What a submit would send: enabled controls only.

        An unchecked single checkbox submits ``"0"``.
        """
        controls = self.inputs()
        checkbox_counts: Dict[str, int] = {}
        for control in controls:
            if control.kind == InputKind.CHECKBOX:
                checkbox_counts[control.name] = checkbox_counts.get(control.name, 0) + 1

        pairs: List[Tuple[str, Any]] = []
        unchecked: List[str] = []
        for control in controls:
            if control.disabled:
                continue
            if control.kind == InputKind.CHECKBOX:
                is_group = checkbox_counts[control.name] > 1 or control.name.endswith("[]")
                if control.checked:
                    pairs.append((control.name, control.value))
                elif not is_group:
                    unchecked.append(control.name)
            elif control.kind == InputKind.RADIO:
                if control.checked:
                    pairs.append((control.name, control.value))
            elif isinstance(control.value, (list, tuple)):
                pairs.extend((f"{control.base_name}[]", item) for item in control.value)
            else:
                pairs.append((control.name, control.value))

        return decode_form_pairs(pairs, unchecked)
