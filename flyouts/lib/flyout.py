"""Flyout panel container and footer action bar."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from flyouts.lib.html import classes, esc, tag

__all__ = ["Flyout", "ActionBar", "VALID_SIZES", "VALID_POSITIONS"]

VALID_SIZES = ("small", "medium", "large", "full")
VALID_POSITIONS = ("left", "right")
MAIN_CONTENT = "main"


@dataclass
class Tab:
    id: str
    label: str


class Flyout:
    """A slide-out panel: header, optional tabs, form body and footer.

    Example:
        flyout = Flyout("edit_customer_42", title="Edit Customer", size="large")
        flyout.add_tab("details", "Details")
        flyout.add_content("details", fields_html)
        html = flyout.render()
    """

    def __init__(
        self,
        flyout_id: str,
        *,
        title: str = "",
        subtitle: str = "",
        size: str = "medium",
        position: str = "right",
        css_classes: Optional[List[str]] = None,
    ) -> None:
        self.id = flyout_id
        self.title = title
        self.subtitle = subtitle
        self.size = "medium"
        self.position = "right"
        self.css_classes: List[str] = list(css_classes or [])
        self.tabs: Dict[str, Tab] = {}
        self.active_tab = ""
        self.content: Dict[str, str] = {}
        self.footer = ""
        self.set_size(size)
        self.set_position(position)

    def set_size(self, size: str) -> "Flyout":
        """Set the panel size; unknown sizes keep the current one."""
        if size in VALID_SIZES:
            self.size = size
        return self

    def set_position(self, position: str) -> "Flyout":
        if position in VALID_POSITIONS:
            self.position = position
        return self

    def add_class(self, css_class: str) -> "Flyout":
        if css_class not in self.css_classes:
            self.css_classes.append(css_class)
        return self

    def add_tab(self, tab_id: str, label: str, active: bool = False) -> "Flyout":
        """Add a tab; the first tab is active unless another asks to be."""
        self.tabs[tab_id] = Tab(tab_id, label)
        if active or not self.active_tab:
            self.active_tab = tab_id
        self.content.setdefault(tab_id, "")
        return self

    def _content_key(self, tab_id: str) -> str:
        return MAIN_CONTENT if not tab_id and not self.tabs else tab_id

    def add_content(self, tab_id: str, content: str) -> "Flyout":
        key = self._content_key(tab_id)
        self.content[key] = self.content.get(key, "") + content
        return self

    def set_tab_content(self, tab_id: str, content: str) -> "Flyout":
        self.content[self._content_key(tab_id)] = content
        return self

    def set_footer(self, content: str) -> "Flyout":
        self.footer = content
        return self

    @property
    def has_tabs(self) -> bool:
        return bool(self.tabs)

    def _render_header(self) -> str:
        heading = tag("h2", esc(self.title), {"class": "wp-flyout-title"})
        if self.subtitle:
            heading += tag("p", esc(self.subtitle), {"class": "wp-flyout-subtitle"})
        close = tag(
            "button",
            tag("span", "", {"class": "dashicons dashicons-no-alt"}),
            {"type": "button", "class": "wp-flyout-close", "aria-label": "Close"},
        )
        return tag("div", tag("div", heading, {"class": "wp-flyout-header-content"}) + close, {"class": "wp-flyout-header"})

    def _render_tabs(self) -> str:
        links = ""
        for tab in self.tabs.values():
            is_active = tab.id == self.active_tab
            links += tag(
                "a",
                esc(tab.label),
                {
                    "href": f"#tab-{tab.id}",
                    "class": classes("wp-flyout-tab", "active" if is_active else ""),
                    "role": "tab",
                    "data-tab": tab.id,
                    "aria-selected": "true" if is_active else "false",
                },
            )
        return tag("div", tag("nav", links, {"class": "wp-flyout-tab-nav", "role": "tablist"}), {"class": "wp-flyout-tabs"})

    def _render_body(self) -> str:
        if self.has_tabs:
            inner = "".join(
                tag(
                    "div",
                    self.content.get(tab.id, ""),
                    {
                        "id": f"tab-{tab.id}",
                        "class": classes("wp-flyout-tab-content", "active" if tab.id == self.active_tab else ""),
                        "role": "tabpanel",
                    },
                )
                for tab in self.tabs.values()
            )
        else:
            inner = self.content.get(MAIN_CONTENT, "")
        return tag("div", tag("form", inner, {"class": "wp-flyout-form", "novalidate": True}), {"class": "wp-flyout-body"})

    def render(self) -> str:
        css = classes("wp-flyout", f"wp-flyout-{self.size}", f"wp-flyout-{self.position}", self.css_classes)
        body = self._render_header()
        if self.has_tabs:
            body += self._render_tabs()
        body += self._render_body()
        if self.footer:
            body += tag("div", self.footer, {"class": "wp-flyout-footer"})
        return tag("div", body, {"id": self.id, "class": css, "data-flyout-id": self.id})


@dataclass
class ActionBar:
    """Footer row of action buttons."""

    actions: List[Mapping[str, Any]] = field(default_factory=list)
    id: str = ""
    css_class: str = "wp-flyout-actions"
    align: str = "stretch"

    def __post_init__(self) -> None:
        if not self.id:
            self.id = f"action-bar-{uuid.uuid4()}"

    @staticmethod
    def _button(action: Mapping[str, Any]) -> str:
        style = action.get("style", "secondary")
        values: Dict[str, Any] = {
            "type": "submit" if action.get("type") == "submit" else "button",
            "class": classes("button", f"button-{style}", action.get("class")),
            "disabled": bool(action.get("disabled", False)),
        }
        values.update(action.get("attrs") or {})
        icon = tag("span", "", {"class": f"dashicons dashicons-{esc(action['icon'])}"}) if action.get("icon") else ""
        return tag("button", icon + esc(action.get("text", "")), values)

    def render(self) -> str:
        if not self.actions:
            return ""
        css = classes(self.css_class, f"align-{self.align}" if self.align != "stretch" else "")
        return tag("div", "".join(self._button(a) for a in self.actions), {"id": self.id, "class": css})
