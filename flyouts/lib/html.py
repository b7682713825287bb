"""HTML building helpers shared by the renderer, widgets and panel markup."""

from __future__ import annotations

import html
import json
from typing import Any, Iterable, Mapping, Optional, Union

__all__ = ["esc", "attrs", "tag", "classes", "data_attrs", "money"]


def esc(value: Any) -> str:
    """Escape a value for text or attribute context."""
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def classes(*names: Optional[Union[str, Iterable[str]]]) -> str:
    """Join class names, skipping blanks and duplicates."""
    seen: list[str] = []
    for name in names:
        if not name:
            continue
        parts = name.split() if isinstance(name, str) else [p for n in name for p in str(n).split()]
        for part in parts:
            if part not in seen:
                seen.append(part)
    return " ".join(seen)


def attrs(values: Optional[Mapping[str, Any]] = None, **extra: Any) -> str:
    """Render ``key="value"`` pairs.

    ``None`` and ``False`` are skipped, ``True`` renders a bare flag, and
    lists or dicts are JSON encoded (for ``data-*`` payloads).
    """
    merged = {**(values or {}), **extra}
    parts = []
    for key, value in merged.items():
        # class_= and for_= avoid Python keywords
        key = key[:-1] if key.endswith("_") else key
        if value is None or value is False:
            continue
        if value is True:
            parts.append(esc(key))
            continue
        if isinstance(value, (list, dict)):
            value = json.dumps(value, separators=(",", ":"), default=str)
        parts.append(f'{esc(key)}="{esc(value)}"')
    return (" " + " ".join(parts)) if parts else ""


def tag(name: str, content: str = "", values: Optional[Mapping[str, Any]] = None, **extra: Any) -> str:
    """Render ``<name attrs>content</name>``; void elements get no close tag."""
    opening = f"<{name}{attrs(values, **extra)}>"
    if name in ("input", "img", "br", "hr"):
        return opening
    return f"{opening}{content}</{name}>"


def data_attrs(data: Mapping[str, Any]) -> dict:
    """Prefix mapping keys with ``data-``."""
    return {f"data-{key}": value for key, value in data.items()}


def money(cents: Any, currency: Optional[str] = None) -> str:
    """Format integer cents for display (``1999`` -> ``19.99``)."""
    try:
        amount = int(cents or 0)
    except (TypeError, ValueError):
        amount = 0
    sign = "-" if amount < 0 else ""
    amount = abs(amount)
    if currency and currency.upper() == "JPY":
        text = f"{sign}{amount:,}"
    else:
        text = f"{sign}{amount // 100:,}.{amount % 100:02d}"
    return f"{text} {currency.upper()}" if currency else text
