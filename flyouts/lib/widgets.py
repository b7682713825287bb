"""Built-in component renderers.

Each renderer takes the field's ``FieldSpec`` (with resolved component
data already merged into its attributes) and returns markup. Components
that post data name their inputs after ``field.name`` so the submission
decodes back into the structure the matching sanitizer expects.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from flyouts.lib.fields import FieldSpec
from flyouts.lib.html import classes, esc, money, tag
from flyouts.lib.sanitize import DEFAULT_CURRENCIES

__all__ = ["BUILTIN_WIDGETS"]

BILLING_PRESETS = {
    "daily": (1, "day"),
    "weekly": (1, "week"),
    "monthly": (1, "month"),
    "quarterly": (3, "month"),
    "semiannual": (6, "month"),
    "yearly": (1, "year"),
}

ALERT_TYPES = ("info", "success", "warning", "error")


def _items(field: FieldSpec, attr: str = "items") -> List[Any]:
    value = field.get(attr) or []
    if isinstance(value, Mapping):
        return list(value.values())
    return list(value)


def _wrap(field: FieldSpec, component: str, body: str, **extra: Any) -> str:
    return tag(
        "div",
        body,
        {"class": classes("wp-flyout-component", f"wp-flyout-{component.replace('_', '-')}", field.get("class"))},
        **{"data-component": component, "data-field": field.name, **extra},
    )


def _label(field: FieldSpec) -> str:
    return tag("label", esc(field.label), {"class": "wp-flyout-component-label"}) if field.label else ""


def _icon(name: Any) -> str:
    return tag("span", "", {"class": f"dashicons dashicons-{esc(name)}"}) if name else ""


# Display ---------------------------------------------------------------------


def render_header(field: FieldSpec) -> str:
    image = field.get("image")
    media = ""
    if image:
        media = tag("img", values={"src": image, "alt": field.get("title", ""), "class": f"shape-{field.get('image_shape', 'square')}"})
    elif field.get("icon"):
        media = _icon(field.get("icon"))

    badges = ""
    for badge in _items(field, "badges"):
        if not isinstance(badge, Mapping):
            badge = {"text": badge}
        badges += tag("span", esc(badge.get("text", "")), {"class": f"badge badge-{esc(badge.get('type', 'default'))}"})
    meta = "".join(
        tag("li", f"{esc(m.get('label', ''))}: {esc(m.get('value', ''))}" if isinstance(m, Mapping) else esc(m))
        for m in _items(field, "meta")
    )

    body = tag("div", media, {"class": "header-media"}) if media else ""
    body += tag("h2", esc(field.get("title", "")), {"class": "header-title"})
    if field.get("subtitle"):
        body += tag("p", esc(field.get("subtitle")), {"class": "header-subtitle"})
    if badges:
        body += tag("div", badges, {"class": "header-badges"})
    if meta:
        body += tag("ul", meta, {"class": "header-meta"})
    if field.get("description"):
        body += tag("p", esc(field.get("description")), {"class": "header-description"})
    if field.get("editable"):
        body += tag("input", values={"type": "hidden", "name": f"{field.name}_attachment_id", "value": field.get("attachment_id", 0)})
    return _wrap(field, "header", body)


def render_alert(field: FieldSpec) -> str:
    kind = field.get("alert_type") or field.get("style") or "info"
    kind = kind if kind in ALERT_TYPES else "info"
    body = tag("strong", esc(field.get("title"))) if field.get("title") else ""
    body += tag("p", esc(field.get("message", "")))
    return tag("div", body, {"class": f"wp-flyout-alert notice notice-{kind}", "role": "alert"})


def render_empty_state(field: FieldSpec) -> str:
    body = _icon(field.get("icon", "info"))
    body += tag("h3", esc(field.get("title", "")))
    if field.get("description"):
        body += tag("p", esc(field.get("description")))
    if field.get("action_text"):
        body += tag("button", esc(field.get("action_text")), {"type": "button", "class": "button"})
    return _wrap(field, "empty_state", body)


def render_articles(field: FieldSpec) -> str:
    cards = ""
    for item in _items(field):
        if not isinstance(item, Mapping):
            continue
        title = esc(item.get("title", ""))
        if item.get("url"):
            title = tag("a", title, {"href": item["url"], "target": "_blank", "rel": "noopener"})
        card = tag("img", values={"src": item["image"], "alt": ""}) if item.get("image") else ""
        card += tag("h4", title)
        if item.get("excerpt"):
            card += tag("p", esc(item["excerpt"]))
        if item.get("date"):
            card += tag("time", esc(item["date"]))
        cards += tag("article", card, {"class": "article-card"})
    return _wrap(field, "articles", _label(field) + cards)


def render_timeline(field: FieldSpec) -> str:
    entries = ""
    for item in _items(field):
        if not isinstance(item, Mapping):
            continue
        entry = tag("span", "", {"class": f"timeline-marker marker-{esc(item.get('type', 'default'))}"})
        entry += tag("div", esc(item.get("title", "")), {"class": "timeline-title"})
        if item.get("description"):
            entry += tag("div", esc(item["description"]), {"class": "timeline-description"})
        if item.get("date"):
            entry += tag("time", esc(item["date"]))
        entries += tag("li", entry, {"class": "timeline-item"})
    return _wrap(field, "timeline", _label(field) + tag("ul", entries, {"class": "timeline-list"}))


def render_stats(field: FieldSpec) -> str:
    cards = ""
    for item in _items(field):
        if not isinstance(item, Mapping):
            continue
        card = tag("div", esc(item.get("label", "")), {"class": "stat-label"})
        card += tag("div", esc(item.get("value", "")), {"class": "stat-value"})
        if item.get("change"):
            trend = item.get("trend", "neutral")
            card += tag("div", esc(item["change"]), {"class": f"stat-change trend-{esc(trend)}"})
        cards += tag("div", card, {"class": "stat-card"})
    return _wrap(field, "stats", cards, **{"data-columns": field.get("columns", 3)})


# Interactive ----------------------------------------------------------------


def _action_button(button: Mapping[str, Any], css: str) -> str:
    style = button.get("style", "secondary")
    return tag(
        "button",
        _icon(button.get("icon")) + esc(button.get("text", "")),
        {
            "type": "button",
            "class": classes(css, "button", "button-primary" if style == "primary" else "", button.get("class")),
            "data-action": button.get("action") or button.get("key"),
            "data-confirm": button.get("confirm"),
            "disabled": bool(button.get("disabled", False)),
        },
    )


def render_action_buttons(field: FieldSpec) -> str:
    buttons = "".join(
        _action_button(b, "wp-flyout-action-button") for b in _items(field, "buttons") if isinstance(b, Mapping)
    )
    return _wrap(field, "action_buttons", buttons)


def render_action_menu(field: FieldSpec) -> str:
    entries = ""
    for item in _items(field):
        if not isinstance(item, Mapping):
            continue
        if item.get("type") == "separator":
            entries += tag("li", "", {"class": "menu-separator", "role": "separator"})
            continue
        entries += tag("li", _action_button(item, "wp-flyout-menu-item"))
    trigger = tag(
        "button",
        _icon(field.get("icon", "ellipsis")) + esc(field.get("button_text", "")),
        {"type": "button", "class": "button action-menu-trigger", "aria-haspopup": "true"},
    )
    return _wrap(field, "action_menu", trigger + tag("ul", entries, {"class": "action-menu-items"}))


def render_notes(field: FieldSpec) -> str:
    notes = ""
    for note in _items(field):
        if not isinstance(note, Mapping):
            continue
        body = tag("div", esc(note.get("content", "")), {"class": "note-content"})
        byline = " ".join(esc(note[k]) for k in ("author", "date") if note.get(k))
        if byline:
            body += tag("div", byline, {"class": "note-meta"})
        if field.get("deletable", True):
            body += tag("button", "&times;", {"type": "button", "class": "note-delete", "data-action": "delete_note"})
        notes += tag("li", body, {"class": "note", "data-note-id": note.get("id")})

    form = ""
    if field.get("editable", True):
        form = tag("textarea", "", {"class": "note-input", "placeholder": field.get("placeholder", "Add a note...")})
        form += tag("button", "Add Note", {"type": "button", "class": "button", "data-action": "add_note"})
        form = tag("div", form, {"class": "notes-form"})

    return _wrap(field, "notes", _label(field) + tag("ul", notes, {"class": "notes-list"}) + form)


def render_files(field: FieldSpec) -> str:
    rows = ""
    for index, item in enumerate(_items(field)):
        if not isinstance(item, Mapping):
            continue
        prefix = f"{field.name}[{index}]"
        row = tag("input", values={"type": "text", "name": f"{prefix}[name]", "value": item.get("name", ""), "placeholder": "File name"})
        row += tag("input", values={"type": "url", "name": f"{prefix}[url]", "value": item.get("url", ""), "placeholder": "https://"})
        row += tag("input", values={"type": "hidden", "name": f"{prefix}[attachment_id]", "value": item.get("attachment_id", 0)})
        row += tag("input", values={"type": "hidden", "name": f"{prefix}[lookup_key]", "value": item.get("lookup_key", "")})
        rows += tag("li", row, {"class": "file-row", "data-index": index})
    add = tag("button", "Add File", {"type": "button", "class": "button file-add"})
    return _wrap(field, "files", _label(field) + tag("ul", rows, {"class": "file-list"}) + add)


def render_feature_list(field: FieldSpec) -> str:
    rows = ""
    for item in _items(field):
        text = item.get("value", item.get("text", "")) if isinstance(item, Mapping) else item
        rows += tag("li", tag("input", values={"type": "text", "name": f"{field.name}[]", "value": text}))
    add = tag("button", "Add Feature", {"type": "button", "class": "button feature-add"})
    return _wrap(field, "feature_list", _label(field) + tag("ul", rows, {"class": "feature-list"}) + add)


def render_key_value_list(field: FieldSpec) -> str:
    rows = ""
    for index, item in enumerate(_items(field)):
        if not isinstance(item, Mapping):
            continue
        prefix = f"{field.name}[{index}]"
        row = tag("input", values={"type": "text", "name": f"{prefix}[key]", "value": item.get("key", ""), "placeholder": field.get("key_placeholder", "Key")})
        row += tag("input", values={"type": "text", "name": f"{prefix}[value]", "value": item.get("value", ""), "placeholder": field.get("value_placeholder", "Value")})
        rows += tag("li", row, {"class": "key-value-row"})
    add = tag("button", "Add Row", {"type": "button", "class": "button key-value-add"})
    return _wrap(field, "key_value_list", _label(field) + tag("ul", rows, {"class": "key-value-list"}) + add)


def render_line_items(field: FieldSpec) -> str:
    currency = field.get("currency", "USD")
    rows = ""
    total = 0
    for index, item in enumerate(_items(field)):
        if not isinstance(item, Mapping):
            continue
        prefix = f"{field.name}[{index}]"
        quantity = int(item.get("quantity", 1) or 1)
        price = int(item.get("price", 0) or 0)
        total += quantity * price
        cells = tag("td", esc(item.get("name", "")) + tag("input", values={"type": "hidden", "name": f"{prefix}[id]", "value": item.get("id", 0)})
                    + tag("input", values={"type": "hidden", "name": f"{prefix}[name]", "value": item.get("name", "")}))
        cells += tag("td", tag("input", values={"type": "number", "min": 1, "name": f"{prefix}[quantity]", "value": quantity}))
        cells += tag("td", money(price, currency) + tag("input", values={"type": "hidden", "name": f"{prefix}[price]", "value": price}))
        rows += tag("tr", cells, {"class": "line-item"})
    footer = tag("tr", tag("th", "Total", {"colspan": 2}) + tag("td", money(total, currency)), {"class": "line-items-total"})
    table = tag("table", tag("tbody", rows) + tag("tfoot", footer), {"class": "line-items-table"})
    return _wrap(field, "line_items", _label(field) + table, **{"data-currency": currency})


def render_gallery(field: FieldSpec) -> str:
    thumbs = ""
    for item in _items(field):
        attachment_id = item.get("attachment_id", item.get("id", 0)) if isinstance(item, Mapping) else item
        url = item.get("url", "") if isinstance(item, Mapping) else ""
        thumb = tag("img", values={"src": url, "alt": ""}) if url else ""
        thumb += tag("input", values={"type": "hidden", "name": f"{field.name}[]", "value": attachment_id})
        thumbs += tag("li", thumb, {"class": "gallery-item", "data-id": attachment_id})
    add = tag("button", "Add Images", {"type": "button", "class": "button gallery-add"})
    return _wrap(field, "gallery", _label(field) + tag("ul", thumbs, {"class": "gallery-grid"}) + add)


# Form -----------------------------------------------------------------------


def render_card_choice(field: FieldSpec) -> str:
    multiple = field.is_multiple
    selected = field.get("value")
    selected_values = [str(v) for v in selected] if isinstance(selected, (list, tuple)) else [str(selected)]
    cards = ""
    for value, option in (field.options or {}).items():
        label = option.get("title", value) if isinstance(option, Mapping) else option
        control = tag(
            "input",
            values={
                "type": "checkbox" if multiple else "radio",
                "name": f"{field.name}[]" if multiple else field.name,
                "value": value,
                "checked": str(value) in selected_values,
            },
        )
        text = tag("span", esc(label), {"class": "card-title"})
        if isinstance(option, Mapping) and option.get("description"):
            text += tag("span", esc(option["description"]), {"class": "card-description"})
        cards += tag("label", control + text, {"class": "card-choice"})
    return _wrap(field, "card_choice", _label(field) + tag("div", cards, {"class": "card-choices"}))


def render_image(field: FieldSpec) -> str:
    attachment_id = field.get("value") or 0
    preview = tag("img", values={"src": field.get("url"), "alt": ""}) if field.get("url") else ""
    body = tag("div", preview, {"class": "image-preview"})
    body += tag("input", values={"type": "hidden", "name": field.name, "value": attachment_id})
    body += tag("button", "Select Image", {"type": "button", "class": "button image-select"})
    return _wrap(field, "image", _label(field) + body)


def _currency_select(field: FieldSpec, name: str, current: Any) -> str:
    currencies = field.get("currencies") or {code: code for code in DEFAULT_CURRENCIES}
    if not isinstance(currencies, Mapping):
        currencies = {code: code for code in currencies}
    options = "".join(
        tag("option", esc(label), {"value": code, "selected": str(code).upper() == str(current or "USD").upper()})
        for code, label in currencies.items()
    )
    return tag("select", options, {"name": name})


def render_price_config(field: FieldSpec) -> str:
    name = field.name
    currency = field.get("currency", "USD")
    interval = field.get("recurring_interval")
    count = int(field.get("recurring_interval_count", 1) or 1)

    body = tag("input", values={"type": "text", "name": f"{name}[amount]", "value": money(field.get("amount", 0)).replace(",", ""), "inputmode": "decimal"})
    compare_at = field.get("compare_at_amount")
    body += tag("input", values={
        "type": "text",
        "name": f"{name}[compare_at_amount]",
        "value": money(compare_at).replace(",", "") if compare_at else "",
        "placeholder": "Compare at",
    })
    body += _currency_select(field, f"{name}[currency]", currency)

    preset = next((key for key, (c, i) in BILLING_PRESETS.items() if i == interval and c == count), "custom" if interval else "one_time")
    presets = tag("option", "One time", {"value": "one_time", "selected": preset == "one_time"})
    presets += "".join(tag("option", esc(key.title()), {"value": key, "selected": preset == key}) for key in BILLING_PRESETS)
    body += tag("select", presets, {"class": "price-config-preset"})
    body += tag("input", values={"type": "number", "min": 1, "name": f"{name}[recurring_interval_count]", "value": count})
    intervals = tag("option", "", {"value": ""})
    intervals += "".join(tag("option", i, {"value": i, "selected": i == interval}) for i in ("day", "week", "month", "year"))
    body += tag("select", intervals, {"name": f"{name}[recurring_interval]"})
    return _wrap(field, "price_config", _label(field) + body, **{"data-preset": preset})


def render_discount_config(field: FieldSpec) -> str:
    name = field.name
    rate_type = field.get("rate_type", "percent")
    amount = field.get("amount", 0)
    shown = amount if rate_type == "percent" else money(amount).replace(",", "")

    rate_types = "".join(
        tag("option", label, {"value": value, "selected": value == rate_type})
        for value, label in (("percent", "Percentage"), ("fixed", "Fixed amount"))
    )
    body = tag("select", rate_types, {"name": f"{name}[rate_type]"})
    body += tag("input", values={"type": "text", "name": f"{name}[amount]", "value": shown, "inputmode": "decimal"})
    body += _currency_select(field, f"{name}[currency]", field.get("currency"))

    duration = field.get("duration", "once")
    durations = "".join(
        tag("option", label, {"value": value, "selected": value == duration})
        for value, label in (("once", "Once"), ("forever", "Forever"), ("repeating", "Multiple months"))
    )
    body += tag("select", durations, {"name": f"{name}[duration]"})
    body += tag("input", values={"type": "number", "min": 1, "max": 36, "name": f"{name}[duration_in_months]", "value": field.get("duration_in_months") or ""})
    body += tag("input", values={"type": "number", "min": 1, "name": f"{name}[max_redemptions]", "value": field.get("max_redemptions") or ""})
    return _wrap(field, "discount_config", _label(field) + body)


# Layout and data ------------------------------------------------------------


def render_accordion(field: FieldSpec) -> str:
    sections = ""
    for index, item in enumerate(_items(field)):
        if not isinstance(item, Mapping):
            continue
        is_open = bool(item.get("open", index == 0 and field.get("first_open", False)))
        sections += tag(
            "details",
            tag("summary", esc(item.get("title", ""))) + tag("div", esc(item.get("content", "")), {"class": "accordion-content"}),
            {"class": "accordion-section", "open": is_open},
        )
    return _wrap(field, "accordion", sections)


def render_data_table(field: FieldSpec) -> str:
    columns: Dict[str, Any] = field.get("columns") or {}
    if not isinstance(columns, Mapping):
        columns = {c: c for c in columns}
    head = "".join(tag("th", esc(label)) for label in columns.values())
    rows = ""
    for row in _items(field, "data"):
        if isinstance(row, Mapping):
            rows += tag("tr", "".join(tag("td", esc(row.get(key, ""))) for key in columns))
    if not rows:
        rows = tag("tr", tag("td", esc(field.get("empty_text", "No data available.")), {"colspan": max(1, len(columns))}))
    table = tag("table", tag("thead", tag("tr", head)) + tag("tbody", rows), {"class": "widefat striped"})
    return _wrap(field, "data_table", _label(field) + table)


def render_info_grid(field: FieldSpec) -> str:
    cells = ""
    for item in _items(field):
        if not isinstance(item, Mapping):
            continue
        cells += tag("div", tag("dt", esc(item.get("label", ""))) + tag("dd", esc(item.get("value", "")) or "&mdash;"), {"class": "info-grid-item"})
    return _wrap(field, "info_grid", tag("dl", cells, {"class": "info-grid"}), **{"data-columns": field.get("columns", 2)})


def render_payment_method(field: FieldSpec) -> str:
    brand = field.get("payment_brand", "")
    body = tag("span", esc(brand.title() if brand else field.get("payment_method", "")), {"class": f"payment-brand brand-{esc(brand or 'generic')}"})
    if field.get("payment_last4"):
        body += tag("span", f"&bull;&bull;&bull;&bull; {esc(field.get('payment_last4'))}", {"class": "payment-last4"})
    if field.get("stripe_risk_level"):
        level = field.get("stripe_risk_level")
        score = field.get("stripe_risk_score")
        risk = esc(level.title()) + (f" ({esc(score)})" if score is not None else "")
        body += tag("span", risk, {"class": f"payment-risk risk-{esc(level)}"})
    return _wrap(field, "payment_method", body)


def render_price_summary(field: FieldSpec) -> str:
    currency = field.get("currency", "USD")
    rows = ""
    for item in _items(field):
        if not isinstance(item, Mapping):
            continue
        quantity = int(item.get("quantity", 1) or 1)
        label = esc(item.get("label", item.get("name", "")))
        if quantity > 1:
            label += f" &times; {quantity}"
        rows += tag("tr", tag("td", label) + tag("td", money(item.get("amount", item.get("price", 0)), currency)))
    for key, label in (("subtotal", "Subtotal"), ("discount", "Discount"), ("tax", "Tax")):
        if field.get(key) is not None:
            amount = -abs(int(field.get(key))) if key == "discount" else field.get(key)
            rows += tag("tr", tag("td", label) + tag("td", money(amount, currency)), {"class": f"summary-{key}"})
    rows += tag("tr", tag("th", "Total") + tag("th", money(field.get("total", 0), currency)), {"class": "summary-total"})
    return _wrap(field, "price_summary", tag("table", rows, {"class": "price-summary-table"}))


BUILTIN_WIDGETS = {
    "header": render_header,
    "alert": render_alert,
    "empty_state": render_empty_state,
    "articles": render_articles,
    "timeline": render_timeline,
    "stats": render_stats,
    "action_buttons": render_action_buttons,
    "action_menu": render_action_menu,
    "notes": render_notes,
    "files": render_files,
    "feature_list": render_feature_list,
    "key_value_list": render_key_value_list,
    "line_items": render_line_items,
    "gallery": render_gallery,
    "card_choice": render_card_choice,
    "image": render_image,
    "price_config": render_price_config,
    "discount_config": render_discount_config,
    "accordion": render_accordion,
    "data_table": render_data_table,
    "info_grid": render_info_grid,
    "payment_method": render_payment_method,
    "price_summary": render_price_summary,
}
