"""Sanitizer registry and built-in sanitizers.

Submitted form data only ever reaches a save callback through
``SanitizerRegistry.sanitize_form``, which walks the flyout's declared
fields (default-deny) and runs each value through the sanitizer for its
type. Sanitizers are total: structurally invalid input is recovered to
the type's empty value instead of raising.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional
from urllib.parse import urlsplit

from flyouts.lib.errors import ConfigurationError
from flyouts.lib.fields import FieldSpec, FieldType, flatten_fields

if TYPE_CHECKING:
    from flyouts.lib.components import ComponentRegistry

__all__ = [
    "SanitizerFn",
    "SanitizerRegistry",
    "DEFAULT_CURRENCIES",
    "NON_SUBMITTING_TYPES",
    "sanitize_text_field",
    "sanitize_textarea_field",
    "sanitize_key",
    "sanitize_email",
    "sanitize_url",
    "sanitize_hex_color",
    "to_cents",
]

logger = logging.getLogger(__name__)

SanitizerFn = Callable[[Any, Optional[FieldSpec]], Any]

DEFAULT_CURRENCIES = ("USD", "EUR", "GBP", "CAD", "AUD", "JPY")
RECURRING_INTERVALS = ("day", "week", "month", "year")
DISCOUNT_RATE_TYPES = ("percent", "fixed")
DISCOUNT_DURATIONS = ("once", "forever", "repeating")

# Field types that never post a value
NON_SUBMITTING_TYPES = frozenset({FieldType.SEPARATOR.value, FieldType.GROUP.value})

_RECOVERABLE = (TypeError, ValueError, KeyError, AttributeError, OverflowError, InvalidOperation)

_SCRIPT_STYLE = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.IGNORECASE | re.DOTALL)
_TAGS = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")
_INLINE_WHITESPACE = re.compile(r"[ \t]+")
_KEY_INVALID = re.compile(r"[^a-z0-9_\-]")
_EMAIL = re.compile(r"^[A-Za-z0-9._%+\-']+@[A-Za-z0-9\-]+(\.[A-Za-z0-9\-]+)*\.[A-Za-z]{2,}$")
_HEX_COLOR = re.compile(r"^#([A-Fa-f0-9]{3}){1,2}$")
_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_NUMERIC_NOISE = re.compile(r"[^0-9.\-]")

_ALLOWED_URL_SCHEMES = ("http", "https", "mailto", "ftp")
_FALSY_TOGGLES = frozenset({"", "0"})

# Integers parsed from form input never exceed this many digits
_MAX_INT_DIGITS = 18


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, (list, dict, tuple, set)):
        raise TypeError(f"Expected a scalar, got {type(value).__name__}")
    return str(value)


def _strip_tags(text: str) -> str:
    return _TAGS.sub("", _SCRIPT_STYLE.sub("", text))


def sanitize_text_field(value: Any) -> str:
    """Strip tags, collapse whitespace (including newlines), trim."""
    return _WHITESPACE.sub(" ", _strip_tags(_to_text(value))).strip()


def sanitize_textarea_field(value: Any) -> str:
    """Strip tags and trim, keeping line breaks."""
    text = _strip_tags(_to_text(value)).replace("\r\n", "\n").replace("\r", "\n")
    return "\n".join(_INLINE_WHITESPACE.sub(" ", line).rstrip() for line in text.split("\n")).strip()


def sanitize_key(value: Any) -> str:
    """Lowercase and keep only ``a-z``, ``0-9``, ``_`` and ``-``."""
    return _KEY_INVALID.sub("", _to_text(value).lower())


def sanitize_email(value: Any) -> str:
    text = sanitize_text_field(value)
    return text if _EMAIL.match(text) else ""


def sanitize_url(value: Any) -> str:
    """Return a URL with an allowed scheme, or "" when unsafe or malformed."""
    text = _WHITESPACE.sub("", _strip_tags(_to_text(value)))
    if not text:
        return ""
    if text[0] in "/#?":
        return text
    # Anything with a colon already names a scheme and must pass the allow-list
    if ":" not in text:
        text = f"http://{text}"
    parts = urlsplit(text)
    if parts.scheme.lower() not in _ALLOWED_URL_SCHEMES:
        return ""
    if parts.scheme.lower() != "mailto" and not parts.netloc:
        return ""
    return text


def sanitize_hex_color(value: Any) -> str:
    text = _to_text(value).strip()
    return text if _HEX_COLOR.match(text) else ""


def _parse_int(value: Any) -> Optional[int]:
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number.adjusted() >= _MAX_INT_DIGITS:
        return None
    return int(number)


def _absint(value: Any) -> int:
    if value is None or value == "":
        return 0
    number = _parse_int(value)
    return abs(number) if number is not None else 0


def _positive_int_or_none(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    number = _parse_int(value)
    return number if number is not None and number > 0 else None


def to_cents(value: Any) -> int:
    """Convert a display amount (``"19.99"``) to integer cents, half-up."""
    text = _NUMERIC_NOISE.sub("", _to_text(value))
    if text in ("", "-", "."):
        return 0
    amount = Decimal(text) * 100
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _allowed_currencies(spec: Optional[FieldSpec]) -> List[str]:
    configured = spec.get("currencies") if spec is not None else None
    if not configured:
        return list(DEFAULT_CURRENCIES)
    codes = configured.keys() if isinstance(configured, Mapping) else configured
    return [str(code).upper() for code in codes]


def _currency(value: Any, spec: Optional[FieldSpec]) -> Optional[str]:
    code = sanitize_text_field(value).upper()
    return code if code in _allowed_currencies(spec) else None


def _is_money(spec: Optional[FieldSpec]) -> bool:
    if spec is None:
        return False
    return spec.get("subtype") == "money" or bool(spec.get("money", False))


def _as_rows(value: Any) -> List[Any]:
    """Accept a list or an index-keyed mapping of rows."""
    if value is None or value == "":
        return []
    if isinstance(value, Mapping):
        return list(value.values())
    if isinstance(value, (list, tuple)):
        return list(value)
    raise TypeError(f"Expected a list of rows, got {type(value).__name__}")


# ---------------------------------------------------------------------------
# Field sanitizers
# ---------------------------------------------------------------------------


def _sanitize_text(value: Any, spec: Optional[FieldSpec] = None) -> Any:
    if isinstance(value, (list, tuple)):
        return [sanitize_text_field(item) for item in value]
    return sanitize_text_field(value)


def _sanitize_textarea(value: Any, spec: Optional[FieldSpec] = None) -> str:
    return sanitize_textarea_field(value)


def _sanitize_email(value: Any, spec: Optional[FieldSpec] = None) -> str:
    return sanitize_email(value)


def _sanitize_url(value: Any, spec: Optional[FieldSpec] = None) -> str:
    return sanitize_url(value)


def _sanitize_password(value: Any, spec: Optional[FieldSpec] = None) -> str:
    return _to_text(value).strip()


def _sanitize_number(value: Any, spec: Optional[FieldSpec] = None) -> Any:
    """Money -> cents, decimal step -> float, otherwise int."""
    money = _is_money(spec)
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None if money else 0

    if money:
        try:
            return to_cents(value)
        except InvalidOperation:
            return 0

    text = _to_text(value).strip()
    step = str(spec.get("step", "")) if spec is not None else ""
    wants_float = ("." in step or step == "any") if step else "." in text
    try:
        number = float(text)
    except ValueError:
        return 0
    if number != number or number in (float("inf"), float("-inf")):
        return 0
    return number if wants_float else int(number)


def _sanitize_date(value: Any, spec: Optional[FieldSpec] = None) -> str:
    text = _to_text(value).strip()
    if not _DATE.match(text):
        return ""
    try:
        return datetime.strptime(text, "%Y-%m-%d").strftime("%Y-%m-%d")
    except ValueError:
        return ""


def _sanitize_toggle(value: Any, spec: Optional[FieldSpec] = None) -> str:
    if value is None or value is False:
        return "0"
    if isinstance(value, (list, tuple)):
        return "1" if value else "0"
    return "0" if str(value).strip().lower() in _FALSY_TOGGLES else "1"


def _sanitize_color(value: Any, spec: Optional[FieldSpec] = None) -> str:
    return sanitize_hex_color(value)


# ---------------------------------------------------------------------------
# Component sanitizers
# ---------------------------------------------------------------------------


def _sanitize_tags(value: Any, spec: Optional[FieldSpec] = None) -> List[str]:
    items = [value] if isinstance(value, str) else _as_rows(value)
    cleaned = (sanitize_text_field(item) for item in items)
    return [item for item in cleaned if item]


def _sanitize_card_choice(value: Any, spec: Optional[FieldSpec] = None) -> Any:
    return _sanitize_text(value, spec)


def _sanitize_feature_list(value: Any, spec: Optional[FieldSpec] = None) -> List[str]:
    features: List[str] = []
    for item in _as_rows(value):
        if isinstance(item, Mapping):
            item = item.get("value", item.get("text", ""))
        text = sanitize_text_field(item)
        if text:
            features.append(text)
    return features


def _sanitize_key_value_list(value: Any, spec: Optional[FieldSpec] = None) -> List[Dict[str, str]]:
    rows: List[Dict[str, str]] = []
    for item in _as_rows(value):
        if not isinstance(item, Mapping):
            continue
        key = sanitize_key(item.get("key", ""))
        if not key:
            continue
        rows.append({"key": key, "value": sanitize_text_field(item.get("value", ""))})
    return rows


def _sanitize_line_items(value: Any, spec: Optional[FieldSpec] = None) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for item in _as_rows(value):
        if not isinstance(item, Mapping):
            continue
        item_id = _absint(item.get("id", 0))
        if item_id <= 0:
            continue
        items.append(
            {
                "id": item_id,
                "name": sanitize_text_field(item.get("name", "")),
                "quantity": max(1, _absint(item.get("quantity", 1))),
                "price": _absint(item.get("price", 0)),
            }
        )
    return items


def _sanitize_files(value: Any, spec: Optional[FieldSpec] = None) -> List[Dict[str, Any]]:
    files: List[Dict[str, Any]] = []
    for item in _as_rows(value):
        if not isinstance(item, Mapping):
            continue
        url = sanitize_url(item.get("url", ""))
        attachment_id = _absint(item.get("attachment_id", 0))
        if not url and attachment_id <= 0:
            continue
        files.append(
            {
                "name": sanitize_text_field(item.get("name", "")),
                "url": url,
                "attachment_id": attachment_id,
                "lookup_key": sanitize_key(item.get("lookup_key", "")),
            }
        )
    return files


def _sanitize_gallery(value: Any, spec: Optional[FieldSpec] = None) -> List[int]:
    ids: List[int] = []
    items = value.split(",") if isinstance(value, str) else _as_rows(value)
    for item in items:
        if isinstance(item, Mapping):
            item = item.get("attachment_id", item.get("id", 0))
        attachment_id = _absint(item)
        if attachment_id > 0:
            ids.append(attachment_id)
    return ids


def _sanitize_image(value: Any, spec: Optional[FieldSpec] = None) -> int:
    if isinstance(value, Mapping):
        value = value.get("attachment_id", value.get("id", 0))
    return _absint(value)


def _sanitize_price_config(value: Any, spec: Optional[FieldSpec] = None) -> Dict[str, Any]:
    data: Mapping[str, Any] = value if isinstance(value, Mapping) else {}
    interval = sanitize_key(data.get("recurring_interval", ""))
    interval = interval if interval in RECURRING_INTERVALS else None
    compare_at = data.get("compare_at_amount")

    return {
        "amount": to_cents(data.get("amount", 0)),
        "compare_at_amount": to_cents(compare_at) if compare_at not in (None, "") else None,
        "currency": _currency(data.get("currency", ""), spec),
        "recurring_interval": interval,
        "recurring_interval_count": (
            max(1, _absint(data.get("recurring_interval_count", 1) or 1)) if interval else None
        ),
    }


def _sanitize_discount_config(value: Any, spec: Optional[FieldSpec] = None) -> Dict[str, Any]:
    data: Mapping[str, Any] = value if isinstance(value, Mapping) else {}

    rate_type = sanitize_key(data.get("rate_type", ""))
    if rate_type not in DISCOUNT_RATE_TYPES:
        rate_type = "percent"

    raw_amount = data.get("amount", 0)
    if rate_type == "percent":
        text = _NUMERIC_NOISE.sub("", _to_text(raw_amount)) or "0"
        amount: Any = min(100.0, max(0.0, float(text)))
    else:
        amount = max(0, to_cents(raw_amount))

    duration = sanitize_key(data.get("duration", ""))
    if duration not in DISCOUNT_DURATIONS:
        duration = "once"

    months: Optional[int] = None
    if duration == "repeating":
        months = min(36, max(1, _absint(data.get("duration_in_months", 1) or 1)))

    return {
        "rate_type": rate_type,
        "amount": amount,
        "currency": _currency(data.get("currency", ""), spec) if rate_type == "fixed" else None,
        "duration": duration,
        "duration_in_months": months,
        "max_redemptions": _positive_int_or_none(data.get("max_redemptions")),
    }


@dataclass(frozen=True)
class SanitizerEntry:
    """A registered sanitizer and the value it recovers to on bad input."""

    fn: SanitizerFn
    empty: Any = ""

    def empty_value(self) -> Any:
        # Fresh containers so callers never share a mutable default
        if isinstance(self.empty, list):
            return []
        if isinstance(self.empty, dict):
            return {}
        return self.empty


_BUILTINS: Dict[str, SanitizerEntry] = {
    "text": SanitizerEntry(_sanitize_text),
    "textarea": SanitizerEntry(_sanitize_textarea),
    "email": SanitizerEntry(_sanitize_email),
    "url": SanitizerEntry(_sanitize_url),
    "tel": SanitizerEntry(_sanitize_text),
    "password": SanitizerEntry(_sanitize_password),
    "number": SanitizerEntry(_sanitize_number, empty=0),
    "date": SanitizerEntry(_sanitize_date),
    "select": SanitizerEntry(_sanitize_text),
    "ajax_select": SanitizerEntry(_sanitize_text),
    "radio": SanitizerEntry(_sanitize_text),
    "toggle": SanitizerEntry(_sanitize_toggle, empty="0"),
    "color": SanitizerEntry(_sanitize_color),
    "hidden": SanitizerEntry(_sanitize_text),
    "tags": SanitizerEntry(_sanitize_tags, empty=[]),
    "card_choice": SanitizerEntry(_sanitize_card_choice),
    "feature_list": SanitizerEntry(_sanitize_feature_list, empty=[]),
    "key_value_list": SanitizerEntry(_sanitize_key_value_list, empty=[]),
    "line_items": SanitizerEntry(_sanitize_line_items, empty=[]),
    "files": SanitizerEntry(_sanitize_files, empty=[]),
    "gallery": SanitizerEntry(_sanitize_gallery, empty=[]),
    "image": SanitizerEntry(_sanitize_image, empty=0),
    "price_config": SanitizerEntry(_sanitize_price_config, empty={}),
    "discount_config": SanitizerEntry(_sanitize_discount_config, empty={}),
}


class SanitizerRegistry:
    """Type name -> sanitizer mapping shared by field and component types.

    Example:
        registry = SanitizerRegistry.with_defaults()
        registry.register("sku", lambda raw, field: sanitize_key(raw))
        clean = registry.sanitize_form(request_form, fields)
    """

    def __init__(self) -> None:
        self._entries: Dict[str, SanitizerEntry] = {}

    @classmethod
    def with_defaults(cls) -> "SanitizerRegistry":
        registry = cls()
        registry._entries.update(_BUILTINS)
        return registry

    def register(self, type_name: str, fn: SanitizerFn, *, empty: Any = "") -> None:
        """Register (or replace) the sanitizer for a type."""
        if not type_name:
            raise ConfigurationError("Sanitizer type name cannot be empty")
        if not callable(fn):
            raise ConfigurationError("Sanitizer must be callable", field=type_name, value=fn)
        self._entries[type_name] = SanitizerEntry(fn, empty)
        logger.debug("Registered sanitizer for '%s'", type_name)

    def unregister(self, type_name: str) -> bool:
        return self._entries.pop(type_name, None) is not None

    def has(self, type_name: str) -> bool:
        return type_name in self._entries

    def types(self) -> List[str]:
        return sorted(self._entries)

    def _fallback(self, raw: Any) -> Any:
        if isinstance(raw, (list, tuple)):
            return [sanitize_text_field(item) for item in raw if not isinstance(item, (list, dict))]
        if isinstance(raw, Mapping):
            return {}
        return sanitize_text_field(raw)

    def sanitize(self, type_name: str, raw: Any, field: Optional[FieldSpec] = None) -> Any:
        """Sanitize one value by type, recovering from malformed input."""
        entry = self._entries.get(type_name)
        try:
            if field is not None and field.sanitizer is not None:
                return field.sanitizer(raw, field)
            if entry is None:
                return self._fallback(raw)
            return entry.fn(raw, field)
        except _RECOVERABLE as exc:
            logger.debug(
                "Sanitizer for '%s' rejected %r (%s); using empty value",
                type_name,
                raw,
                exc,
            )
            return entry.empty_value() if entry is not None else ""

    def sanitize_field(self, field: FieldSpec, raw: Any) -> Any:
        return self.sanitize(field.type, raw, field)

    def sanitize_form(
        self,
        raw_form: Mapping[str, Any],
        fields: Iterable[FieldSpec],
        *,
        components: Optional["ComponentRegistry"] = None,
    ) -> Dict[str, Any]:
        """Sanitize submitted data against the declared fields only.

        Undeclared keys are dropped. Declared fields missing from the
        submission are sanitized from ``None``. Display-only types are
        skipped. Output is keyed by field name.
        """
        sanitized: Dict[str, Any] = {}
        dropped = set(raw_form)

        for spec in flatten_fields(fields):
            if not self._submits(spec, components):
                continue
            dropped.discard(spec.name)
            sanitized[spec.name] = self.sanitize_field(spec, raw_form.get(spec.name))

        if dropped:
            logger.debug("Dropped undeclared form keys: %s", ", ".join(sorted(map(str, dropped))))
        return sanitized

    def _submits(self, spec: FieldSpec, components: Optional["ComponentRegistry"]) -> bool:
        if spec.type in NON_SUBMITTING_TYPES:
            return False
        if spec.sanitizer is not None or self.has(spec.type):
            return True
        if components is not None and components.is_component(spec.type):
            return components.get(spec.type).submits
        return True
