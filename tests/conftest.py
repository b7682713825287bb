"""Pytest configuration and fixtures."""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, List

import pytest

from flyouts.lib.components import ComponentRegistry
from flyouts.lib.manager import Manager, ManagerRegistry
from flyouts.lib.search import ContentRecord, InMemoryContentBackend
from flyouts.settings import FlyoutSettings


@pytest.fixture
def registry() -> ManagerRegistry:
    """A fresh registry so managers never leak between tests."""
    return ManagerRegistry()


@pytest.fixture
def settings() -> FlyoutSettings:
    return FlyoutSettings()


@pytest.fixture
def components() -> ComponentRegistry:
    return ComponentRegistry.with_defaults()


@pytest.fixture
def content_backend() -> InMemoryContentBackend:
    """Posts, terms and users for the post/taxonomy/user shortcuts."""
    return InMemoryContentBackend(
        [
            ContentRecord(3, "Blue Mug", kind="post", subtype="product"),
            ContentRecord(7, "Red Mug", kind="post", subtype="product"),
            ContentRecord(9, "Green Teapot", kind="post", subtype="product", status="draft"),
            ContentRecord(11, "Shipping Update", kind="post", subtype="post"),
            ContentRecord(21, "Kitchen", kind="term", subtype="product_cat"),
            ContentRecord(22, "Garden", kind="term", subtype="product_cat"),
            ContentRecord(31, "Ada Admin", kind="user", roles=["administrator"], search_text="ada@shop.test"),
            ContentRecord(32, "Sam Shopper", kind="user", roles=["customer"], search_text="sam@shop.test"),
        ]
    )


@pytest.fixture
def manager(registry: ManagerRegistry, settings: FlyoutSettings, content_backend) -> Manager:
    return Manager("shop", registry=registry, settings=settings, search_backend=content_backend)


@pytest.fixture
def product() -> Dict[str, Any]:
    return {
        "id": 42,
        "name": "Blue Mug",
        "sku": "MUG-BLUE",
        "discount_type": "fixed",
        "discount_percent": "",
        "price": {"amount": 1999, "currency": "USD"},
        "features": ["Dishwasher safe", "350 ml"],
        "active": "1",
    }


@pytest.fixture
def product_fields() -> Dict[str, Any]:
    """Field declarations for an edit-product flyout."""
    return {
        "name": {"label": "Name", "required": True, "tab": "general"},
        "sku": {"label": "SKU", "tab": "general"},
        "discount_type": {
            "type": "select",
            "label": "Discount",
            "options": {"none": "None", "fixed": "Fixed", "percentage": "Percentage"},
            "tab": "pricing",
        },
        "discount_percent": {
            "type": "number",
            "label": "Percent off",
            "depends": {"discount_type": "percentage"},
            "tab": "pricing",
        },
        "price": {"type": "price_config", "label": "Price", "tab": "pricing"},
        "features": {"type": "feature_list", "label": "Features", "tab": "general"},
        "active": {"type": "toggle", "label": "Active", "tab": "general"},
    }


@pytest.fixture
def saved() -> List[Any]:
    """Collects (id, data) pairs passed to save callbacks."""
    return []


@pytest.fixture
def restore_root_logging():
    """Undo root logger changes made by setup_logging()."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


CALLBACKS_SOURCE = '''
RECORDS = {42: {"id": 42, "name": "Blue Mug", "sku": "MUG-BLUE"}}
SAVED = []


def load_product(item_id):
    return RECORDS.get(int(item_id), False)


def save_product(item_id, data):
    SAVED.append((item_id, data))
    return True


def refund(payload):
    return {"refunded": True}


def find_colors(term, ids=None):
    colors = {1: "Red", 2: "Blue"}
    if ids:
        return {i: colors[i] for i in ids if i in colors}
    return {i: c for i, c in colors.items() if term.lower() in c.lower()}


NOT_CALLABLE = 42
'''

SHOP_YAML = """\
manager: shop
content:
  - {id: 3, label: Blue Mug, kind: post, subtype: product}
  - {id: 7, label: Red Mug, kind: post, subtype: product}
flyouts:
  edit_product:
    title: Edit Product
    size: large
    load: flyout_test_callbacks:load_product
    save: flyout_test_callbacks:save_product
    fields:
      name: {label: Name, required: true}
      sku: {label: SKU}
      related: {type: post, post_type: product, multiple: true}
      color: {type: ajax_select, callback: "flyout_test_callbacks:find_colors"}
      order_actions:
        type: action_buttons
        buttons:
          - {text: Refund, action: refund, callback: "flyout_test_callbacks:refund"}
  view_product:
    title: View Product
    fields:
      - {name: note, type: alert, message: Read only}
"""


@pytest.fixture
def callbacks_module(tmp_path, monkeypatch):
    """Importable ``flyout_test_callbacks`` module for YAML callback strings."""
    (tmp_path / "flyout_test_callbacks.py").write_text(CALLBACKS_SOURCE)
    monkeypatch.syspath_prepend(str(tmp_path))
    monkeypatch.delitem(sys.modules, "flyout_test_callbacks", raising=False)
    return tmp_path


@pytest.fixture
def shop_yaml(callbacks_module):
    """A complete shop.yaml next to its callbacks module."""
    path = callbacks_module / "shop.yaml"
    path.write_text(SHOP_YAML)
    return path
