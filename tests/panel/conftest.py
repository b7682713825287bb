"""Shared fixtures for panel model tests."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

import pytest

from flyouts.lib.fields import FieldSpec
from flyouts.lib.normalize import normalize_fields
from flyouts.panel import PanelState


@pytest.fixture
def build_panel(components) -> Callable[..., PanelState]:
    """Normalize declarations and open a panel over them."""

    def build(declarations: Mapping[str, Any], values: Optional[Dict[str, Any]] = None) -> PanelState:
        specs: List[FieldSpec] = normalize_fields(declarations, components=components)
        return PanelState.from_fields(specs, values)

    return build


@pytest.fixture
def product_panel(build_panel, product_fields, product) -> PanelState:
    """The edit-product panel opened on the fixed-discount product."""
    return build_panel(product_fields, product)
