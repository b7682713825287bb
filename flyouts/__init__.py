"""Declarative slide-out admin panels for WordPress.

Flyouts are declared as plain configuration (fields, tabs, callbacks);
this package normalizes the declarations, resolves field values from
records, evaluates conditional visibility, sanitizes submissions and
renders the panel markup.

Usage:
    python -m flyouts list shop.yaml
    python -m flyouts render shop.yaml edit_product --id 42
"""

__version__ = "0.1.0"
