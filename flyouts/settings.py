"""Project settings loader.

Reads project-wide flyout defaults from .flyouts.yaml in the project root,
so teams can change panel defaults without touching every flyout
definition.

Example .flyouts.yaml:
    flyouts:
      default_size: large            # Size used when a flyout sets none
      default_capability: edit_posts # Capability checked by triggers/handlers
      rest_namespace: wp-flyout/v1   # Namespace of the search/load endpoints
      debug: false
      log_json: false
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

SETTINGS_FILE = ".flyouts.yaml"


@dataclass
class FlyoutSettings:
    """Project-level flyout settings."""

    # Panel size used when a flyout config does not set one
    default_size: str = "medium"

    # Capability required to open/act on a flyout when none is configured
    default_capability: str = "manage_options"

    # REST namespace of the flyout endpoints
    rest_namespace: str = "wp-flyout/v1"

    debug: bool = False
    log_json: bool = False

    @property
    def search_url(self) -> str:
        """Endpoint ajax_select fields search against."""
        return f"/wp-json/{self.rest_namespace.strip('/')}/search"

    @classmethod
    def load(cls, project_root: Path | None = None) -> "FlyoutSettings":
        """Load settings from .flyouts.yaml in project root.

        Args:
            project_root: Project root directory. Defaults to cwd.

        Returns:
            FlyoutSettings with values from config file or defaults.
        """
        root = project_root or Path.cwd()
        config_path = root / SETTINGS_FILE

        if not config_path.exists():
            return cls()

        try:
            with open(config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Ignoring malformed %s: %s", config_path, exc)
            return cls()

        section = config.get("flyouts") if isinstance(config, dict) else None
        section = section or {}
        if not isinstance(section, dict):
            logger.warning("Ignoring %s: 'flyouts' must be a mapping", config_path)
            return cls()

        return cls(
            default_size=str(section.get("default_size", cls.default_size)),
            default_capability=str(section.get("default_capability", cls.default_capability)),
            rest_namespace=str(section.get("rest_namespace", cls.rest_namespace)),
            debug=bool(section.get("debug", cls.debug)),
            log_json=bool(section.get("log_json", cls.log_json)),
        )


# Global settings instance (loaded on first access)
_settings: FlyoutSettings | None = None


def get_settings(reload: bool = False) -> FlyoutSettings:
    """Get the global flyout settings.

    Args:
        reload: Force reload from config file.

    Returns:
        FlyoutSettings instance.
    """
    global _settings
    if _settings is None or reload:
        _settings = FlyoutSettings.load()
    return _settings
