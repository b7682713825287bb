"""Environment variable expansion for flyout configuration files.

``${VAR}`` references inside YAML string values are expanded from the
process environment. ``.env`` files are loaded with python-dotenv.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Optional, Union

from dotenv import load_dotenv

__all__ = ["expand_env_vars", "expand_config", "load_env_file"]

# ${VAR_NAME} with an optional ${VAR_NAME:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def load_env_file(
    path: Optional[Union[str, Path]] = None,
    *,
    override: bool = False,
) -> bool:
    """Load environment variables from a .env file.

    Returns True if a file was found and loaded.
    """
    return load_dotenv(dotenv_path=path, override=override)


def expand_env_vars(value: str, *, strict: bool = False) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` references in a string.

    Example:
        >>> os.environ["SHOP_API"] = "https://shop.test"
        >>> expand_env_vars("${SHOP_API}/wp-json")
        'https://shop.test/wp-json'

    Raises:
        KeyError: In strict mode, for an unset variable without a default.
    """

    def replacer(match: re.Match[str]) -> str:
        var_name, default = match.group(1), match.group(2)
        env_value = os.environ.get(var_name)
        if env_value is not None:
            return env_value
        if default is not None:
            return default
        if strict:
            raise KeyError(f"Environment variable not set: {var_name}")
        return match.group(0)

    return ENV_VAR_PATTERN.sub(replacer, value)


def expand_config(value: Any, *, strict: bool = False) -> Any:
    """Recursively expand environment references in a parsed config tree."""
    if isinstance(value, str):
        return expand_env_vars(value, strict=strict)
    if isinstance(value, dict):
        return {k: expand_config(v, strict=strict) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_config(item, strict=strict) for item in value]
    return value
