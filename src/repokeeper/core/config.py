"""Configuration for repokeeper.

Configuration is a nested mapping read with dotted keys, e.g.::

    repokeeper:
      repository:
        paginate:
          per_page: 25
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

PER_PAGE_KEY = "repokeeper.repository.paginate.per_page"
DEFAULT_PER_PAGE = 15
CONFIG_FILENAME = "repokeeper.yaml"


@dataclass
class Config:
    """Dotted-key view over a nested dict."""

    values: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dotted key, or ``default`` if any segment is missing."""
        node: Any = self.values
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a value by dotted key, creating intermediate mappings."""
        parts = key.split(".")
        node = self.values
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value

    @classmethod
    def from_yaml(cls, path: Path | str) -> Config:
        """Load configuration from a YAML file.

        Raises:
            ValueError: If the document is not a mapping
        """
        with open(path) as f:
            data = yaml.safe_load(f)

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return cls(values=data)

    @classmethod
    def from_env(cls, base_path: Path | None = None) -> Config:
        """Create config from environment variables.

        Resolution order:
        1. REPOKEEPER_CONFIG env var (path to a YAML file)
        2. {base_path}/repokeeper.yaml, if it exists
        3. Empty config (defaults apply)

        REPOKEEPER_PER_PAGE, when set, overrides the page size.
        """
        config_path = os.environ.get("REPOKEEPER_CONFIG")
        if config_path:
            config = cls.from_yaml(config_path)
        elif base_path and (base_path / CONFIG_FILENAME).exists():
            config = cls.from_yaml(base_path / CONFIG_FILENAME)
        else:
            config = cls()

        per_page = os.environ.get("REPOKEEPER_PER_PAGE")
        if per_page:
            config.set(PER_PAGE_KEY, per_page)

        return config


def coerce_per_page(value: Any) -> int:
    """Turn a configured page size into a positive int.

    ``None`` means "not configured". Anything else that is not a positive
    integer is logged and replaced by the default.
    """
    if value is None:
        return DEFAULT_PER_PAGE

    try:
        per_page = int(value)
    except (TypeError, ValueError):
        per_page = 0

    if per_page < 1:
        logger.warning(
            "Invalid page size %r in '%s', using %d",
            value,
            PER_PAGE_KEY,
            DEFAULT_PER_PAGE,
        )
        return DEFAULT_PER_PAGE
    return per_page
