"""Configuration management utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..schemas.config import AppConfig, load_config


class ConfigManager:
    """Simple YAML-backed configuration loader."""

    def __init__(self, base_path: str | Path):
        self._base_path = Path(base_path)

    def load(self, name: str) -> dict[str, Any]:
        """Load a YAML configuration by name without file extension."""
        path = self._base_path / f"{name}.yaml"
        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}

    def load_app_config(self, name: str) -> AppConfig:
        return load_config(self.load(name))

    @classmethod
    def from_file(cls, path: str | Path) -> AppConfig:
        """Validate a single YAML file into an `AppConfig`."""
        with Path(path).open("r", encoding="utf-8") as handle:
            return load_config(yaml.safe_load(handle) or {})


__all__ = ["ConfigManager"]
