"""
config_loader.py — Unified configuration loader
================================================
Merges config.tech.yaml (server, security, third-party API settings) and
config.content.yaml (site-owner content such as the homelab section) into a
single dict.

Secrets never live in these files; they are read from the environment by
the modules that need them (see env_secret()).

Precedence: config.content.yaml values overwrite config.tech.yaml values
on key collision.
"""

import os
import yaml
from pathlib import Path


CONFIG_FILES = ("config.tech.yaml", "config.content.yaml")


def load_config(root: Path | str | None = None) -> dict:
    """
    Load and merge config.tech.yaml + config.content.yaml.

    Args:
        root: Project root directory. Defaults to the directory containing
              this file (i.e. the project root).

    Returns:
        Merged configuration dict.
    """
    if root is None:
        root = Path(__file__).parent
    root = Path(root)

    merged: dict = {}
    for name in CONFIG_FILES:
        path = root / name
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}
            merged.update(data)

    return merged


def env_secret(name: str, default: str = "") -> str:
    """Read a secret from the environment, stripping stray whitespace."""
    return os.environ.get(name, default).strip()
