"""
app/services/homelab.py — Homelab Documentation Data
=====================================================
Hardware specs and technology write-ups for the static /homelab section.
Content lives in the `homelab` block of config.content.yaml.
"""

from functools import lru_cache
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from config_loader import load_config

TECHNOLOGY_FIELDS = (
    "slug", "name", "kind", "shortDescription", "whatItIs", "whyChosen",
    "howItFits", "keyDetails", "links", "iconKey", "brandColor",
)


@lru_cache(maxsize=1)
def _default_block() -> Dict[str, Any]:
    return load_config().get("homelab", {}) or {}


def _block(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if config is None:
        return _default_block()
    return config.get("homelab", {}) or {}


def _technology(raw: Dict[str, Any]) -> Dict[str, Any]:
    tech = {key: raw.get(key) for key in TECHNOLOGY_FIELDS}
    tech["keyDetails"] = tech["keyDetails"] or []
    tech["links"] = tech["links"] or []
    return tech


def get_homelab_technologies(config: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    return [_technology(t) for t in _block(config).get("technologies", [])]


def get_homelab_technology_by_slug(slug: str,
                                   config: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    return next((t for t in get_homelab_technologies(config) if t["slug"] == slug), None)


def get_homelab_hardware(config: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
    hw = _block(config).get("hardware", {}) or {}
    return {key: hw.get(key, "") for key in ("cpu", "memory", "storage", "motherboard")}


def default_og_image(slug: Optional[str] = None) -> str:
    if slug:
        return f"/api/og?type=homelab&slug={quote(slug, safe='')}"
    return "/api/og?type=homelab"
