"""
app/services/mux.py — Mux Video Client + Helpers
=================================================
Lists and retrieves video assets from the Mux Video API and builds the
playback/thumbnail URLs the frontend player consumes.

Credentials: MUX_TOKEN_ID / MUX_TOKEN_SECRET (HTTP basic auth).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import requests

from db.models import now_iso

log = logging.getLogger("portfolio.mux")

MUX_API_URL = "https://api.mux.com"
STREAM_URL = "https://stream.mux.com"
IMAGE_URL = "https://image.mux.com"

FIT_MODES = ("preserve", "crop", "pad")


class MuxError(Exception):
    """Mux API failure or unusable asset."""


class MuxConfigError(MuxError):
    """MUX_TOKEN_ID / MUX_TOKEN_SECRET are not configured."""


@dataclass
class MuxAsset:
    id: str
    status: str
    playback_ids: List[Dict[str, Any]] = field(default_factory=list)
    duration: Optional[float] = None
    aspect_ratio: Optional[str] = None
    tracks: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "MuxAsset":
        return cls(
            id=data["id"],
            status=data.get("status", "preparing"),
            playback_ids=data.get("playback_ids") or [],
            duration=data.get("duration"),
            aspect_ratio=data.get("aspect_ratio"),
            tracks=data.get("tracks") or [],
        )

    @property
    def playback_id(self) -> Optional[str]:
        return self.playback_ids[0]["id"] if self.playback_ids else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status,
            "playback_ids": self.playback_ids,
            "duration": self.duration,
            "aspect_ratio": self.aspect_ratio,
            "tracks": self.tracks,
        }


class MuxClient:
    def __init__(self, token_id: str, token_secret: str,
                 config: Optional[Dict[str, Any]] = None):
        if not token_id or not token_secret:
            raise MuxConfigError(
                "Missing Mux environment variables. Please set MUX_TOKEN_ID and MUX_TOKEN_SECRET"
            )
        config = config or {}
        self.auth = (token_id, token_secret)
        self.api_url = config.get("api_url", MUX_API_URL).rstrip("/")
        self.page_size = int(config.get("page_size", 100))
        self.timeout = config.get("timeout", 15)

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.api_url}{path}"
        try:
            resp = requests.get(url, auth=self.auth, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            log.error(f"Failed to reach Mux API: {e}")
            raise MuxError(f"Mux API request failed: {e}") from e

        if resp.status_code == 404:
            raise MuxError(f"Mux resource not found: {path}")
        if resp.status_code != 200:
            log.error(f"Mux API error: {resp.status_code} - {resp.text[:200]}")
            raise MuxError(f"Mux API error: {resp.status_code}")
        return resp.json().get("data")

    def list_assets(self) -> List[MuxAsset]:
        """All assets, paging until a short page comes back."""
        assets: List[MuxAsset] = []
        page = 1
        while True:
            batch = self._get("/video/v1/assets", {"limit": self.page_size, "page": page}) or []
            assets.extend(MuxAsset.from_api(a) for a in batch)
            if len(batch) < self.page_size:
                break
            page += 1
        log.info(f"Fetched {len(assets)} Mux assets")
        return assets

    def get_asset(self, asset_id: str) -> MuxAsset:
        data = self._get(f"/video/v1/assets/{asset_id}")
        if not data:
            raise MuxError(f"Asset {asset_id} not found in Mux")
        return MuxAsset.from_api(data)


# --- URL + formatting helpers ---

def thumbnail_url(playback_id: str,
                  time: Optional[float] = None,
                  width: Optional[int] = None,
                  height: Optional[int] = None,
                  fit_mode: Optional[str] = None) -> str:
    if fit_mode is not None and fit_mode not in FIT_MODES:
        raise ValueError(f"fit_mode must be one of {FIT_MODES}, got {fit_mode!r}")

    params: Dict[str, Any] = {}
    if time is not None:
        params["time"] = time
    if width:
        params["width"] = width
    if height:
        params["height"] = height
    if fit_mode:
        params["fit_mode"] = fit_mode

    query = urlencode(params)
    return f"{IMAGE_URL}/{playback_id}/thumbnail.jpg" + (f"?{query}" if query else "")


def stream_url(playback_id: str) -> str:
    return f"{STREAM_URL}/{playback_id}.m3u8"


def orientation_from_aspect_ratio(aspect_ratio: Optional[str]) -> Optional[str]:
    """'9:16' → 'vertical', '16:9' → 'horizontal', garbage → None."""
    if not aspect_ratio:
        return None
    parts = aspect_ratio.split(":")
    if len(parts) != 2:
        return None
    try:
        width, height = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not width or not height:
        return None
    return "vertical" if height > width else "horizontal"


def format_duration(seconds: Optional[float]) -> str:
    if not seconds:
        return "0:00"
    minutes = int(seconds // 60)
    remaining = int(seconds % 60)
    return f"{minutes}:{remaining:02d}"


def video_from_asset(asset: MuxAsset) -> Dict[str, Any]:
    """Video record stored in projects.videos."""
    if not asset.playback_id:
        raise MuxError(f"Asset {asset.id} has no playback IDs")
    return {
        "muxAssetId": asset.id,
        "muxPlaybackId": asset.playback_id,
        "thumbnailUrl": thumbnail_url(asset.playback_id, time=1),
        "duration": asset.duration,
        "status": asset.status,
        "aspectRatio": asset.aspect_ratio,
        "createdAt": now_iso(),
    }


def playback_descriptor(playback_id: str) -> Dict[str, str]:
    return {
        "playbackId": playback_id,
        "streamUrl": stream_url(playback_id),
        "thumbnailUrl": thumbnail_url(playback_id, time=1),
        "posterUrl": thumbnail_url(playback_id, time=1, width=1280),
    }


def enrich_video(video: Dict[str, Any]) -> Dict[str, Any]:
    """Stored video record + stream/poster URLs and display duration."""
    playback_id = video.get("muxPlaybackId")
    enriched = dict(video)
    if playback_id:
        enriched.update(playback_descriptor(playback_id))
    enriched["durationLabel"] = format_duration(video.get("duration"))
    enriched["orientation"] = orientation_from_aspect_ratio(video.get("aspectRatio"))
    return enriched
