"""
app/routers/videos.py — Mux Playback Descriptor
================================================

Endpoints:
  GET /api/videos/{playback_id}   → stream + thumbnail + poster URLs

Asset listing and assignment to projects are admin operations
(admin/routers/admin.py).
"""

import re

from fastapi import APIRouter, Request

from app.dependencies.shared import err, limiter, rate
from app.services.mux import playback_descriptor

router = APIRouter(prefix="/api/videos", tags=["Videos"])

_PLAYBACK_ID = re.compile(r"^[A-Za-z0-9]+$")


@router.get("/{playback_id}", summary="Playback URLs for a Mux playback id")
@limiter.limit(rate("default"))
async def video_playback(request: Request, playback_id: str):
    if not _PLAYBACK_ID.match(playback_id):
        return err("Invalid playback id", 400)
    return playback_descriptor(playback_id)
