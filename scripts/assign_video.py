#!/usr/bin/env python3
"""
scripts/assign_video.py — Attach a Mux Asset to a Project
==========================================================

Usage:
  python scripts/assign_video.py ASSET_ID PROJECT_SLUG ORIENTATION
  python scripts/assign_video.py abc123 my-cool-project vertical

ORIENTATION is 'vertical' or 'horizontal'; it is written to the project only
for videography projects. Exits 0 when the asset is already on the project.
"""

import argparse
import logging
import sys
from pathlib import Path

from _term import _bold, _dim, _green, _yellow

from app.services.mux import (
    MuxClient, MuxError, format_duration, stream_url, video_from_asset,
)
from config_loader import env_secret, load_config
from db.models import DB_PATH, add_project_video, find_project_by_asset, get_db, get_project, init_db

logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(message)s')
log = logging.getLogger("portfolio.assign_video")

ROOT = Path(__file__).resolve().parent.parent
ORIENTATIONS = ("vertical", "horizontal")


def assign(asset_id: str, project_slug: str, orientation: str,
           client: MuxClient = None, db_path: Path = DB_PATH) -> bool:
    """Returns True when the video was added, False when it was already there."""
    if orientation not in ORIENTATIONS:
        raise ValueError('Orientation must be either "vertical" or "horizontal"')

    if client is None:
        config = load_config(root=ROOT)
        client = MuxClient(env_secret("MUX_TOKEN_ID"), env_secret("MUX_TOKEN_SECRET"), config.get("mux", {}))

    log.info(f"Fetching asset {asset_id} from Mux...")
    asset = client.get_asset(asset_id)
    if asset.status != "ready":
        log.warning(f'Asset status is "{asset.status}", it may not be ready for playback yet')
    video = video_from_asset(asset)

    init_db(db_path)
    conn = get_db(db_path)
    try:
        project = get_project(conn, project_slug)
        if not project:
            raise LookupError(f'Project with slug "{project_slug}" not found')

        if any(v.get("muxAssetId") == asset_id for v in project["videos"]):
            print(_yellow("  This asset is already assigned to this project"))
            return False

        other = find_project_by_asset(conn, asset_id)
        if other:
            log.warning(f"Asset is already assigned to project: {other['title']} ({other['slug']}), continuing")

        add_project_video(conn, project_slug, video, orientation=orientation)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    print()
    print(_green("  Video assigned to project"))
    print(f"    Project       {project['title']}")
    print(f"    Asset ID      {asset_id}")
    print(f"    Playback ID   {video['muxPlaybackId']}")
    print(f"    Duration      {format_duration(asset.duration)}")
    print(f"    Aspect ratio  {asset.aspect_ratio or 'Unknown'}")
    print(f"    Orientation   {orientation}")
    print(f"    Thumbnail     {video['thumbnailUrl']}")
    print(f"    Stream        {stream_url(video['muxPlaybackId'])}")
    print()
    return True


def main():
    parser = argparse.ArgumentParser(description="Assign a Mux asset to a project")
    parser.add_argument("asset_id", help="Mux asset id")
    parser.add_argument("project_slug", help="Target project slug")
    parser.add_argument("orientation", help="vertical | horizontal")
    parser.add_argument("--db", type=Path, default=DB_PATH, help="Database path")
    args = parser.parse_args()

    print(_bold("  Assigning video to project"))
    print(_dim(f"    {args.asset_id} → {args.project_slug} ({args.orientation})"))
    try:
        assign(args.asset_id, args.project_slug, args.orientation, db_path=args.db)
    except (ValueError, LookupError, MuxError) as e:
        log.error(f"Error assigning video: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
