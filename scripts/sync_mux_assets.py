#!/usr/bin/env python3
"""
scripts/sync_mux_assets.py — List Unassigned Mux Assets
========================================================
Compares the assets in the Mux account with the videos already attached to
projects and prints the unassigned ones, plus the projects they can go to.

Usage:
  MUX_TOKEN_ID=... MUX_TOKEN_SECRET=... python scripts/sync_mux_assets.py
"""

import argparse
import logging
import sys
from pathlib import Path

from _term import _bold, _cyan, _dim, _green

from app.services.mux import MuxClient, MuxError, format_duration, orientation_from_aspect_ratio
from config_loader import env_secret, load_config
from db.models import DB_PATH, get_db, init_db, list_assigned_asset_ids, list_projects

logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(message)s')
log = logging.getLogger("portfolio.mux_sync")

ROOT = Path(__file__).resolve().parent.parent


def sync(db_path: Path = DB_PATH) -> list:
    """Print and return the unassigned assets."""
    config = load_config(root=ROOT)
    client = MuxClient(env_secret("MUX_TOKEN_ID"), env_secret("MUX_TOKEN_SECRET"), config.get("mux", {}))

    assets = client.list_assets()
    if not assets:
        log.info("No assets found in your Mux account")
        return []

    init_db(db_path)
    conn = get_db(db_path)
    try:
        assigned = list_assigned_asset_ids(conn)
        projects = list_projects(conn)
    finally:
        conn.close()

    unassigned = [a for a in assets if a.id not in assigned]
    print()
    print(_bold("  Current status"))
    print(f"    Total Mux assets   {len(assets)}")
    print(f"    Already assigned   {len(assets) - len(unassigned)}")
    print(f"    Unassigned         {len(unassigned)}")
    print()

    if not unassigned:
        print(_green("  All assets are already assigned to projects\n"))
        return []

    print(_bold("  Unassigned assets"))
    for i, asset in enumerate(unassigned, 1):
        orientation = orientation_from_aspect_ratio(asset.aspect_ratio)
        print(f"  {i}. {_cyan(asset.id)}")
        print(f"     Status        {asset.status}")
        print(f"     Duration      {format_duration(asset.duration)}")
        print(f"     Aspect ratio  {asset.aspect_ratio or 'Unknown'}")
        print(f"     Orientation   {orientation or 'Unknown'}")
        if asset.playback_id:
            print(f"     Playback ID   {asset.playback_id}")
        print(_dim(f"     python scripts/assign_video.py {asset.id} PROJECT_SLUG {orientation or 'horizontal'}"))
    print()

    print(_bold("  Available projects"))
    for project in projects:
        print(f"    {project['slug']} - {project['title']} ({project['type']})")
    print()
    return unassigned


def main():
    parser = argparse.ArgumentParser(description="List Mux assets not yet assigned to a project")
    parser.add_argument("--db", type=Path, default=DB_PATH, help="Database path")
    args = parser.parse_args()

    try:
        sync(args.db)
    except MuxError as e:
        log.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
