#!/usr/bin/env python3
"""
scripts/create_test_project.py — Seed a Videography Project
============================================================
Creates `my-video-portfolio` so videos can be assigned to it. Safe to run
more than once.

Usage:
  python scripts/create_test_project.py [--db PATH]
"""

import argparse
import logging
from pathlib import Path

from _term import _bold, _dim, _green

from db.models import DB_PATH, create_project, get_db, get_project, init_db

logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(message)s')
log = logging.getLogger("portfolio.seed")

TEST_PROJECT = {
    "title": "My Video Portfolio",
    "slug": "my-video-portfolio",
    "description": "Collection of my vertical videos showcasing creative work and storytelling",
    "type": "videography",
    "images": [],
    "videos": [],
    "technologies": ["Video Production", "Creative Direction", "Post-Production", "Storytelling"],
    "links": {},
    "featured": True,
    "order": 1,
    "orientation": "vertical",
}


def create_test_project(db_path: Path = DB_PATH) -> bool:
    """True when the project was created, False when it already existed."""
    init_db(db_path)
    conn = get_db(db_path)
    try:
        existing = get_project(conn, TEST_PROJECT["slug"])
        if existing:
            log.info(f"Project \"{existing['slug']}\" already exists ({existing['type']})")
            return False
        create_project(conn, TEST_PROJECT)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    print()
    print(_green("  Project created"))
    print(f"    Title   {TEST_PROJECT['title']}")
    print(f"    Slug    {_bold(TEST_PROJECT['slug'])}")
    print(f"    Type    {TEST_PROJECT['type']}")
    print(_dim(f"    Next: python scripts/assign_video.py ASSET_ID {TEST_PROJECT['slug']} vertical"))
    print()
    return True


def main():
    parser = argparse.ArgumentParser(description="Create the my-video-portfolio test project")
    parser.add_argument("--db", type=Path, default=DB_PATH, help="Database path")
    args = parser.parse_args()
    create_test_project(args.db)


if __name__ == "__main__":
    main()
