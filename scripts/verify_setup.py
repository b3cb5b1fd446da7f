#!/usr/bin/env python3
"""
scripts/verify_setup.py — Environment + File Checklist
=======================================================
Reports which environment variables are set and whether the core files of
the project exist. Exits 1 if a required item is missing.

Usage:
  python scripts/verify_setup.py
"""

import argparse
import os
import sys
from pathlib import Path

from _term import _bold, _dim, _green, _red, _yellow

ROOT = Path(__file__).resolve().parent.parent

# (name, required, purpose)
ENV_VARS = [
    ("SESSION_SECRET_KEY",   True,  "signs OAuth state; sessions reset on restart without it"),
    ("ADMIN_PASSWORD",       True,  "enables admin login"),
    ("ADMIN_SECRET_KEY",     True,  "signs admin JWTs"),
    ("GITHUB_TOKEN",         False, "GitHub projects, stats, languages, README"),
    ("GITHUB_CLIENT_ID",     False, "GitHub sign-in"),
    ("GITHUB_CLIENT_SECRET", False, "GitHub sign-in"),
    ("GOOGLE_CLIENT_ID",     False, "Google sign-in"),
    ("GOOGLE_CLIENT_SECRET", False, "Google sign-in"),
    ("LINKEDIN_CLIENT_ID",   False, "LinkedIn sign-in"),
    ("LINKEDIN_CLIENT_SECRET", False, "LinkedIn sign-in"),
    ("MUX_TOKEN_ID",         False, "video assets"),
    ("MUX_TOKEN_SECRET",     False, "video assets"),
    ("ENABLE_ADMIN",         False, "set to 'true' to allow photo uploads"),
    ("PORTFOLIO_DB_PATH",    False, "database location (default db/portfolio.db)"),
    ("BLOB_STORAGE_DIR",     False, "photo storage root (default blobs/)"),
]

CORE_FILES = [
    "config.tech.yaml",
    "config.content.yaml",
    "config_loader.py",
    "db/models.py",
    "app/main.py",
    "admin/main.py",
    "app/templates/homelab.html",
]


def check_env() -> bool:
    ok = True
    print(_bold("\n  Environment"))
    for name, required, purpose in ENV_VARS:
        if os.environ.get(name, "").strip():
            mark = _green("✓")
        elif required:
            mark = _red("✗")
            ok = False
        else:
            mark = _yellow("-")
        print(f"    {mark} {name:<24} {_dim(purpose)}")
    return ok


def check_files(root: Path = ROOT) -> bool:
    ok = True
    print(_bold("\n  Core files"))
    for rel in CORE_FILES:
        exists = (root / rel).exists()
        ok = ok and exists
        print(f"    {_green('✓') if exists else _red('✗')} {rel}")
    return ok


def main():
    parser = argparse.ArgumentParser(description="Check environment variables and core files")
    parser.parse_args()

    env_ok = check_env()
    files_ok = check_files()
    print()
    if env_ok and files_ok:
        print(_green("  Setup looks complete\n"))
        return
    print(_red("  Setup incomplete, see the items marked ✗\n"))
    sys.exit(1)


if __name__ == "__main__":
    main()
