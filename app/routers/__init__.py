"""
app/routers — FastAPI Routers Module
======================================

Purpose:
  Modular router definitions, one per public feature area.

Routers:
  - blog:       published posts, tags, metadata/content split, TOC
  - signatures: guest book (session required for writes)
  - auth:       OAuth sign-in, session cookie, sign-out
  - projects:   GitHub + database projects, live repo stats, README
  - videos:     Mux playback descriptors
  - homelab:    homelab JSON + server-rendered pages
  - photos:     photo gallery listing
"""
