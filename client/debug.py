"""
client/debug.py — Cache stats rendering for terminals.
"""

from typing import Dict


def format_cache_stats(stats: Dict[str, int]) -> str:
    active = stats.get("activeMetadataRequests", 0) + stats.get("activeContentRequests", 0)
    rows = [
        ("Metadata", stats.get("metadataCount", 0)),
        ("Content", stats.get("contentCount", 0)),
        ("Active Requests", active),
        ("Pages", stats.get("pageCount", 0)),
        ("Active Preloads", stats.get("activePreloads", 0)),
    ]
    width = max(len(label) for label, _ in rows) + 1
    lines = ["Cache Debug"]
    lines += [f"  {label + ':':<{width}} {value:>5}" for label, value in rows]
    return "\n".join(lines)
