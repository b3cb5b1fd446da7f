"""
app/services/markdown_render.py — Markdown → HTML
==================================================
Used for project READMEs and for blog tables of contents.
"""

import re
from typing import Dict, List

import markdown
from bs4 import BeautifulSoup

EXTENSIONS = ["fenced_code", "tables", "toc"]


def render_markdown(text: str) -> str:
    return markdown.markdown(text or "", extensions=EXTENSIONS)


def _heading_id(text: str) -> str:
    slug = re.sub(r"[^\w\s-]", "", text.lower()).strip()
    return re.sub(r"[\s_-]+", "-", slug)


def extract_headings(text: str, max_level: int = 4) -> List[Dict[str, object]]:
    """[{id, text, level}] for every h1..h{max_level} heading, in document order."""
    soup = BeautifulSoup(render_markdown(text), "html.parser")
    tags = [f"h{n}" for n in range(1, max_level + 1)]
    headings = []
    for node in soup.find_all(tags):
        label = node.get_text(strip=True)
        headings.append({
            "id": node.get("id") or _heading_id(label),
            "text": label,
            "level": int(node.name[1]),
        })
    return headings
