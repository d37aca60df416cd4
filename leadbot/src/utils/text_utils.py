"""
LeadBot - Text Utilities
==========================
Helper functions for text cleaning and page-URL extraction.

These utilities are consumed primarily by the ``IngestionPipeline``
and should remain stateless and side-effect-free.
"""

from __future__ import annotations

import re
import unicodedata
from pathlib import Path


# ── Non-printable character pattern ────────────────────────────────────
# Control characters (C0/C1) except \n, \r, \t, plus BOM, zero-width
# characters and soft hyphens left behind by HTML-to-text exports.
_NON_PRINTABLE_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\ufeff\u200b\u200c\u200d\u200e\u200f\u00ad\u2060\ufffe]")

# "URL: https://…" on the first non-blank line of a page export
_URL_HEADER_RE = re.compile(r"^\s*url\s*:\s*(\S+)\s*$", re.IGNORECASE)


def clean_text(text: str) -> str:
    """
    Sanitise raw page text for embedding.

    Steps:
        1. Unicode NFC normalisation.
        2. Strip non-printable / zero-width characters.
        3. Collapse runs of horizontal whitespace into a single space,
           *preserving* newlines.
        4. Strip leading / trailing whitespace from every line.
        5. Collapse 3+ consecutive blank lines to 2.
    """
    text = unicodedata.normalize("NFC", text)
    text = _NON_PRINTABLE_RE.sub("", text)
    text = re.sub(r"[^\S\n]+", " ", text)
    lines = [line.strip() for line in text.splitlines()]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def split_url_header(text: str, filename: str, site_domain: str) -> tuple[str, str]:
    """
    Return ``(url, body)`` for a page export.

    A page may start with a ``URL: <url>`` line; otherwise the URL is
    derived from the filename stem under *site_domain*.

    Examples::

        "URL: https://x.com/about\\nWe are…", "about.txt"  → ("https://x.com/about", "We are…")
        "We are…", "pricing.md", "x.com"                 → ("https://x.com/pricing", "We are…")
        "We are…", "index.txt", "x.com"                  → ("https://x.com/", "We are…")
    """
    lines = text.splitlines()
    for i, line in enumerate(lines):
        if not line.strip():
            continue
        match = _URL_HEADER_RE.match(line)
        if match:
            return match.group(1), "\n".join(lines[i + 1 :]).strip()
        break

    stem = Path(filename).stem.strip().lower().replace(" ", "-")
    path = "" if stem in ("", "index", "home") else stem
    return f"https://{site_domain}/{path}", text.strip()
