from __future__ import annotations

import re

from markupsafe import Markup, escape

_URL_RE = re.compile(r"(https?://[^\s]+|www\.[^\s]+)", re.IGNORECASE)


def linkify(text: str | None) -> Markup:
    """Escape wishlist text and turn bare URLs into links that open in a new tab."""
    parts = []
    for i, part in enumerate(_URL_RE.split(text or "")):
        # re.split puts captured URLs at odd indexes.
        if i % 2 == 0:
            parts.append(escape(part))
            continue
        href = part if part.lower().startswith("http") else f"https://{part}"
        parts.append(
            Markup('<a href="{}" target="_blank" rel="noopener noreferrer">{}</a>').format(href, part)
        )
    return Markup("").join(parts)
