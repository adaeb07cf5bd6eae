"""Release notes taken from CHANGELOG.md."""

from __future__ import annotations

import re
from pathlib import Path

SECTION_HEADING = re.compile(r"^## \[?v?")


def extract_first_section(text: str, max_lines: int = 20) -> str:
    """Return the body of the first ``## `` section of a changelog.

    The heading itself is dropped, collection stops at the next ``## ``
    heading or after ``max_lines`` lines, and surrounding whitespace is
    trimmed. Returns an empty string if there is no section.
    """
    body: list[str] = []
    in_section = False
    for line in text.splitlines():
        if SECTION_HEADING.match(line):
            if in_section:
                break
            in_section = True
            continue
        if in_section:
            body.append(line)
            if len(body) >= max_lines:
                break
    return "\n".join(body).strip()


def release_body(version: str, path: Path, max_lines: int = 20) -> str:
    """Release notes for ``version``, falling back to a generic line.

    A missing or unreadable changelog is not an error: the release still
    goes out, just with the fallback text.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        text = ""
    return extract_first_section(text, max_lines) or f"Release v{version}"
