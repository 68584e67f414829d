"""Frontmatter parser/builder shared by every .agents document.

Documents are a ``---``-delimited block of flat ``key: value`` lines followed
by a free-text markdown body. Values are always strings; callers coerce them
(see ``dotagents.utils.coerce``). Building sorts keys so that writing the
same logical document twice yields identical bytes.
"""

from __future__ import annotations

import re

DELIMITER = "---"

_QUOTES = ("'", '"')


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
        return value[1:-1]
    return value


def parse_frontmatter(text: str) -> tuple[dict[str, str], str]:
    """Parse frontmatter + markdown body.

    Returns (metadata_dict, body_content). If the opening or closing
    delimiter is missing, returns ({}, original_text). Never raises.
    """
    normalized = text.replace("\r\n", "\n")
    lines = normalized.split("\n")
    if not lines or lines[0].rstrip() != DELIMITER:
        return {}, text

    closing = None
    for index in range(1, len(lines)):
        if lines[index].strip() == DELIMITER:
            closing = index
            break
    if closing is None:
        return {}, text

    metadata: dict[str, str] = {}
    for line in lines[1:closing]:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, sep, value = stripped.partition(":")
        key = key.strip()
        if not sep or not key:
            continue
        metadata[key] = _unquote(value.strip())

    body = "\n".join(lines[closing + 1 :])
    return metadata, body.strip()


def _format_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return re.sub(r"[\r\n]+", " ", str(value)).strip()


def build_frontmatter(metadata: dict, body: str) -> str:
    """Build a frontmatter document from metadata dict and body text.

    Keys are emitted in sorted order and multi-line values are collapsed to
    one line. Returns the complete document string with ``---`` delimiters.
    """
    lines = [DELIMITER]
    for key in sorted(metadata):
        lines.append(f"{key}: {_format_value(metadata[key])}")
    lines.append(DELIMITER)
    lines.append("")
    lines.append((body or "").strip())
    lines.append("")
    return "\n".join(lines)
