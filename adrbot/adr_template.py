"""Helpers that turn the ADR template into a new ADR file."""

import re
from typing import Any, Iterable, Optional, Tuple

import yaml
from markdown_it import MarkdownIt

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\n(.*?)^---[ \t]*(?:\n|\Z)", re.DOTALL | re.MULTILINE)
_NUMBERED_RE = re.compile(r"^(\d{4})-")

_body_parser = MarkdownIt("commonmark")


def split_frontmatter(text: str) -> Tuple[Optional[str], str]:
    """Split markdown into (raw frontmatter or None, body)."""
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return None, text
    return match.group(1), text[match.end():]


def set_title(text: str, title: str) -> str:
    """Replace the text of the first level 1 heading with ``title``."""
    raw, body = split_frontmatter(text)
    lines = body.split("\n")

    for token in _body_parser.parse(body):
        if token.type == "heading_open" and token.tag == "h1" and token.level == 0:
            line = token.map[0] if token.map else 0
            if token.markup == "#":
                lines[line] = f"# {title}"
            else:
                # setext heading: the text sits above the === underline
                lines[line] = title
            break

    new_body = "\n".join(lines)
    if raw is None:
        return new_body
    return f"---\n{raw}---\n{new_body}"


def set_frontmatter(text: str, **values: Any) -> str:
    """Set keys in the YAML frontmatter, keeping the other keys in order.

    A frontmatter block is added when the document has none.
    """
    raw, body = split_frontmatter(text)
    frontmatter = yaml.safe_load(raw) if raw and raw.strip() else None
    if not isinstance(frontmatter, dict):
        frontmatter = {}
    frontmatter.update(values)

    dumped = yaml.safe_dump(
        frontmatter, default_flow_style=False, sort_keys=False, allow_unicode=True
    )
    return f"---\n{dumped}---\n{body}"


def next_adr_filename(existing_names: Iterable[str], branch: str) -> str:
    """Pick the next four-digit ADR file name for ``branch``.

    Names without a ``nnnn-`` prefix (README.md, the template) are ignored.
    """
    numbers = [
        int(match.group(1))
        for match in (_NUMBERED_RE.match(name) for name in existing_names)
        if match
    ]
    next_number = max(numbers, default=0) + 1
    return f"{next_number:04d}-{branch}.md"
