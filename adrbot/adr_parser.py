"""Convert tokenized ADR markdown into an ``AdrRecord``.

The ADR layout this expects:

1. an optional YAML frontmatter block first,
2. a level 1 heading holding the title,
3. the body indexed by level 2 headings.

For example::

    ---
    impact: high
    ---
    # This is a big decision

    ## Problem Description
    This was a really hard problem to work on

    ## Accepted Solution
    We finally figured it out

parses to ``AdrRecord(title="This is a big decision", metadata={"impact": "high"},
sections={"Problem Description": "This was a really hard problem to work on",
"Accepted Solution": "We finally figured it out"})``.
"""

import logging
from typing import Any, Dict, Optional, Sequence

import yaml

from .markdown import Block, parse_markdown
from .models import MISSING, AdrRecord

logger = logging.getLogger(__name__)


class MetadataParseError(ValueError):
    """Raised when an ADR's frontmatter is not valid YAML."""

    def __init__(self, message: str, file_name: Optional[str] = None):
        super().__init__(message)
        self.file_name = file_name


def parse_frontmatter(raw: str) -> Any:
    """Parse a frontmatter block; empty or blank blocks parse to None."""
    if not raw or not raw.strip():
        return None
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise MetadataParseError(f"Invalid ADR frontmatter: {e}") from e


def _first_inline_text(block: Block) -> Optional[str]:
    if not block.children:
        return None
    return block.children[0].value


def adr_to_record(blocks: Sequence[Block]) -> AdrRecord:
    """Build an ``AdrRecord`` from top-level markdown blocks.

    Args:
        blocks: Blocks as produced by ``markdown.parse_markdown``

    Returns:
        The normalized record. Missing structure leaves fields unset rather
        than raising.

    Raises:
        MetadataParseError: If the frontmatter block is malformed YAML
    """
    if not blocks:
        return AdrRecord()

    metadata: Any = MISSING
    start = 0
    if blocks[0].type == "yaml":
        metadata = parse_frontmatter(blocks[0].value or "")
        start = 1

    title: Optional[str] = None
    title_seen = False
    sections: Dict[str, str] = {}

    for index in range(start, len(blocks)):
        block = blocks[index]
        if block.type != "heading":
            continue

        if block.depth == 1:
            if not title_seen:
                title = _first_inline_text(block)
                title_seen = True
            continue

        if block.depth != 2:
            continue

        header = _first_inline_text(block)
        following = blocks[index + 1] if index + 1 < len(blocks) else None
        if header is None or following is None or following.type != "paragraph":
            continue

        content = _first_inline_text(following)
        if content is not None:
            sections[header] = content

    return AdrRecord(title=title, sections=sections, metadata=metadata)


def parse_adr(text: str, file_name: Optional[str] = None) -> AdrRecord:
    """Tokenize and parse ADR markdown text.

    Raises:
        MetadataParseError: If the frontmatter is malformed; ``file_name`` is
            attached to the error when given.
    """
    try:
        return adr_to_record(parse_markdown(text))
    except MetadataParseError as e:
        logger.debug(f"Failed to parse frontmatter of {file_name or '<text>'}")
        raise MetadataParseError(str(e), file_name=file_name) from e
