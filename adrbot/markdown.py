"""Tokenize ADR markdown into a flat list of typed top-level blocks.

markdown-it produces a flat token stream with open/close pairs. The ADR parser
only needs the top-level blocks and the plain text of their inline children, so
this module folds the token stream into ``Block`` and ``Inline`` values:

    ---
    status: open
    ---
    # Title

    ## Problem Description
    Some text

becomes::

    [Block("yaml", value="status: open"),
     Block("heading", depth=1, children=(Inline("text", "Title"),)),
     Block("heading", depth=2, children=(Inline("text", "Problem Description"),)),
     Block("paragraph", children=(Inline("text", "Some text"),))]
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.front_matter import front_matter_plugin

# Top-level block tokens other than headings and paragraphs, by opening token type
_OTHER_BLOCKS: Dict[str, str] = {
    "bullet_list_open": "list",
    "ordered_list_open": "list",
    "blockquote_open": "blockquote",
    "table_open": "table",
    "fence": "code",
    "code_block": "code",
    "hr": "thematicBreak",
    "html_block": "html",
}

_CONTAINERS: Dict[str, str] = {
    "em_open": "emphasis",
    "strong_open": "strong",
    "s_open": "delete",
    "link_open": "link",
}


@dataclass(frozen=True)
class Inline:
    """Inline content of a heading or paragraph, reduced to plain text."""

    type: str
    value: str


@dataclass(frozen=True)
class Block:
    """A top-level markdown block."""

    type: str
    depth: Optional[int] = None
    children: Tuple[Inline, ...] = ()
    value: Optional[str] = None


def _build_parser() -> MarkdownIt:
    return MarkdownIt("commonmark").use(front_matter_plugin)


_parser = _build_parser()


def _inline_text(token: Token) -> str:
    if token.type in ("softbreak", "hardbreak"):
        return "\n"
    if token.type == "image":
        return "".join(_inline_text(child) for child in token.children or [])
    return token.content or ""


def _fold_inline(children: Sequence[Token]) -> Tuple[Inline, ...]:
    """Merge runs of text/soft breaks and collapse formatted spans to text."""
    result: List[Inline] = []
    pending: List[str] = []

    def flush() -> None:
        if pending:
            result.append(Inline("text", "".join(pending)))
            pending.clear()

    i = 0
    while i < len(children):
        token = children[i]
        if token.type in ("text", "softbreak"):
            pending.append(_inline_text(token))
            i += 1
            continue

        flush()
        if token.type in _CONTAINERS:
            close_type = token.type.replace("_open", "_close")
            depth = 1
            parts: List[str] = []
            i += 1
            while i < len(children) and depth:
                inner = children[i]
                if inner.type == token.type:
                    depth += 1
                elif inner.type == close_type:
                    depth -= 1
                    if not depth:
                        break
                if not inner.type.endswith(("_open", "_close")):
                    parts.append(_inline_text(inner))
                i += 1
            result.append(Inline(_CONTAINERS[token.type], "".join(parts)))
        elif token.type == "code_inline":
            result.append(Inline("inlineCode", token.content))
        elif token.type == "hardbreak":
            result.append(Inline("break", "\n"))
        elif token.type == "image":
            result.append(Inline("image", _inline_text(token)))
        elif token.type == "html_inline":
            result.append(Inline("html", token.content))
        i += 1

    flush()
    return tuple(result)


def tokens_to_blocks(tokens: Sequence[Token]) -> List[Block]:
    """Fold a markdown-it token stream into top-level blocks."""
    blocks: List[Block] = []
    for index, token in enumerate(tokens):
        if token.level != 0:
            continue

        if token.type == "front_matter":
            blocks.append(Block("yaml", value=token.content))
        elif token.type in ("heading_open", "paragraph_open"):
            inline = tokens[index + 1] if index + 1 < len(tokens) else None
            children = (
                _fold_inline(inline.children or [])
                if inline is not None and inline.type == "inline"
                else ()
            )
            if token.type == "heading_open":
                blocks.append(Block("heading", depth=int(token.tag[1:]), children=children))
            else:
                blocks.append(Block("paragraph", children=children))
        elif token.type in _OTHER_BLOCKS:
            blocks.append(Block(_OTHER_BLOCKS[token.type], value=token.content or None))

    return blocks


def parse_markdown(text: str) -> List[Block]:
    """Tokenize markdown text (with optional YAML frontmatter) into blocks."""
    return tokens_to_blocks(_parser.parse(text))
