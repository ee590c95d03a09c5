"""Tests for markdown tokenization into top-level blocks."""

import yaml

from adrbot.markdown import Block, Inline, parse_markdown


def test_frontmatter_becomes_yaml_block():
    blocks = parse_markdown("---\nstatus: open\nimpact: high\n---\n# Title\n")

    assert blocks[0].type == "yaml"
    assert yaml.safe_load(blocks[0].value) == {"status": "open", "impact": "high"}
    assert blocks[1] == Block("heading", depth=1, children=(Inline("text", "Title"),))


def test_headings_keep_depth():
    blocks = parse_markdown("# One\n\n## Two\n\n### Three\n")

    assert [(b.type, b.depth) for b in blocks] == [
        ("heading", 1),
        ("heading", 2),
        ("heading", 3),
    ]


def test_paragraph_lines_merge_into_one_text_child():
    blocks = parse_markdown("First line\nsecond line\n")

    assert blocks == [Block("paragraph", children=(Inline("text", "First line\nsecond line"),))]


def test_emphasis_splits_inline_children():
    blocks = parse_markdown("Use *this* one\n")

    assert blocks[0].children == (
        Inline("text", "Use "),
        Inline("emphasis", "this"),
        Inline("text", " one"),
    )


def test_inline_code_and_links():
    blocks = parse_markdown("`code` and [a link](https://example.com)\n")

    types = [child.type for child in blocks[0].children]
    assert types == ["inlineCode", "text", "link"]
    assert blocks[0].children[2].value == "a link"


def test_lists_and_code_are_other_blocks():
    blocks = parse_markdown("## Options\n\n- one\n- two\n\n```\nx = 1\n```\n")

    assert [b.type for b in blocks] == ["heading", "list", "code"]
    assert blocks[2].value == "x = 1\n"


def test_nested_paragraphs_are_not_top_level():
    blocks = parse_markdown("> quoted text\n")

    assert [b.type for b in blocks] == ["blockquote"]


def test_no_frontmatter_means_no_yaml_block():
    blocks = parse_markdown("# Title\n")

    assert all(block.type != "yaml" for block in blocks)


def test_empty_document():
    assert parse_markdown("") == []
