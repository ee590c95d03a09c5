"""Slack Block Kit formatting for ADRs and their pull requests."""

from typing import Any, Dict, List, Sequence

from .models import AdrFile, PullRequestSummary

# Slack rejects messages with more than 50 blocks
MAX_BLOCKS = 50

LIST_PRS_ACTION_ID = "list prs action"

# Reader friendly names for frontmatter properties, in display order
FRONTMATTER_LABELS = {
    "status": "Status",
    "committed-on": "Committed On",
    "decide-by": "Decide By",
    "review-by": "Review By",
    "impact": "Impact",
}

# The context block is only shown when one of these is present
_CONTEXT_TRIGGERS = ("status", "committed", "decide-by", "review-by")


def _section(text: str) -> Dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def to_block_format(adr_file: AdrFile) -> List[Dict[str, Any]]:
    """Render one ADR as a list of blocks, starting with a divider."""
    blocks: List[Dict[str, Any]] = [{"type": "divider"}]
    record = adr_file.data

    if record.title:
        title_block = _section(f"*Problem:* <{adr_file.url}|{record.title}>")
        title_block["accessory"] = {
            "type": "button",
            "text": {"type": "plain_text", "text": "List PRs"},
            "value": adr_file.name,
            "action_id": LIST_PRS_ACTION_ID,
        }
        blocks.append(title_block)

    problem = record.section("Problem Description")
    if problem:
        blocks.append(_section(problem))

    solution = record.section("Accepted Solution")
    if solution:
        blocks.append(_section("*Accepted Solution*"))
        blocks.append(_section(solution))

    frontmatter = record.frontmatter
    if isinstance(frontmatter, dict) and any(
        frontmatter.get(key) for key in _CONTEXT_TRIGGERS
    ):
        elements = [
            {"type": "mrkdwn", "text": f"`{label}: {frontmatter[prop]}`"}
            for prop, label in FRONTMATTER_LABELS.items()
            if frontmatter.get(prop)
        ]
        blocks.append({"type": "context", "elements": elements})

    return blocks


def format_adr_log(adr_files: Sequence[AdrFile]) -> Dict[str, Any]:
    """Build the message listing ADRs for ``/adr log``."""
    blocks: List[Dict[str, Any]] = [_section("*ADR Log*")]

    if not adr_files:
        blocks.append(_section("_No ADRs match the given filters._"))
        return {"text": "ADR Log", "blocks": blocks}

    shown = 0
    for adr_file in adr_files:
        adr_blocks = to_block_format(adr_file)
        # leave room for the truncation note
        if len(blocks) + len(adr_blocks) > MAX_BLOCKS - 1:
            break
        blocks.extend(adr_blocks)
        shown += 1

    if shown < len(adr_files):
        blocks.append(
            _section(
                f"_Showing {shown} of {len(adr_files)} ADRs. "
                "Add filters to narrow the list._"
            )
        )

    return {"text": "ADR Log", "blocks": blocks}


def format_pull_requests(
    file_name: str, pull_requests: Sequence[PullRequestSummary]
) -> Dict[str, Any]:
    """Build the message listing the pull requests that changed an ADR."""
    blocks: List[Dict[str, Any]] = [_section(f"*Pull requests for {file_name}*")]

    if not pull_requests:
        blocks.append(_section("_No pull requests changed this ADR._"))
        return {"text": f"Pull requests for {file_name}", "blocks": blocks}

    for pull_request in pull_requests[: MAX_BLOCKS - 2]:
        created = (pull_request.created_at or "")[:10]
        line = f"<{pull_request.url}|{pull_request.title}>  `{pull_request.state}`"
        if created:
            line += f"  opened {created}"
        blocks.append(_section(line))

    if len(pull_requests) > MAX_BLOCKS - 2:
        blocks.append(_section(f"_...and {len(pull_requests) - (MAX_BLOCKS - 2)} more._"))

    return {"text": f"Pull requests for {file_name}", "blocks": blocks}


def format_created_adr(title: str, adr_file: str, pull_request_url: str) -> str:
    return f"Created ADR *{title}* as `{adr_file}`: <{pull_request_url}|review the pull request>"
