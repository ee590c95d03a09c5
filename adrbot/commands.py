"""Parsing of ``/adr`` slash command text."""

import argparse
import re
import shlex
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, NoReturn, Optional, Union

from .models import FilterCriteria

STATUS_CHOICES = ["open", "committed", "deferred", "obsolete"]
IMPACT_CHOICES = ["high", "medium", "low"]

_BRANCH_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9-]{0,49}$")


class CommandError(ValueError):
    """Raised when slash command text cannot be parsed."""


class HelpRequested(Exception):
    """Raised when the user asked for help; carries the help text."""

    def __init__(self, text: str):
        super().__init__(text)
        self.text = text


@dataclass(frozen=True)
class LogCommand:
    criteria: FilterCriteria


@dataclass(frozen=True)
class AddCommand:
    title: str
    branch: str
    impact: str = "medium"


Command = Union[LogCommand, AddCommand]


class _SlackArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of printing and exiting."""

    def error(self, message: str) -> NoReturn:
        raise CommandError(f"error: {message}")

    def print_help(self, file: Any = None) -> None:
        raise HelpRequested(self.format_help())

    def exit(self, status: int = 0, message: Optional[str] = None) -> NoReturn:
        raise CommandError(message or f"exited with status {status}")


def fix_slack_strings(text: str) -> str:
    """Replace the smart quotes Slack inserts with plain double quotes."""
    return re.sub("[“”]", '"', text)


def parse_date(value: str) -> datetime:
    """Parse a yyyy-mm-dd option value as midnight UTC."""
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise argparse.ArgumentTypeError(f"unable to parse date: {value}")
    return parsed.replace(tzinfo=timezone.utc)


def parse_branch(value: str) -> str:
    if not _BRANCH_RE.match(value):
        raise argparse.ArgumentTypeError("branch name is invalid format.")
    return value


def build_parser(prog: str = "/adr") -> argparse.ArgumentParser:
    """Build the ``/adr`` command parser."""
    parser = _SlackArgumentParser(
        prog=prog, description="A utility for working with ADRs.", allow_abbrev=False
    )
    subparsers = parser.add_subparsers(dest="command", metavar="{log,add,help}")

    log = subparsers.add_parser(
        "log",
        help="List ADRs.",
        description="List ADRs that match all of the given (optional) filters.",
        allow_abbrev=False,
    )
    log.add_argument(
        "-s", "--status", nargs="+", choices=STATUS_CHOICES, help="Filter on ADR status."
    )
    log.add_argument(
        "-i", "--impact", nargs="+", choices=IMPACT_CHOICES, help="Filter on ADR impact."
    )
    log.add_argument(
        "-ca",
        "--committed-after",
        type=parse_date,
        metavar="DATE",
        help="Filter ADRs committed since the given date (yyyy-mm-dd format).",
    )
    log.add_argument(
        "-db",
        "--decide-before",
        type=parse_date,
        metavar="DATE",
        help="Filter open ADRs that must be decided on before the given date "
        "(yyyy-mm-dd format).",
    )
    log.add_argument("-t", "--tags", nargs="+", metavar="TAG", help="Filter on ADR tags.")

    add = subparsers.add_parser(
        "add",
        help="Create a new ADR.",
        description="Create a new ADR including associated branch and pull request.",
        allow_abbrev=False,
    )
    add.add_argument(
        "-t",
        "--title",
        required=True,
        help="Set the title of the new ADR. This will also be used as the name of "
        "the associated pull request.",
    )
    add.add_argument(
        "-b",
        "--branch",
        required=True,
        type=parse_branch,
        help="Set the name of the new branch.",
    )
    add.add_argument(
        "-i",
        "--impact",
        choices=IMPACT_CHOICES,
        default="medium",
        help="Set impact=<impact> in new ADR.",
    )

    subparsers.add_parser("help", help="Show this help.")
    return parser


def parse_command(text: str, prog: str = "/adr") -> Command:
    """Parse slash command text into a command.

    Raises:
        HelpRequested: For empty text, ``help`` or ``--help``
        CommandError: For anything argparse rejects
    """
    parser = build_parser(prog)
    try:
        argv: List[str] = shlex.split(fix_slack_strings(text or ""))
    except ValueError as e:
        raise CommandError(f"error: {e}") from e

    if not argv:
        raise HelpRequested(parser.format_help())

    args = parser.parse_args(argv)

    if args.command == "log":
        return LogCommand(
            criteria=FilterCriteria.build(
                status=args.status,
                impact=args.impact,
                tags=args.tags,
                committed_after=args.committed_after,
                decide_before=args.decide_before,
            )
        )
    if args.command == "add":
        return AddCommand(title=args.title, branch=args.branch, impact=args.impact)

    raise HelpRequested(parser.format_help())
