"""Command line entry point for the ADR bot."""

import json
import logging
import os
import sys
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .adrs import AdrService
from .commands import IMPACT_CHOICES, STATUS_CHOICES
from .config import settings
from .models import FilterCriteria

console = Console()


# Configure logging
def setup_logging(level: str) -> None:
    """Set up logging with Rich handler or JSON lines."""
    log_level = getattr(logging, level.upper())
    if settings.log_json:

        class JsonFormatter(logging.Formatter):
            def format(self, record: logging.LogRecord) -> str:
                payload = {
                    "level": record.levelname,
                    "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
                    "message": record.getMessage(),
                    "name": record.name,
                }
                return json.dumps(payload)

        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=log_level, handlers=[handler])
    else:
        logging.basicConfig(
            level=log_level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=console, rich_tracebacks=True)],
        )


logger = logging.getLogger(__name__)


def resolve_port(port: Optional[int]) -> int:
    """Pick the server port from the option, then ``PORT``, then 8000."""
    if port:
        return port
    port_env = os.environ.get("PORT", "8000")
    try:
        return int(port_env)
    except (ValueError, TypeError):
        logger.warning(f"Invalid PORT value '{port_env}', using default port 8000")
        return 8000


def print_adr_log(service: AdrService, criteria: FilterCriteria) -> int:
    """Print matching ADRs as a table and return how many were shown."""
    adr_files = service.get_adr_files(criteria)

    table = Table(title=f"ADRs in {settings.github_user}/{settings.github_repo}")
    table.add_column("File")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Impact")

    for adr_file in adr_files:
        frontmatter = adr_file.data.frontmatter
        meta = frontmatter if isinstance(frontmatter, dict) else {}
        table.add_row(
            adr_file.name,
            adr_file.data.title or "",
            str(meta.get("status", "")),
            str(meta.get("impact", "")),
        )

    console.print(table)
    return len(adr_files)


def print_pull_requests(service: AdrService) -> int:
    """Print the pull requests that touched each ADR."""
    index = service.get_pull_requests_by_file()

    for file_name, pull_requests in index.by_file.items():
        console.print(f"[bold]{file_name}[/bold]")
        for pull_request in pull_requests:
            console.print(f"  [{pull_request.state}] {pull_request.title} {pull_request.url}")

    if index.truncated:
        console.print(
            f"[yellow]Stopped after {index.pages_fetched} pages; older pull requests "
            "were not scanned.[/yellow]"
        )
    return len(index)


@click.command()
@click.option(
    "--mode",
    type=click.Choice(["server", "log", "prs"]),
    default="server",
    help="Run mode: Slack web server, print ADR log, or print pull requests by ADR",
)
@click.option("--port", default=None, type=int, help="Port for web server mode")
@click.option("--status", multiple=True, type=click.Choice(STATUS_CHOICES))
@click.option("--impact", multiple=True, type=click.Choice(IMPACT_CHOICES))
@click.option("--tags", multiple=True, help="Only ADRs with one of these tags")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Set logging level (defaults to LOG_LEVEL)",
)
def main(
    mode: str,
    port: Optional[int],
    status: Tuple[str, ...],
    impact: Tuple[str, ...],
    tags: Tuple[str, ...],
    log_level: Optional[str],
) -> None:
    """Serve the /adr Slack command or query ADRs from the terminal."""
    setup_logging(log_level or settings.log_level)

    try:
        settings.validate_github_config()
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    service = AdrService(settings)

    if mode == "server":
        from .slack_app import SlackApp
        from .web_server import create_web_server

        missing = settings.missing_settings()
        if missing:
            logger.warning(f"Missing configuration: {', '.join(missing)}")

        server_port = resolve_port(port)
        logger.info(f"Starting ADR bot web server on port {server_port}")
        app = create_web_server(SlackApp(service, settings))
        app.run(host="0.0.0.0", port=server_port)
        return

    try:
        if mode == "log":
            criteria = FilterCriteria.build(
                status=status or None, impact=impact or None, tags=tags or None
            )
            count = print_adr_log(service, criteria)
            logger.info(f"Listed {count} ADRs")
        else:
            count = print_pull_requests(service)
            logger.info(f"Found pull requests for {count} ADRs")
    except Exception as e:
        logger.error(f"Failed to query GitHub: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
