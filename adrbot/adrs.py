"""ADR retrieval, pull request lookup and ADR creation against GitHub."""

import logging
import posixpath
from typing import Any, List, Optional, Protocol

from .adr_parser import MetadataParseError, parse_adr
from .adr_template import next_adr_filename, set_frontmatter, set_title
from .config import Settings
from .filters import matches
from .github_client import GitHubClient, MalformedResponseError
from .models import (
    AdrFile,
    CreatedAdr,
    DirectoryEntry,
    FilterCriteria,
    PullRequestIndex,
    PullRequestPage,
    PullRequestSummary,
)

logger = logging.getLogger(__name__)


class RepositoryHost(Protocol):
    """Operations the service needs from the repository host."""

    def fetch_directory_listing(self, expression: str) -> List[DirectoryEntry]:
        ...

    def fetch_pull_request_page(
        self, cursor: Optional[str], page_size: int
    ) -> PullRequestPage:
        ...

    def get_branch_head_oid(self, branch: str) -> str:
        ...

    def create_branch(self, branch: str, oid: str) -> Any:
        ...

    def get_file_text(self, expression: str) -> str:
        ...

    def list_directory_names(self, expression: str) -> List[str]:
        ...

    def commit_file(
        self,
        branch: str,
        path: str,
        contents: str,
        headline: str,
        expected_head_oid: str,
    ) -> str:
        ...

    def get_repository_id(self) -> str:
        ...

    def create_pull_request(
        self, repository_id: str, base: str, head: str, title: str, body: str = ""
    ) -> str:
        ...


class AdrService:
    """Reads ADRs and their pull requests from a GitHub repository."""

    def __init__(self, config: Settings, client: Optional[RepositoryHost] = None):
        self.config = config
        self.client: RepositoryHost = (
            client if client is not None else GitHubClient(config)
        )

    def get_adr_files(self, criteria: Optional[FilterCriteria] = None) -> List[AdrFile]:
        """Return the ADRs in the configured directory that match ``criteria``.

        Files are parsed and filtered one at a time, so the result keeps the
        order of the directory listing. Names not matching the ADR pattern are
        ignored.

        Args:
            criteria: Optional filters; None matches every ADR

        Returns:
            Matching ADRs in listing order

        Raises:
            MetadataParseError: If an ADR has malformed frontmatter and the
                error policy is ``raise``
            GitHubError: If the directory cannot be fetched
        """
        entries = self.client.fetch_directory_listing(self.config.adr_ref)
        if entries is None:
            raise MalformedResponseError("GitHub returned no ADR directory listing")

        adr_re = self.config.adr_pattern()
        adr_files: List[AdrFile] = []

        for entry in entries:
            if not adr_re.search(entry.name):
                continue

            try:
                record = parse_adr(entry.text or "", file_name=entry.name)
            except MetadataParseError:
                if self.config.adr_error_policy == "skip":
                    logger.warning(f"Skipping {entry.name}: malformed frontmatter")
                    continue
                raise

            if matches(record.metadata, criteria):
                adr_files.append(
                    AdrFile(
                        name=entry.name,
                        url=self.config.adr_blob_url(entry.name),
                        data=record,
                    )
                )

        logger.info(f"Matched {len(adr_files)} of {len(entries)} directory entries")
        return adr_files

    def get_pull_requests_by_file(self) -> PullRequestIndex:
        """Group pull requests by the ADR files they changed.

        Pages through pull requests, most recently updated first, until GitHub
        reports no previous page or ``pr_max_pages`` is reached. A pull request
        touching several ADRs is listed under each of them.

        Raises:
            GitHubError: If any page cannot be fetched; nothing is returned
        """
        path_re = self.config.adr_path_pattern()
        index = PullRequestIndex()
        cursor: Optional[str] = None
        has_previous_page = True

        while has_previous_page:
            if index.pages_fetched >= self.config.pr_max_pages:
                index.truncated = True
                logger.warning(
                    f"Stopped after {index.pages_fetched} pull request pages; "
                    "index is incomplete"
                )
                break

            page = self.client.fetch_pull_request_page(cursor, self.config.pr_page_size)
            index.pages_fetched += 1

            for pull_request in page.items:
                for path in pull_request.files:
                    if path_re.search(path):
                        index.add(posixpath.basename(path), pull_request)

            cursor = page.start_cursor
            has_previous_page = page.has_previous_page

        logger.info(
            f"Indexed pull requests for {len(index)} ADRs "
            f"across {index.pages_fetched} pages"
        )
        return index

    def get_pull_requests_for(self, file_name: str) -> List[PullRequestSummary]:
        """Pull requests that changed one ADR, newest first."""
        return list(self.get_pull_requests_by_file().get(file_name, []) or [])

    def create_adr_file(self, title: str, branch: str, impact: str = "medium") -> CreatedAdr:
        """Create a new ADR from the template on a new branch and open a PR.

        Raises:
            GitHubError: If any step fails; earlier steps are not undone
        """
        base = self.config.github_default_branch
        head_oid = self.client.get_branch_head_oid(base)
        self.client.create_branch(branch, head_oid)
        logger.info(f"Created branch {branch} at {head_oid}")

        template = self.client.get_file_text(f"{base}:{self.config.github_adr_template}")
        contents = set_frontmatter(set_title(template, title), impact=impact, status="open")

        existing = self.client.list_directory_names(self.config.adr_ref)
        adr_path = f"{self.config.github_path_to_adrs}/{next_adr_filename(existing, branch)}"

        self.client.commit_file(
            branch=branch,
            path=adr_path,
            contents=contents,
            headline=f"Add ADR: {title}",
            expected_head_oid=head_oid,
        )

        repository_id = self.client.get_repository_id()
        pull_request_url = self.client.create_pull_request(
            repository_id,
            base=base,
            head=branch,
            title=title,
            body=f"Adds ADR `{adr_path}`.",
        )
        logger.info(f"Opened {pull_request_url} for {adr_path}")

        return CreatedAdr(pull_request_url=pull_request_url, adr_file=adr_path)
