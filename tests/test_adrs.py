"""Tests for ADR retrieval, pull request indexing and ADR creation."""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from adrbot.adr_parser import MetadataParseError
from adrbot.adrs import AdrService
from adrbot.github_client import GitHubClient, GitHubError, MalformedResponseError
from adrbot.models import DirectoryEntry, FilterCriteria
from tests.adr_fixtures import FakeGitHub, adr_content, page, pull_request


class TestGetAdrFiles:
    """Test fetching and filtering ADRs from the directory listing."""

    def test_returns_adrs_in_listing_order(self, adr_service, fake_github):
        adr_files = adr_service.get_adr_files()

        assert [f.name for f in adr_files] == [
            "0001-use-postgres.md",
            "0002-adopt-graphql.md",
            "0003-drop-cron.md",
        ]
        assert fake_github.listing_calls == ["main:docs/decisions"]

    def test_non_adr_names_are_excluded(self, adr_service):
        names = [f.name for f in adr_service.get_adr_files()]

        assert "README.md" not in names
        assert "adr-template.md" not in names

    def test_links_point_at_default_branch(self, adr_service):
        adr_file = adr_service.get_adr_files()[0]

        assert adr_file.url == (
            "https://github.com/test-user/test-repo/blob/main/docs/decisions/0001-use-postgres.md"
        )
        assert adr_file.data.title == "Use Postgres"
        assert adr_file.data.section("Problem Description") == (
            "This is a test problem description for Use Postgres."
        )

    def test_filter_by_status(self, adr_service):
        adr_files = adr_service.get_adr_files(FilterCriteria.build(status=["open"]))

        assert [f.name for f in adr_files] == ["0002-adopt-graphql.md"]

    def test_filter_by_tags(self, adr_service):
        adr_files = adr_service.get_adr_files(FilterCriteria.build(tags=["db", "frontend"]))

        assert [f.name for f in adr_files] == ["0001-use-postgres.md", "0002-adopt-graphql.md"]

    def test_filter_by_decide_before(self, adr_service):
        cutoff = datetime(2024, 3, 1, tzinfo=timezone.utc)
        adr_files = adr_service.get_adr_files(FilterCriteria.build(decide_before=cutoff))

        assert [f.name for f in adr_files] == ["0002-adopt-graphql.md"]

    def test_no_matches(self, adr_service):
        assert adr_service.get_adr_files(FilterCriteria.build(impact=[])) == []

    def test_empty_directory(self, test_settings):
        service = AdrService(test_settings, client=FakeGitHub(entries=[]))

        assert service.get_adr_files() == []

    def test_missing_listing_is_an_error(self, test_settings):
        service = AdrService(test_settings, client=FakeGitHub(entries=None))

        with pytest.raises(MalformedResponseError):
            service.get_adr_files()

    def test_fetch_errors_propagate(self, test_settings):
        client = FakeGitHub(entries=[], listing_error=GitHubError("bad credentials"))
        service = AdrService(test_settings, client=client)

        with pytest.raises(GitHubError, match="bad credentials"):
            service.get_adr_files()

    def test_malformed_frontmatter_raises_by_default(self, test_settings):
        entries = [
            DirectoryEntry("0001-good.md", adr_content("Good")),
            DirectoryEntry("0002-bad.md", "---\nstatus: [open\n---\n# Bad\n"),
        ]
        service = AdrService(test_settings, client=FakeGitHub(entries=entries))

        with pytest.raises(MetadataParseError) as exc_info:
            service.get_adr_files()

        assert exc_info.value.file_name == "0002-bad.md"

    def test_malformed_frontmatter_skipped_by_policy(self, test_settings):
        entries = [
            DirectoryEntry("0001-good.md", adr_content("Good")),
            DirectoryEntry("0002-bad.md", "---\nstatus: [open\n---\n# Bad\n"),
        ]
        config = test_settings.model_copy(update={"adr_error_policy": "skip"})
        service = AdrService(config, client=FakeGitHub(entries=entries))

        assert [f.name for f in service.get_adr_files()] == ["0001-good.md"]

    def test_entry_without_text_parses_as_empty(self, test_settings):
        service = AdrService(
            test_settings, client=FakeGitHub(entries=[DirectoryEntry("0001-empty.md", None)])
        )

        adr_files = service.get_adr_files()

        assert len(adr_files) == 1
        assert adr_files[0].data.to_dict() == {}

    def test_document_without_frontmatter_only_matches_empty_criteria(self, test_settings):
        entries = [DirectoryEntry("0001-plain.md", "# Plain\n")]
        service = AdrService(test_settings, client=FakeGitHub(entries=entries))

        assert len(service.get_adr_files()) == 1
        assert service.get_adr_files(FilterCriteria.build(status=["open"])) == []


class TestGetPullRequestsByFile:
    """Test building the index of pull requests per ADR file."""

    def test_pull_request_listed_under_every_adr_it_touched(self, test_settings):
        pr = pull_request(
            "Decide things",
            "docs/decisions/0001-use-postgres.md",
            "docs/decisions/0002-adopt-graphql.md",
        )
        client = FakeGitHub(pages=[page([pr], False, "c1")])

        index = AdrService(test_settings, client=client).get_pull_requests_by_file()

        assert index["0001-use-postgres.md"] == [pr]
        assert index["0002-adopt-graphql.md"] == [pr]
        assert len(index) == 2

    def test_non_adr_paths_are_ignored(self, test_settings):
        pr = pull_request(
            "Mixed",
            "README.md",
            "src/app.py",
            "docs/decisions/adr-template.md",
            "docs/decisions/0003-drop-cron.md",
        )
        client = FakeGitHub(pages=[page([pr], False, None)])

        index = AdrService(test_settings, client=client).get_pull_requests_by_file()

        assert list(index) == ["0003-drop-cron.md"]

    def test_walks_pages_with_cursor(self, test_settings):
        newest = pull_request("Newest", "docs/decisions/0001-a.md")
        older = pull_request("Older", "docs/decisions/0001-a.md")
        client = FakeGitHub(
            pages=[page([newest], True, "cursor-1"), page([older], False, "cursor-2")]
        )

        index = AdrService(test_settings, client=client).get_pull_requests_by_file()

        assert client.page_calls == [(None, 100), ("cursor-1", 100)]
        assert index["0001-a.md"] == [newest, older]
        assert index.pages_fetched == 2
        assert not index.truncated

    def test_single_page_stops_immediately(self, test_settings):
        client = FakeGitHub(pages=[page([], False, None)])

        index = AdrService(test_settings, client=client).get_pull_requests_by_file()

        assert len(client.page_calls) == 1
        assert len(index) == 0

    def test_stops_at_max_pages(self, test_settings):
        config = test_settings.model_copy(update={"pr_max_pages": 3})
        client = FakeGitHub()

        index = AdrService(config, client=client).get_pull_requests_by_file()

        assert len(client.page_calls) == 3
        assert index.pages_fetched == 3
        assert index.truncated

    def test_page_failure_returns_nothing(self, test_settings):
        client = FakeGitHub(
            pages=[page([pull_request("A", "docs/decisions/0001-a.md")], True, "c1")],
            page_error_at=1,
        )

        with pytest.raises(GitHubError):
            AdrService(test_settings, client=client).get_pull_requests_by_file()

    def test_pull_requests_for_one_file(self, test_settings):
        pr = pull_request("A", "docs/decisions/0001-a.md")
        client = FakeGitHub(pages=[page([pr], False, None)])
        service = AdrService(test_settings, client=client)

        assert service.get_pull_requests_for("0001-a.md") == [pr]
        assert service.get_pull_requests_for("0009-missing.md") == []

    def test_index_to_dict(self, test_settings):
        pr = pull_request("A", "docs/decisions/0001-a.md", created_at="2024-02-02T00:00:00Z")
        client = FakeGitHub(pages=[page([pr], False, None)])

        data = AdrService(test_settings, client=client).get_pull_requests_by_file().to_dict()

        assert data["truncated"] is False
        assert data["pages_fetched"] == 1
        assert data["files"]["0001-a.md"][0] == {
            "title": "A",
            "url": "https://github.com/test-user/test-repo/pull/a",
            "body": "Body of A",
            "createdAt": "2024-02-02T00:00:00Z",
            "state": "MERGED",
        }


TEMPLATE = """---
status: draft
reversibility: medium
---
# Title of the decision

## Problem Description
Describe the problem.
"""


@pytest.fixture
def github_mock():
    client = Mock(spec=GitHubClient)
    client.get_branch_head_oid.return_value = "abc123"
    client.get_file_text.return_value = TEMPLATE
    client.list_directory_names.return_value = [
        "0001-first.md",
        "0005-fifth.md",
        "0003-third.md",
        "README.md",
        "adr-template.md",
    ]
    client.commit_file.return_value = "def456"
    client.get_repository_id.return_value = "R_repo"
    client.create_pull_request.return_value = "https://github.com/test-user/test-repo/pull/42"
    return client


class TestCreateAdrFile:
    """Test creating a new ADR on its own branch."""

    def test_creates_branch_commit_and_pull_request(self, test_settings, github_mock):
        service = AdrService(test_settings, client=github_mock)

        created = service.create_adr_file("Use Kafka", "new-branch", impact="high")

        assert created.pull_request_url == "https://github.com/test-user/test-repo/pull/42"
        assert created.adr_file == "docs/decisions/0006-new-branch.md"

        github_mock.get_branch_head_oid.assert_called_once_with("main")
        github_mock.create_branch.assert_called_once_with("new-branch", "abc123")
        github_mock.get_file_text.assert_called_once_with("main:docs/decisions/adr-template.md")
        github_mock.list_directory_names.assert_called_once_with("main:docs/decisions")
        github_mock.create_pull_request.assert_called_once_with(
            "R_repo",
            base="main",
            head="new-branch",
            title="Use Kafka",
            body="Adds ADR `docs/decisions/0006-new-branch.md`.",
        )

    def test_committed_contents(self, test_settings, github_mock):
        AdrService(test_settings, client=github_mock).create_adr_file("Use Kafka", "kafka")

        kwargs = github_mock.commit_file.call_args.kwargs
        assert kwargs["branch"] == "kafka"
        assert kwargs["path"] == "docs/decisions/0006-kafka.md"
        assert kwargs["expected_head_oid"] == "abc123"
        assert kwargs["headline"] == "Add ADR: Use Kafka"

        contents = kwargs["contents"]
        assert "# Use Kafka\n" in contents
        assert "Title of the decision" not in contents
        assert "status: open\n" in contents
        assert "impact: medium\n" in contents
        assert "reversibility: medium\n" in contents

    def test_first_adr_in_empty_directory(self, test_settings, github_mock):
        github_mock.list_directory_names.return_value = ["README.md"]

        created = AdrService(test_settings, client=github_mock).create_adr_file("First", "first")

        assert created.adr_file == "docs/decisions/0001-first.md"

    def test_failure_stops_the_flow(self, test_settings, github_mock):
        github_mock.create_branch.side_effect = GitHubError("Reference already exists")

        with pytest.raises(GitHubError):
            AdrService(test_settings, client=github_mock).create_adr_file("Dup", "dup")

        github_mock.commit_file.assert_not_called()
        github_mock.create_pull_request.assert_not_called()

    def test_any_repository_host_can_create(self, test_settings):
        """Creation only relies on the repository host operations."""
        entries = [
            DirectoryEntry("0001-a.md", adr_content("A")),
            DirectoryEntry("0005-e.md", adr_content("E")),
            DirectoryEntry("README.md", "# Readme\n"),
        ]
        github = FakeGitHub(entries=entries)

        created = AdrService(test_settings, client=github).create_adr_file("Use Redis", "redis")

        assert created.adr_file == "docs/decisions/0006-redis.md"
        assert created.pull_request_url == "https://github.com/test-user/test-repo/pull/1"
        assert github.branches == {"redis": "head-oid"}
        assert github.commits[0]["path"] == "docs/decisions/0006-redis.md"
        assert "# Use Redis\n" in github.commits[0]["contents"]
        assert github.opened == [{"base": "main", "head": "redis", "title": "Use Redis"}]
