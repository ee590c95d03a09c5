"""GitHub GraphQL/REST client used to read and create ADRs."""

import base64
import logging
from typing import Any, Dict, List, Optional

import requests

from .config import Settings
from .models import DirectoryEntry, PullRequestPage, PullRequestSummary

logger = logging.getLogger(__name__)


class GitHubError(Exception):
    """Raised when a GitHub API call fails."""


class MalformedResponseError(GitHubError):
    """Raised when a GitHub response is missing the expected structure."""


# Contents of a directory, including the text of every file in it
ADR_CONTENTS_QUERY = """
query ($repo: String!, $owner: String!, $adr_ref: String!) {
  repository(name: $repo, owner: $owner) {
    object(expression: $adr_ref) {
      ... on Tree {
        entries {
          name
          object {
            ... on Blob {
              text
            }
          }
        }
      }
    }
  }
}
"""

# Pull requests, most recently updated first, with the files each one changed
PULL_REQUESTS_QUERY = """
query ($repo: String!, $owner: String!, $cursor: String, $pageSize: Int!) {
  repository(name: $repo, owner: $owner) {
    pullRequests(last: $pageSize, before: $cursor, orderBy: {field: UPDATED_AT, direction: DESC}) {
      edges {
        node {
          closedAt
          title
          body
          url
          state
          createdAt
          files(last: $pageSize) {
            edges {
              node {
                path
              }
            }
          }
        }
      }
      pageInfo {
        hasPreviousPage
        startCursor
      }
    }
  }
}
"""

BRANCH_HEAD_QUERY = """
query ($repo: String!, $owner: String!, $qualifiedName: String!) {
  repository(name: $repo, owner: $owner) {
    ref(qualifiedName: $qualifiedName) {
      target {
        oid
      }
    }
  }
}
"""

FILE_TEXT_QUERY = """
query ($repo: String!, $owner: String!, $expression: String!) {
  repository(name: $repo, owner: $owner) {
    object(expression: $expression) {
      ... on Blob {
        text
      }
    }
  }
}
"""

DIRECTORY_NAMES_QUERY = """
query ($repo: String!, $owner: String!, $expression: String!) {
  repository(name: $repo, owner: $owner) {
    object(expression: $expression) {
      ... on Tree {
        entries {
          name
        }
      }
    }
  }
}
"""

REPOSITORY_ID_QUERY = """
query ($repo: String!, $owner: String!) {
  repository(name: $repo, owner: $owner) {
    id
  }
}
"""

COMMIT_FILE_MUTATION = """
mutation ($input: CreateCommitOnBranchInput!) {
  createCommitOnBranch(input: $input) {
    commit {
      oid
    }
  }
}
"""

CREATE_PULL_REQUEST_MUTATION = """
mutation ($input: CreatePullRequestInput!) {
  createPullRequest(input: $input) {
    pullRequest {
      url
    }
  }
}
"""


def _dig(data: Any, *keys: str) -> Any:
    """Walk nested response dictionaries, failing on any missing level."""
    current = data
    path: List[str] = []
    for key in keys:
        path.append(key)
        if not isinstance(current, dict) or current.get(key) is None:
            raise MalformedResponseError(
                f"GitHub response missing '{'.'.join(path)}'"
            )
        current = current[key]
    return current


class GitHubClient:
    """Thin wrapper over the GitHub GraphQL and REST APIs for one repository."""

    def __init__(self, config: Settings, session: Optional[requests.Session] = None):
        self.owner = config.github_user
        self.repo = config.github_repo
        self.api_url = config.github_api_url.rstrip("/")
        self.graphql_url = config.graphql_url
        self.timeout = config.http_timeout_seconds

        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "User-Agent": "adrbot/1.0",
            }
        )
        if config.github_token:
            self.session.headers["Authorization"] = f"Bearer {config.github_token}"

    def _repo_variables(self, **extra: Any) -> Dict[str, Any]:
        return {"owner": self.owner, "repo": self.repo, **extra}

    def graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a GraphQL query and return its ``data`` object.

        Raises:
            GitHubError: On transport errors, HTTP errors or GraphQL errors
            MalformedResponseError: If the response carries no data
        """
        try:
            response = self.session.post(
                self.graphql_url,
                json={"query": query, "variables": variables},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"GitHub GraphQL request failed: {e}")
            raise GitHubError(f"GitHub GraphQL request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"GitHub returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise MalformedResponseError("GitHub returned a non-object response")

        errors = payload.get("errors")
        if errors:
            messages = "; ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in errors
            )
            raise GitHubError(f"GitHub GraphQL error: {messages}")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise MalformedResponseError("GitHub response has no data")
        return data

    def rest(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        """Call a REST endpoint relative to the API root."""
        url = f"{self.api_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(method, url, json=json, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"GitHub REST {method} {path} failed: {e}")
            raise GitHubError(f"GitHub REST {method} {path} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"GitHub returned invalid JSON: {e}") from e

    def fetch_directory_listing(self, expression: str) -> List[DirectoryEntry]:
        """Return every entry of a directory with its text, in listing order.

        Args:
            expression: Git object expression, e.g. ``main:docs/decisions``
        """
        data = self.graphql(ADR_CONTENTS_QUERY, self._repo_variables(adr_ref=expression))
        entries = _dig(data, "repository", "object", "entries")
        if not isinstance(entries, list):
            raise MalformedResponseError("GitHub directory entries is not a list")

        listing = []
        for entry in entries:
            blob = entry.get("object") or {}
            listing.append(DirectoryEntry(name=entry["name"], text=blob.get("text")))
        return listing

    def fetch_pull_request_page(
        self, cursor: Optional[str], page_size: int
    ) -> PullRequestPage:
        """Fetch one page of pull requests before ``cursor``."""
        data = self.graphql(
            PULL_REQUESTS_QUERY,
            self._repo_variables(cursor=cursor, pageSize=page_size),
        )
        pull_requests = _dig(data, "repository", "pullRequests")
        edges = _dig(pull_requests, "edges")
        page_info = _dig(pull_requests, "pageInfo")

        items = []
        for edge in edges:
            node = _dig(edge, "node")
            file_edges = (node.get("files") or {}).get("edges") or []
            paths = [_dig(file_edge, "node", "path") for file_edge in file_edges]
            items.append(
                PullRequestSummary(
                    title=node.get("title", ""),
                    url=node.get("url", ""),
                    body=node.get("body"),
                    created_at=node.get("createdAt"),
                    state=node.get("state", ""),
                    closed_at=node.get("closedAt"),
                    files=paths,
                )
            )

        has_previous_page = _dig(page_info, "hasPreviousPage")
        if not isinstance(has_previous_page, bool):
            raise MalformedResponseError("GitHub pageInfo.hasPreviousPage is not a boolean")

        start_cursor = page_info.get("startCursor")
        if has_previous_page and not start_cursor:
            raise MalformedResponseError("GitHub response missing 'pageInfo.startCursor'")

        return PullRequestPage(
            items=items,
            has_previous_page=has_previous_page,
            start_cursor=start_cursor,
        )

    def get_branch_head_oid(self, branch: str) -> str:
        """Return the commit oid at the head of a branch."""
        data = self.graphql(
            BRANCH_HEAD_QUERY,
            self._repo_variables(qualifiedName=f"refs/heads/{branch}"),
        )
        return _dig(data, "repository", "ref", "target", "oid")

    def create_branch(self, branch: str, oid: str) -> Dict[str, Any]:
        """Create ``refs/heads/<branch>`` pointing at ``oid``."""
        return self.rest(
            "POST",
            f"/repos/{self.owner}/{self.repo}/git/refs",
            json={"ref": f"refs/heads/{branch}", "sha": oid},
        )

    def get_file_text(self, expression: str) -> str:
        """Return the text of a file, e.g. ``main:docs/decisions/template.md``."""
        data = self.graphql(FILE_TEXT_QUERY, self._repo_variables(expression=expression))
        return _dig(data, "repository", "object", "text")

    def list_directory_names(self, expression: str) -> List[str]:
        """Return the names of the entries in a directory."""
        data = self.graphql(
            DIRECTORY_NAMES_QUERY, self._repo_variables(expression=expression)
        )
        entries = _dig(data, "repository", "object", "entries")
        return [entry["name"] for entry in entries]

    def commit_file(
        self,
        branch: str,
        path: str,
        contents: str,
        headline: str,
        expected_head_oid: str,
    ) -> str:
        """Commit a single new file on ``branch`` and return the commit oid."""
        encoded = base64.b64encode(contents.encode("utf-8")).decode("ascii")
        data = self.graphql(
            COMMIT_FILE_MUTATION,
            {
                "input": {
                    "branch": {
                        "repositoryNameWithOwner": f"{self.owner}/{self.repo}",
                        "branchName": branch,
                    },
                    "message": {"headline": headline},
                    "fileChanges": {"additions": [{"path": path, "contents": encoded}]},
                    "expectedHeadOid": expected_head_oid,
                }
            },
        )
        return _dig(data, "createCommitOnBranch", "commit", "oid")

    def get_repository_id(self) -> str:
        data = self.graphql(REPOSITORY_ID_QUERY, self._repo_variables())
        return _dig(data, "repository", "id")

    def create_pull_request(
        self, repository_id: str, base: str, head: str, title: str, body: str = ""
    ) -> str:
        """Open a pull request and return its URL."""
        data = self.graphql(
            CREATE_PULL_REQUEST_MUTATION,
            {
                "input": {
                    "repositoryId": repository_id,
                    "baseRefName": base,
                    "headRefName": head,
                    "title": title,
                    "body": body,
                }
            },
        )
        return _dig(data, "createPullRequest", "pullRequest", "url")
