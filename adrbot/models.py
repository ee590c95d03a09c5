"""Data models for ADR records, filters and pull requests."""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional


class _Missing:
    """Marker for an ADR without a frontmatter block."""

    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


@dataclass(frozen=True)
class AdrRecord:
    """Normalized form of one parsed ADR document.

    ``metadata`` is ``MISSING`` when the document has no frontmatter block,
    ``None`` when the block is empty, and the parsed YAML value otherwise.
    """

    title: Optional[str] = None
    sections: Mapping[str, str] = field(default_factory=dict)
    metadata: Any = MISSING

    def __post_init__(self) -> None:
        object.__setattr__(self, "sections", MappingProxyType(dict(self.sections)))

    @property
    def has_metadata_block(self) -> bool:
        return self.metadata is not MISSING

    @property
    def frontmatter(self) -> Optional[Any]:
        """Parsed frontmatter, or None when absent or empty."""
        return None if self.metadata is MISSING else self.metadata

    def section(self, name: str) -> Optional[str]:
        return self.sections.get(name)

    def to_dict(self) -> Dict[str, Any]:
        """Flat JSON shape used by the Slack and HTTP surfaces."""
        data: Dict[str, Any] = {}
        if self.metadata is not MISSING:
            data["frontmatter"] = self.metadata
        if self.title is not None:
            data["title"] = self.title
        data.update(self.sections)
        return data


@dataclass(frozen=True)
class FilterCriteria:
    """Optional predicates narrowing the ADRs returned by a fetch."""

    status: Optional[FrozenSet[str]] = None
    impact: Optional[FrozenSet[str]] = None
    tags: Optional[FrozenSet[str]] = None
    committed_after: Optional[datetime] = None
    decide_before: Optional[datetime] = None

    @classmethod
    def build(
        cls,
        status: Optional[Iterable[str]] = None,
        impact: Optional[Iterable[str]] = None,
        tags: Optional[Iterable[str]] = None,
        committed_after: Optional[datetime] = None,
        decide_before: Optional[datetime] = None,
    ) -> "FilterCriteria":
        """Build criteria from plain iterables, treating None as unset."""
        return cls(
            status=frozenset(status) if status is not None else None,
            impact=frozenset(impact) if impact is not None else None,
            tags=frozenset(tags) if tags is not None else None,
            committed_after=committed_after,
            decide_before=decide_before,
        )

    def is_empty(self) -> bool:
        return (
            self.status is None
            and self.impact is None
            and self.tags is None
            and self.committed_after is None
            and self.decide_before is None
        )


@dataclass(frozen=True)
class DirectoryEntry:
    """One file from the ADR directory listing, with its text contents."""

    name: str
    text: Optional[str]


@dataclass(frozen=True)
class PullRequestSummary:
    """A pull request as reported by the pull request history query."""

    title: str
    url: str
    body: Optional[str]
    created_at: Optional[str]
    state: str
    closed_at: Optional[str] = None
    files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "body": self.body,
            "createdAt": self.created_at,
            "state": self.state,
        }


@dataclass(frozen=True)
class PullRequestPage:
    """One page of pull request history."""

    items: List[PullRequestSummary]
    has_previous_page: bool
    start_cursor: Optional[str]


@dataclass
class AdrFile:
    """An ADR returned by the fetcher: file name, public link and parsed data."""

    name: str
    url: str
    data: AdrRecord

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "url": self.url, "data": self.data.to_dict()}


@dataclass
class PullRequestIndex:
    """Pull requests grouped by the base name of each ADR file they touched."""

    by_file: Dict[str, List[PullRequestSummary]] = field(default_factory=dict)
    pages_fetched: int = 0
    truncated: bool = False

    def add(self, file_name: str, pull_request: PullRequestSummary) -> None:
        self.by_file.setdefault(file_name, []).append(pull_request)

    def get(
        self, file_name: str, default: Optional[List[PullRequestSummary]] = None
    ) -> Optional[List[PullRequestSummary]]:
        return self.by_file.get(file_name, default)

    def __getitem__(self, file_name: str) -> List[PullRequestSummary]:
        return self.by_file[file_name]

    def __contains__(self, file_name: object) -> bool:
        return file_name in self.by_file

    def __iter__(self) -> Iterator[str]:
        return iter(self.by_file)

    def __len__(self) -> int:
        return len(self.by_file)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files": {
                name: [pr.to_dict() for pr in prs] for name, prs in self.by_file.items()
            },
            "pages_fetched": self.pages_fetched,
            "truncated": self.truncated,
        }


@dataclass(frozen=True)
class CreatedAdr:
    """Result of the ADR creation flow."""

    pull_request_url: str
    adr_file: str
