"""Frontmatter filtering for ADR queries."""

from datetime import date, datetime, timezone
from typing import Any, FrozenSet, Mapping, Optional

from .models import FilterCriteria


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Convert a frontmatter date value to an aware UTC datetime.

    YAML loads unquoted ``2024-01-01`` as a ``date`` and quoted values as
    strings, so both are accepted. Naive values are taken as UTC.

    Returns:
        The timestamp, or None if the value cannot be interpreted as one
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def matches(metadata: Any, criteria: Optional[FilterCriteria]) -> bool:
    """Decide whether an ADR's frontmatter satisfies the given criteria.

    All active criteria must hold:

    - status / impact: the frontmatter value is one of the accepted values
    - committed_after: ``committed-on`` is not earlier than the cutoff
    - decide_before: the ADR is ``open`` and ``decide-by`` is not later than
      the cutoff
    - tags: ``tags`` is a list sharing at least one tag with the criteria

    Args:
        metadata: Parsed frontmatter (may be missing or None)
        criteria: Filters to apply; None or empty criteria match everything

    Returns:
        True if the ADR should be included
    """
    if criteria is None or criteria.is_empty():
        return True

    if not isinstance(metadata, Mapping):
        return False

    if criteria.status is not None and not _accepted(metadata.get("status"), criteria.status):
        return False

    if criteria.impact is not None and not _accepted(metadata.get("impact"), criteria.impact):
        return False

    if criteria.committed_after is not None:
        committed_on = parse_timestamp(metadata.get("committed-on"))
        if committed_on is None or committed_on < _aware(criteria.committed_after):
            return False

    if criteria.decide_before is not None:
        if metadata.get("status") != "open":
            return False
        decide_by = parse_timestamp(metadata.get("decide-by"))
        if decide_by is None or decide_by > _aware(criteria.decide_before):
            return False

    if criteria.tags is not None:
        tags = metadata.get("tags")
        if not isinstance(tags, list):
            return False
        return any(isinstance(tag, str) and tag in criteria.tags for tag in tags)

    return True


def _accepted(value: Any, accepted: FrozenSet[str]) -> bool:
    return isinstance(value, str) and value in accepted


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
