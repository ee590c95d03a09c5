"""FastAPI application exposing ADRs and their pull requests as JSON."""

from datetime import date, datetime, timezone
from typing import Any, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder

from .adr_parser import MetadataParseError
from .adrs import AdrService
from .config import settings
from .github_client import GitHubError
from .models import FilterCriteria


def _midnight_utc(value: Optional[date]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def create_api_app(service: Optional[AdrService] = None) -> FastAPI:
    """Create a FastAPI app exposing read-only ADR endpoints."""
    adr_service = service or AdrService(settings)
    app = FastAPI(title="ADR Bot API", version="1.0.0")

    @app.get("/api/adrs")
    def list_adrs(
        status: Optional[List[str]] = Query(default=None),
        impact: Optional[List[str]] = Query(default=None),
        tags: Optional[List[str]] = Query(default=None),
        committed_after: Optional[date] = None,
        decide_before: Optional[date] = None,
    ) -> Any:
        """Return ADRs matching all of the given filters."""
        criteria = FilterCriteria.build(
            status=status,
            impact=impact,
            tags=tags,
            committed_after=_midnight_utc(committed_after),
            decide_before=_midnight_utc(decide_before),
        )
        try:
            adr_files = adr_service.get_adr_files(criteria)
        except MetadataParseError as e:
            raise HTTPException(status_code=502, detail=f"{e.file_name}: {e}") from e
        except GitHubError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e

        items = [adr_file.to_dict() for adr_file in adr_files]
        return jsonable_encoder({"items": items, "total": len(items)})

    @app.get("/api/adrs/pull-requests")
    def pull_requests_by_file(file: Optional[str] = None) -> Any:
        """Return pull requests grouped by ADR file, or for a single file."""
        try:
            index = adr_service.get_pull_requests_by_file()
        except GitHubError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e

        if file is not None:
            return {
                "file": file,
                "items": [pr.to_dict() for pr in index.get(file, []) or []],
                "truncated": index.truncated,
            }
        return index.to_dict()

    @app.get("/health")
    def health() -> dict:
        """Basic health endpoint."""
        return {"status": "ok", "service": "adrbot-api"}

    return app


app = create_api_app()
