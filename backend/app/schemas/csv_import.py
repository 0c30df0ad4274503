from pydantic import Field
from typing import Optional
from app.schemas.common import CamelModel


class CsvRecord(CamelModel):
    """
    One row of a recommendations CSV after header mapping.

    Every field is optional here so a single malformed row is counted as
    skipped during import instead of rejecting the whole request.
    """
    title: Optional[str] = None
    author: Optional[str] = None
    recommender_name: Optional[str] = None
    recommender_org: Optional[str] = None
    comment: Optional[str] = None
    recommendation_date: Optional[str] = None  # "date medium", e.g. "2019 Interview"
    recommendation_medium: Optional[str] = None
    reason: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    publish_year: Optional[str] = None
    description: Optional[str] = None
    source: Optional[str] = None
    source_url: Optional[str] = None
    # Unrecognized columns, keyed by their lowercased header
    extra: dict[str, str] = Field(default_factory=dict)


class ImportResult(CamelModel):
    count: int
    skipped: int
    total: int
