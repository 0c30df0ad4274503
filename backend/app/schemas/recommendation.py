from typing import Any, Optional
from app.schemas.common import CamelModel, EntityId, RequiredStr
from app.schemas.book import BookResponse
from app.schemas.recommender import RecommenderResponse


class RecommendationFields(CamelModel):
    """Commentary attached to a recommendation link."""
    comment: Optional[str] = None
    recommendation_date: Optional[str] = None  # a year or a descriptive period
    recommendation_medium: Optional[str] = None
    source: Optional[str] = None  # event, article or interview name
    source_url: Optional[str] = None
    reason: Optional[str] = None


class RecommendationCreate(RecommendationFields):
    book_id: EntityId
    recommender_id: EntityId


class RecommendationUpdate(RecommendationFields):
    """Patch payload; the book/recommender pair of a link cannot be changed."""


class RecommendationResponse(RecommendationFields):
    id: int
    book_id: int
    recommender_id: int


class CompleteRecommendationResponse(RecommendationResponse):
    book: BookResponse
    recommender: RecommenderResponse


class CombinedCreate(RecommendationFields):
    """
    One-shot admin payload: book fields, recommender fields and commentary.

    The book is matched by title and the recommender by name (both
    case-insensitive) and created when missing.
    """
    title: RequiredStr
    author: RequiredStr
    category: Optional[str] = None
    image_url: Optional[str] = None
    publish_year: Optional[str] = None
    description: Optional[str] = None
    recommender_name: RequiredStr
    recommender_org: Optional[str] = None
    industry: Optional[str] = None


def validate_recommendation_insert(data: Any) -> RecommendationCreate:
    """Raises pydantic.ValidationError when bookId/recommenderId are missing or not numeric."""
    return RecommendationCreate.model_validate(data)


def validate_combined_insert(data: Any) -> CombinedCreate:
    """Raises pydantic.ValidationError when title, author or recommenderName is missing or blank."""
    return CombinedCreate.model_validate(data)
