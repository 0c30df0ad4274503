from pydantic import field_validator
from typing import Any, Optional
from app.schemas.common import CamelModel, RequiredStr, reject_explicit_null


class RecommenderCreate(CamelModel):
    name: RequiredStr
    organization: Optional[str] = None
    industry: Optional[str] = None
    image_url: Optional[str] = None


class RecommenderUpdate(CamelModel):
    name: Optional[RequiredStr] = None
    organization: Optional[str] = None
    industry: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def required_not_null(cls, value):
        return reject_explicit_null(value)


class RecommenderResponse(CamelModel):
    id: int
    name: str
    organization: Optional[str] = None
    industry: Optional[str] = None
    image_url: Optional[str] = None


def validate_recommender_insert(data: Any) -> RecommenderCreate:
    return RecommenderCreate.model_validate(data)
