from pydantic import field_validator
from typing import Any, Optional
from app.schemas.common import CamelModel, RequiredStr, reject_explicit_null


class BookCreate(CamelModel):
    title: RequiredStr
    author: RequiredStr
    category: Optional[str] = None
    image_url: Optional[str] = None
    publish_year: Optional[str] = None
    description: Optional[str] = None


class BookUpdate(CamelModel):
    """Patch payload: only the fields present in the request are applied."""
    title: Optional[RequiredStr] = None
    author: Optional[RequiredStr] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    publish_year: Optional[str] = None
    description: Optional[str] = None

    @field_validator("title", "author")
    @classmethod
    def required_not_null(cls, value):
        return reject_explicit_null(value)


class BookResponse(CamelModel):
    id: int
    title: str
    author: str
    category: Optional[str] = None
    image_url: Optional[str] = None
    publish_year: Optional[str] = None
    description: Optional[str] = None


def validate_book_insert(data: Any) -> BookCreate:
    """Raises pydantic.ValidationError when title or author is missing or blank."""
    return BookCreate.model_validate(data)
