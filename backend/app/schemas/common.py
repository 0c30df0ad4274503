from typing import Annotated
from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel


# Required text column: surrounding whitespace is dropped and the result must be non-empty
RequiredStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

# Ids are Column(Integer): anything outside 1..2**31-1 cannot name a row
MAX_ID = 2**31 - 1
EntityId = Annotated[int, Field(ge=1, le=MAX_ID)]


class CamelModel(BaseModel):
    """Python attributes stay snake_case; JSON bodies use camelCase (imageUrl, bookId, ...)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def reject_explicit_null(value):
    """Partial updates may omit a required column but may not null it out."""
    if value is None:
        raise ValueError("must not be null")
    return value
