"""Path parameter types shared by the routers."""
from typing import Annotated

from fastapi import Path

from app.schemas.common import MAX_ID

# Out-of-range ids fail validation (422) before any storage lookup
BookId = Annotated[int, Path(ge=1, le=MAX_ID, description="Book id")]
RecommenderId = Annotated[int, Path(ge=1, le=MAX_ID, description="Recommender id")]
RecommendationId = Annotated[int, Path(ge=1, le=MAX_ID, description="Recommendation id")]
