# backend/app/routers/admin.py
"""
Catalog administration: create/update/delete, CSV import and image upload.

No access control is applied here; deployments are expected to put an
authenticating proxy or dependency in front of /api/admin.
"""
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from typing import List, Optional
import logging

from app.core.errors import CsvFormatError
from app.routers.params import BookId, RecommenderId, RecommendationId
from app.schemas.book import BookUpdate, BookResponse
from app.schemas.common import MAX_ID
from app.schemas.recommender import RecommenderUpdate, RecommenderResponse
from app.schemas.recommendation import (
    CombinedCreate,
    CompleteRecommendationResponse,
    RecommendationCreate,
    RecommendationResponse,
    RecommendationUpdate,
)
from app.schemas.csv_import import CsvRecord, ImportResult
from app.services.csv_import import parse_csv_text
from app.services.storage import CatalogStorage, get_storage
from app.utils.uploads import discard_image, save_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _not_found(entity: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{entity} not found")


# ----------------------------
# Books
# ----------------------------
@router.post("/books", response_model=CompleteRecommendationResponse, status_code=status.HTTP_201_CREATED)
def create_book_recommendation(
    payload: CombinedCreate,
    storage: CatalogStorage = Depends(get_storage),
):
    """Create book, recommender and recommendation in one step (book/recommender reused when they exist)."""
    result = storage.create_complete_recommendation(payload)
    logger.info(
        f"Created recommendation {result.id}: book={result.book_id} recommender={result.recommender_id}"
    )
    return result


@router.put("/books/{book_id}", response_model=BookResponse)
def update_book(book_id: BookId, payload: BookUpdate, storage: CatalogStorage = Depends(get_storage)):
    book = storage.update_book(book_id, payload)
    if book is None:
        raise _not_found("Book")
    return book


@router.delete("/books/{book_id}")
def delete_book(book_id: BookId, storage: CatalogStorage = Depends(get_storage)):
    """Delete a book together with every recommendation of it."""
    if not storage.delete_book(book_id):
        raise _not_found("Book")
    return {"success": True}


# ----------------------------
# Recommenders
# ----------------------------
@router.put("/recommenders/{recommender_id}", response_model=RecommenderResponse)
def update_recommender(
    recommender_id: RecommenderId,
    payload: RecommenderUpdate,
    storage: CatalogStorage = Depends(get_storage),
):
    recommender = storage.update_recommender(recommender_id, payload)
    if recommender is None:
        raise _not_found("Recommender")
    return recommender


@router.delete("/recommenders/{recommender_id}")
def delete_recommender(recommender_id: RecommenderId, storage: CatalogStorage = Depends(get_storage)):
    """Delete a recommender together with every recommendation they made."""
    if not storage.delete_recommender(recommender_id):
        raise _not_found("Recommender")
    return {"success": True}


# ----------------------------
# Recommendations
# ----------------------------
@router.get("/recommendations", response_model=List[CompleteRecommendationResponse])
def list_recommendations(storage: CatalogStorage = Depends(get_storage)):
    return storage.get_all_complete_recommendations()


@router.post("/recommendations", response_model=RecommendationResponse, status_code=status.HTTP_201_CREATED)
def link_book_and_recommender(
    payload: RecommendationCreate,
    storage: CatalogStorage = Depends(get_storage),
):
    """Link an existing book and an existing recommender."""
    if not storage.get_book_by_id(payload.book_id):
        raise _not_found("Book")
    if not storage.get_recommender_by_id(payload.recommender_id):
        raise _not_found("Recommender")
    return storage.create_recommendation(payload)


@router.put("/recommendations/{recommendation_id}", response_model=RecommendationResponse)
def update_recommendation(
    recommendation_id: RecommendationId,
    payload: RecommendationUpdate,
    storage: CatalogStorage = Depends(get_storage),
):
    rec = storage.update_recommendation(recommendation_id, payload)
    if rec is None:
        raise _not_found("Recommendation")
    return rec


@router.delete("/recommendations/{recommendation_id}")
def delete_recommendation(recommendation_id: RecommendationId, storage: CatalogStorage = Depends(get_storage)):
    if not storage.delete_recommendation(recommendation_id):
        raise _not_found("Recommendation")
    return {"success": True}


# ----------------------------
# Bulk import
# ----------------------------
@router.post("/import-csv", response_model=ImportResult)
def import_csv(records: List[CsvRecord], storage: CatalogStorage = Depends(get_storage)):
    """Import rows already parsed by the client; duplicates and bad rows are skipped."""
    return storage.import_from_csv(records)


@router.post("/import-csv-file", response_model=ImportResult)
async def import_csv_file(
    file: UploadFile = File(...),
    storage: CatalogStorage = Depends(get_storage),
):
    """Import a CSV file with a header row (English or Japanese column names)."""
    filename = (file.filename or "").lower()
    if not filename.endswith(".csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please upload a .csv file.",
        )

    try:
        text = (await file.read()).decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not read CSV file. Save it as UTF-8 and try again.",
        )

    try:
        records = parse_csv_text(text)
    except CsvFormatError as e:
        logger.warning(f"Rejected CSV upload {file.filename!r}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(f"Importing {len(records)} rows from {file.filename!r}")
    # Storage calls block; keep them off the event loop
    return await run_in_threadpool(storage.import_from_csv, records)


# ----------------------------
# Images
# ----------------------------
@router.post("/upload")
async def upload_image(
    image: UploadFile = File(...),
    entity_type: Optional[str] = Form(None, alias="type"),
    entity_id: Optional[int] = Form(None, alias="entityId", ge=1, le=MAX_ID),
    storage: CatalogStorage = Depends(get_storage),
):
    """
    Store an image and return its URL.

    When ``type`` (book | recommender) and ``entityId`` are given, the
    entity's imageUrl is pointed at the new file as well.
    """
    if entity_type is not None and entity_type not in ("book", "recommender"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="type must be 'book' or 'recommender'",
        )

    attach = bool(entity_type) and entity_id is not None
    if attach:
        lookup = storage.get_book_by_id if entity_type == "book" else storage.get_recommender_by_id
        exists = await run_in_threadpool(lookup, entity_id)
        if not exists:
            raise _not_found(entity_type.capitalize())

    image_url = await save_image(image)

    if attach:
        if entity_type == "book":
            updated = await run_in_threadpool(storage.update_book, entity_id, BookUpdate(image_url=image_url))
        else:
            updated = await run_in_threadpool(
                storage.update_recommender, entity_id, RecommenderUpdate(image_url=image_url)
            )
        # Deleted between the existence check and the update
        if updated is None:
            discard_image(image_url)
            raise _not_found(entity_type.capitalize())

    return {"imageUrl": image_url}
