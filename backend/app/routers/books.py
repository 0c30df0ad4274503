from fastapi import APIRouter, Depends, Query, HTTPException, status
from typing import Optional, List
import logging
from app.models import BOOK_CATEGORIES
from app.schemas.book import BookResponse
from app.schemas.recommendation import CompleteRecommendationResponse
from app.routers.params import BookId
from app.services.storage import CatalogStorage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["books"])


@router.get("", response_model=List[BookResponse])
def get_books(
    category: Optional[str] = Query(None, description="Filter by category"),
    limit: Optional[int] = Query(None, ge=1, le=5000),
    offset: int = Query(0, ge=0),
    storage: CatalogStorage = Depends(get_storage),
):
    """List all books, optionally filtered by category and sliced into a page."""
    books = storage.get_all_books()

    if category:
        books = [book for book in books if book.category == category]

    end = offset + limit if limit is not None else None
    result = books[offset:end]

    logger.info(f"Fetched {len(result)} books", extra={
        "category": category,
        "limit": limit,
        "offset": offset,
    })
    return result


@router.get("/search", response_model=List[BookResponse])
def search_books(
    q: Optional[str] = Query(None, description="Search in title or author"),
    storage: CatalogStorage = Depends(get_storage),
):
    """Case-insensitive substring search; an empty query returns every book."""
    if not q or not q.strip():
        return storage.get_all_books()
    return storage.search_books(q.strip())


@router.get("/categories", response_model=List[str])
def get_categories(storage: CatalogStorage = Depends(get_storage)):
    """Suggested categories followed by any other category already in use."""
    in_use = storage.get_categories()
    return BOOK_CATEGORIES + [c for c in in_use if c not in BOOK_CATEGORIES]


@router.get("/{book_id}", response_model=BookResponse)
def get_book(book_id: BookId, storage: CatalogStorage = Depends(get_storage)):
    book = storage.get_book_by_id(book_id)
    if not book:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Book not found",
        )
    return book


@router.get("/{book_id}/recommenders", response_model=List[CompleteRecommendationResponse])
def get_book_recommenders(book_id: BookId, storage: CatalogStorage = Depends(get_storage)):
    """Recommendations for a book, one per recommender."""
    if not storage.get_book_by_id(book_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Book not found",
        )
    return storage.get_complete_recommendations_by_book_id(book_id)
