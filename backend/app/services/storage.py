"""
Storage interface for the book / recommender / recommendation catalog.

Two implementations exist, selected once at process startup from
``settings.STORAGE_BACKEND``:

- ``MemoryStorage`` keeps everything in dicts (dev and tests).
- ``DatabaseStorage`` persists through SQLAlchemy.

Both must behave identically from the caller's point of view:

- lookups that miss return ``None``; deletes of unknown ids return ``False``
- updates are patches: only the fields set on the update model are written
- deleting a book or recommender first deletes every recommendation that
  references it, then the entity itself, as one unit
- ``create_complete_recommendation`` finds or creates the book (by title) and
  the recommender (by name), case-insensitively, then always inserts a new
  recommendation, as one unit
- complete-recommendation reads raise ``ReferentialIntegrityError`` on a
  dangling link instead of skipping it
"""
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Iterable, Optional
import logging

from pydantic import ValidationError

from app.core.config import settings
from app.schemas.book import BookCreate, BookUpdate, BookResponse
from app.schemas.recommender import RecommenderCreate, RecommenderUpdate, RecommenderResponse
from app.schemas.recommendation import (
    CombinedCreate,
    CompleteRecommendationResponse,
    RecommendationCreate,
    RecommendationResponse,
    RecommendationUpdate,
)
from app.schemas.csv_import import CsvRecord, ImportResult
from app.services.csv_import import record_to_combined
from app.utils.timing import time_operation

logger = logging.getLogger(__name__)


class CatalogStorage(ABC):

    # ----------------------------
    # Books
    # ----------------------------
    @abstractmethod
    def get_all_books(self) -> list[BookResponse]: ...

    @abstractmethod
    def get_book_by_id(self, book_id: int) -> Optional[BookResponse]: ...

    @abstractmethod
    def get_book_by_title(self, title: str) -> Optional[BookResponse]:
        """Case-insensitive exact match."""

    @abstractmethod
    def create_book(self, book: BookCreate) -> BookResponse: ...

    @abstractmethod
    def update_book(self, book_id: int, changes: BookUpdate) -> Optional[BookResponse]: ...

    @abstractmethod
    def delete_book(self, book_id: int) -> bool: ...

    @abstractmethod
    def search_books(self, query: str) -> list[BookResponse]:
        """Case-insensitive substring match on title or author."""

    @abstractmethod
    def get_categories(self) -> list[str]:
        """Distinct non-empty categories currently assigned to books."""

    # ----------------------------
    # Recommenders
    # ----------------------------
    @abstractmethod
    def get_all_recommenders(self) -> list[RecommenderResponse]: ...

    @abstractmethod
    def get_recommender_by_id(self, recommender_id: int) -> Optional[RecommenderResponse]: ...

    @abstractmethod
    def get_recommender_by_name(self, name: str) -> Optional[RecommenderResponse]:
        """Case-insensitive exact match."""

    @abstractmethod
    def create_recommender(self, recommender: RecommenderCreate) -> RecommenderResponse: ...

    @abstractmethod
    def update_recommender(
        self, recommender_id: int, changes: RecommenderUpdate
    ) -> Optional[RecommenderResponse]: ...

    @abstractmethod
    def delete_recommender(self, recommender_id: int) -> bool: ...

    @abstractmethod
    def search_recommenders(self, query: str) -> list[RecommenderResponse]:
        """Case-insensitive substring match on name or organization."""

    # ----------------------------
    # Recommendations
    # ----------------------------
    @abstractmethod
    def get_all_recommendations(self) -> list[RecommendationResponse]: ...

    @abstractmethod
    def get_recommendation_by_id(self, recommendation_id: int) -> Optional[RecommendationResponse]: ...

    @abstractmethod
    def find_recommendation(self, book_id: int, recommender_id: int) -> Optional[RecommendationResponse]:
        """First recommendation linking this book and recommender, if any."""

    @abstractmethod
    def create_recommendation(self, recommendation: RecommendationCreate) -> RecommendationResponse: ...

    @abstractmethod
    def update_recommendation(
        self, recommendation_id: int, changes: RecommendationUpdate
    ) -> Optional[RecommendationResponse]: ...

    @abstractmethod
    def delete_recommendation(self, recommendation_id: int) -> bool: ...

    # ----------------------------
    # Joins
    # ----------------------------
    @abstractmethod
    def get_books_by_recommender_id(self, recommender_id: int) -> list[BookResponse]: ...

    @abstractmethod
    def get_recommenders_by_book_id(self, book_id: int) -> list[RecommenderResponse]: ...

    @abstractmethod
    def get_all_complete_recommendations(self) -> list[CompleteRecommendationResponse]:
        """Every recommendation with its book and recommender; no deduplication."""

    @abstractmethod
    def get_complete_recommendations_by_book_id(self, book_id: int) -> list[CompleteRecommendationResponse]:
        """At most one entry per recommender; the lowest recommendation id wins."""

    @abstractmethod
    def get_complete_recommendations_by_recommender_id(
        self, recommender_id: int
    ) -> list[CompleteRecommendationResponse]:
        """At most one entry per book; the lowest recommendation id wins."""

    @abstractmethod
    def create_complete_recommendation(self, data: CombinedCreate) -> CompleteRecommendationResponse: ...

    # ----------------------------
    # Bulk import
    # ----------------------------
    def import_from_csv(self, records: Iterable[CsvRecord]) -> ImportResult:
        """
        Import CSV rows, skipping duplicates and rows that fail.

        A row is skipped when:
        - an earlier row in the same batch had the same title and recommender
          name (case-insensitive)
        - the book and recommender already exist and are already linked
        - validation or creation raises; the error is logged and the batch
          continues

        Returns counts for "count imported, skipped skipped, out of total".
        """
        records = list(records)
        imported = 0
        skipped = 0
        seen: set[tuple[str, str]] = set()

        with time_operation(f"import_from_csv rows={len(records)}", logger.info):
            for index, record in enumerate(records):
                try:
                    data = record_to_combined(record)
                except ValidationError as e:
                    logger.warning(f"Skipping CSV row {index}: invalid data: {e.errors()}")
                    skipped += 1
                    continue

                key = (data.title.lower(), data.recommender_name.lower())
                if key in seen:
                    logger.debug(f"Skipping CSV row {index}: duplicate in batch {key}")
                    skipped += 1
                    continue
                seen.add(key)

                try:
                    if self._is_already_linked(data):
                        logger.debug(f"Skipping CSV row {index}: already imported {key}")
                        skipped += 1
                        continue
                    self.create_complete_recommendation(data)
                    imported += 1
                except Exception:
                    logger.warning(f"Failed to import CSV row {index}: {record!r}", exc_info=True)
                    skipped += 1

        logger.info(f"CSV import complete: {imported} imported, {skipped} skipped, out of {len(records)}")
        return ImportResult(count=imported, skipped=skipped, total=len(records))

    def _is_already_linked(self, data: CombinedCreate) -> bool:
        book = self.get_book_by_title(data.title)
        if book is None:
            return False
        recommender = self.get_recommender_by_name(data.recommender_name)
        if recommender is None:
            return False
        return self.find_recommendation(book.id, recommender.id) is not None


def first_per_key(items: Iterable, key) -> list:
    """Keep the first item for each distinct key, preserving order."""
    seen = set()
    result = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        result.append(item)
    return result


def book_fields_from_combined(data: CombinedCreate) -> BookCreate:
    return BookCreate(
        title=data.title,
        author=data.author,
        category=data.category,
        image_url=data.image_url,
        publish_year=data.publish_year,
        description=data.description,
    )


def book_patch_from_combined(existing: BookResponse, data: CombinedCreate) -> Optional[BookUpdate]:
    """
    Opportunistic enrichment of an existing book during combined create.

    Only when the payload brings an image and the stored book has none; the
    publish year and description ride along when supplied.
    """
    if not data.image_url or existing.image_url:
        return None
    changes = {"image_url": data.image_url}
    if data.publish_year:
        changes["publish_year"] = data.publish_year
    if data.description:
        changes["description"] = data.description
    return BookUpdate(**changes)


def recommender_fields_from_combined(data: CombinedCreate) -> RecommenderCreate:
    return RecommenderCreate(
        name=data.recommender_name,
        organization=data.recommender_org,
        industry=data.industry,
    )


def recommendation_fields_from_combined(
    data: CombinedCreate, book_id: int, recommender_id: int
) -> RecommendationCreate:
    return RecommendationCreate(
        book_id=book_id,
        recommender_id=recommender_id,
        comment=data.comment,
        recommendation_date=data.recommendation_date,
        recommendation_medium=data.recommendation_medium,
        source=data.source,
        source_url=data.source_url,
        reason=data.reason,
    )


def build_storage(backend: Optional[str] = None) -> CatalogStorage:
    backend = backend or settings.STORAGE_BACKEND
    if backend == "memory":
        from app.services.memory_storage import MemoryStorage
        logger.info("Using in-memory catalog storage")
        return MemoryStorage()

    from app.database import SessionLocal
    from app.services.database_storage import DatabaseStorage
    logger.info("Using database catalog storage (%s)", settings.get_masked_database_url())
    return DatabaseStorage(SessionLocal)


@lru_cache
def get_storage() -> CatalogStorage:
    """FastAPI dependency: the process-wide storage instance."""
    return build_storage()
