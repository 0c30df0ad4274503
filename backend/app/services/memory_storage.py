"""
In-memory catalog storage for development and tests.

Entities live in dicts keyed by id. Ids come from per-entity counters that
only ever increase, so a deleted id is never handed out again. FastAPI runs
sync handlers in a threadpool, so every mutation, including the whole
find-or-create-then-link sequence, holds ``self._lock``; reads work on
snapshots of the dict values.
"""
import itertools
import logging
import threading
from typing import Optional

from app.core.errors import ReferentialIntegrityError
from app.schemas.book import BookCreate, BookUpdate, BookResponse
from app.schemas.recommender import RecommenderCreate, RecommenderUpdate, RecommenderResponse
from app.schemas.recommendation import (
    CombinedCreate,
    CompleteRecommendationResponse,
    RecommendationCreate,
    RecommendationResponse,
    RecommendationUpdate,
)
from app.services.storage import (
    CatalogStorage,
    book_fields_from_combined,
    book_patch_from_combined,
    first_per_key,
    recommendation_fields_from_combined,
    recommender_fields_from_combined,
)

logger = logging.getLogger(__name__)


class MemoryStorage(CatalogStorage):

    def __init__(self):
        self._books: dict[int, BookResponse] = {}
        self._recommenders: dict[int, RecommenderResponse] = {}
        self._recommendations: dict[int, RecommendationResponse] = {}
        self._book_ids = itertools.count(1)
        self._recommender_ids = itertools.count(1)
        self._recommendation_ids = itertools.count(1)
        self._lock = threading.RLock()

    # Books

    def get_all_books(self) -> list[BookResponse]:
        return [book.model_copy() for book in list(self._books.values())]

    def get_book_by_id(self, book_id: int) -> Optional[BookResponse]:
        book = self._books.get(book_id)
        return book.model_copy() if book else None

    def get_book_by_title(self, title: str) -> Optional[BookResponse]:
        wanted = title.lower()
        for book in list(self._books.values()):
            if book.title.lower() == wanted:
                return book.model_copy()
        return None

    def create_book(self, book: BookCreate) -> BookResponse:
        with self._lock:
            new_book = BookResponse(id=next(self._book_ids), **book.model_dump())
            self._books[new_book.id] = new_book
            return new_book.model_copy()

    def update_book(self, book_id: int, changes: BookUpdate) -> Optional[BookResponse]:
        with self._lock:
            book = self._books.get(book_id)
            if book is None:
                return None
            updated = book.model_copy(update=changes.model_dump(exclude_unset=True))
            self._books[book_id] = updated
            return updated.model_copy()

    def delete_book(self, book_id: int) -> bool:
        with self._lock:
            if book_id not in self._books:
                return False
            self._delete_recommendations_where(lambda rec: rec.book_id == book_id)
            del self._books[book_id]
            logger.info(f"Deleted book {book_id} and its recommendations")
            return True

    def search_books(self, query: str) -> list[BookResponse]:
        q = query.lower()
        return [
            book.model_copy()
            for book in list(self._books.values())
            if q in book.title.lower() or q in book.author.lower()
        ]

    def get_categories(self) -> list[str]:
        categories = {book.category for book in list(self._books.values()) if book.category}
        return sorted(categories)

    # Recommenders

    def get_all_recommenders(self) -> list[RecommenderResponse]:
        return [r.model_copy() for r in list(self._recommenders.values())]

    def get_recommender_by_id(self, recommender_id: int) -> Optional[RecommenderResponse]:
        recommender = self._recommenders.get(recommender_id)
        return recommender.model_copy() if recommender else None

    def get_recommender_by_name(self, name: str) -> Optional[RecommenderResponse]:
        wanted = name.lower()
        for recommender in list(self._recommenders.values()):
            if recommender.name.lower() == wanted:
                return recommender.model_copy()
        return None

    def create_recommender(self, recommender: RecommenderCreate) -> RecommenderResponse:
        with self._lock:
            new_recommender = RecommenderResponse(id=next(self._recommender_ids), **recommender.model_dump())
            self._recommenders[new_recommender.id] = new_recommender
            return new_recommender.model_copy()

    def update_recommender(
        self, recommender_id: int, changes: RecommenderUpdate
    ) -> Optional[RecommenderResponse]:
        with self._lock:
            recommender = self._recommenders.get(recommender_id)
            if recommender is None:
                return None
            updated = recommender.model_copy(update=changes.model_dump(exclude_unset=True))
            self._recommenders[recommender_id] = updated
            return updated.model_copy()

    def delete_recommender(self, recommender_id: int) -> bool:
        with self._lock:
            if recommender_id not in self._recommenders:
                return False
            self._delete_recommendations_where(lambda rec: rec.recommender_id == recommender_id)
            del self._recommenders[recommender_id]
            logger.info(f"Deleted recommender {recommender_id} and its recommendations")
            return True

    def search_recommenders(self, query: str) -> list[RecommenderResponse]:
        q = query.lower()
        return [
            r.model_copy()
            for r in list(self._recommenders.values())
            if q in r.name.lower() or (r.organization and q in r.organization.lower())
        ]

    # Recommendations

    def get_all_recommendations(self) -> list[RecommendationResponse]:
        return [rec.model_copy() for rec in list(self._recommendations.values())]

    def get_recommendation_by_id(self, recommendation_id: int) -> Optional[RecommendationResponse]:
        rec = self._recommendations.get(recommendation_id)
        return rec.model_copy() if rec else None

    def find_recommendation(self, book_id: int, recommender_id: int) -> Optional[RecommendationResponse]:
        for rec in list(self._recommendations.values()):
            if rec.book_id == book_id and rec.recommender_id == recommender_id:
                return rec.model_copy()
        return None

    def create_recommendation(self, recommendation: RecommendationCreate) -> RecommendationResponse:
        with self._lock:
            new_rec = RecommendationResponse(id=next(self._recommendation_ids), **recommendation.model_dump())
            self._recommendations[new_rec.id] = new_rec
            return new_rec.model_copy()

    def update_recommendation(
        self, recommendation_id: int, changes: RecommendationUpdate
    ) -> Optional[RecommendationResponse]:
        with self._lock:
            rec = self._recommendations.get(recommendation_id)
            if rec is None:
                return None
            updated = rec.model_copy(update=changes.model_dump(exclude_unset=True))
            self._recommendations[recommendation_id] = updated
            return updated.model_copy()

    def delete_recommendation(self, recommendation_id: int) -> bool:
        with self._lock:
            return self._recommendations.pop(recommendation_id, None) is not None

    def _delete_recommendations_where(self, predicate) -> int:
        doomed = [rec_id for rec_id, rec in self._recommendations.items() if predicate(rec)]
        for rec_id in doomed:
            del self._recommendations[rec_id]
        return len(doomed)

    # Joins

    def get_books_by_recommender_id(self, recommender_id: int) -> list[BookResponse]:
        book_ids = {
            rec.book_id for rec in list(self._recommendations.values())
            if rec.recommender_id == recommender_id
        }
        return [book.model_copy() for book in list(self._books.values()) if book.id in book_ids]

    def get_recommenders_by_book_id(self, book_id: int) -> list[RecommenderResponse]:
        recommender_ids = {
            rec.recommender_id for rec in list(self._recommendations.values())
            if rec.book_id == book_id
        }
        return [r.model_copy() for r in list(self._recommenders.values()) if r.id in recommender_ids]

    def _complete(self, rec: RecommendationResponse) -> CompleteRecommendationResponse:
        book = self._books.get(rec.book_id)
        recommender = self._recommenders.get(rec.recommender_id)
        if book is None or recommender is None:
            raise ReferentialIntegrityError(rec.id, rec.book_id, rec.recommender_id)
        return CompleteRecommendationResponse(
            **rec.model_dump(),
            book=book.model_copy(),
            recommender=recommender.model_copy(),
        )

    def get_all_complete_recommendations(self) -> list[CompleteRecommendationResponse]:
        return [self._complete(rec) for rec in list(self._recommendations.values())]

    def get_complete_recommendations_by_book_id(self, book_id: int) -> list[CompleteRecommendationResponse]:
        recs = [rec for rec in list(self._recommendations.values()) if rec.book_id == book_id]
        recs = first_per_key(recs, key=lambda rec: rec.recommender_id)
        return [self._complete(rec) for rec in recs]

    def get_complete_recommendations_by_recommender_id(
        self, recommender_id: int
    ) -> list[CompleteRecommendationResponse]:
        recs = [rec for rec in list(self._recommendations.values()) if rec.recommender_id == recommender_id]
        recs = first_per_key(recs, key=lambda rec: rec.book_id)
        return [self._complete(rec) for rec in recs]

    def create_complete_recommendation(self, data: CombinedCreate) -> CompleteRecommendationResponse:
        with self._lock:
            book = self.get_book_by_title(data.title)
            if book is None:
                book = self.create_book(book_fields_from_combined(data))
            else:
                patch = book_patch_from_combined(book, data)
                if patch is not None:
                    book = self.update_book(book.id, patch)

            recommender = self.get_recommender_by_name(data.recommender_name)
            if recommender is None:
                recommender = self.create_recommender(recommender_fields_from_combined(data))

            rec = self.create_recommendation(
                recommendation_fields_from_combined(data, book.id, recommender.id)
            )
            return CompleteRecommendationResponse(**rec.model_dump(), book=book, recommender=recommender)
