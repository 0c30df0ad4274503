"""
SQLAlchemy-backed catalog storage.

Each public method runs in its own session: ``_session()`` commits when the
block finishes and rolls back on any exception, so cascade deletes and
combined creates either apply completely or not at all.

Find-or-create by title / name is a lookup followed by an insert. Two
callers could both miss the lookup and insert duplicates, so the sequence
runs under ``self._write_lock`` (one process) and, on PostgreSQL, under a
transaction-scoped advisory lock keyed on the lowercased value (several
processes). Titles and names are not unique in the schema because admins may
legitimately rename entities onto each other.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import func, select, text
from sqlalchemy.orm import Session, joinedload, sessionmaker

from app.core.errors import ReferentialIntegrityError
from app.models import Book, Recommender, Recommendation
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


def _contains(column, query: str):
    """Case-insensitive substring test with LIKE wildcards in the query escaped."""
    return func.lower(column).contains(query.lower(), autoescape=True)


class DatabaseStorage(CatalogStorage):

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._write_lock = threading.Lock()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _lock_key(self, db: Session, namespace: str, value: str) -> None:
        """Serialize find-or-create for one title/name across processes (PostgreSQL only)."""
        if db.get_bind().dialect.name != "postgresql":
            return
        db.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
            {"key": f"{namespace}:{value.lower()}"},
        )

    # Books

    def get_all_books(self) -> list[BookResponse]:
        with self._session() as db:
            books = db.scalars(select(Book).order_by(Book.id)).all()
            return [BookResponse.model_validate(book) for book in books]

    def get_book_by_id(self, book_id: int) -> Optional[BookResponse]:
        with self._session() as db:
            book = db.get(Book, book_id)
            return BookResponse.model_validate(book) if book else None

    def _find_book_by_title(self, db: Session, title: str) -> Optional[Book]:
        return db.scalars(
            select(Book).where(func.lower(Book.title) == title.lower()).order_by(Book.id)
        ).first()

    def get_book_by_title(self, title: str) -> Optional[BookResponse]:
        with self._session() as db:
            book = self._find_book_by_title(db, title)
            return BookResponse.model_validate(book) if book else None

    def create_book(self, book: BookCreate) -> BookResponse:
        with self._session() as db:
            new_book = Book(**book.model_dump())
            db.add(new_book)
            db.flush()
            return BookResponse.model_validate(new_book)

    def update_book(self, book_id: int, changes: BookUpdate) -> Optional[BookResponse]:
        with self._session() as db:
            book = db.get(Book, book_id)
            if book is None:
                return None
            for field, value in changes.model_dump(exclude_unset=True).items():
                setattr(book, field, value)
            db.flush()
            return BookResponse.model_validate(book)

    def delete_book(self, book_id: int) -> bool:
        with self._session() as db:
            book = db.get(Book, book_id)
            if book is None:
                return False
            deleted = db.query(Recommendation).filter(
                Recommendation.book_id == book_id
            ).delete(synchronize_session=False)
            db.delete(book)
            logger.info(f"Deleted book {book_id} and {deleted} recommendations")
            return True

    def search_books(self, query: str) -> list[BookResponse]:
        with self._session() as db:
            books = db.scalars(
                select(Book)
                .where(_contains(Book.title, query) | _contains(Book.author, query))
                .order_by(Book.id)
            ).all()
            return [BookResponse.model_validate(book) for book in books]

    def get_categories(self) -> list[str]:
        with self._session() as db:
            rows = db.scalars(
                select(Book.category)
                .where(Book.category.isnot(None), Book.category != "")
                .distinct()
                .order_by(Book.category)
            ).all()
            return list(rows)

    # Recommenders

    def get_all_recommenders(self) -> list[RecommenderResponse]:
        with self._session() as db:
            recommenders = db.scalars(select(Recommender).order_by(Recommender.id)).all()
            return [RecommenderResponse.model_validate(r) for r in recommenders]

    def get_recommender_by_id(self, recommender_id: int) -> Optional[RecommenderResponse]:
        with self._session() as db:
            recommender = db.get(Recommender, recommender_id)
            return RecommenderResponse.model_validate(recommender) if recommender else None

    def _find_recommender_by_name(self, db: Session, name: str) -> Optional[Recommender]:
        return db.scalars(
            select(Recommender)
            .where(func.lower(Recommender.name) == name.lower())
            .order_by(Recommender.id)
        ).first()

    def get_recommender_by_name(self, name: str) -> Optional[RecommenderResponse]:
        with self._session() as db:
            recommender = self._find_recommender_by_name(db, name)
            return RecommenderResponse.model_validate(recommender) if recommender else None

    def create_recommender(self, recommender: RecommenderCreate) -> RecommenderResponse:
        with self._session() as db:
            new_recommender = Recommender(**recommender.model_dump())
            db.add(new_recommender)
            db.flush()
            return RecommenderResponse.model_validate(new_recommender)

    def update_recommender(
        self, recommender_id: int, changes: RecommenderUpdate
    ) -> Optional[RecommenderResponse]:
        with self._session() as db:
            recommender = db.get(Recommender, recommender_id)
            if recommender is None:
                return None
            for field, value in changes.model_dump(exclude_unset=True).items():
                setattr(recommender, field, value)
            db.flush()
            return RecommenderResponse.model_validate(recommender)

    def delete_recommender(self, recommender_id: int) -> bool:
        with self._session() as db:
            recommender = db.get(Recommender, recommender_id)
            if recommender is None:
                return False
            deleted = db.query(Recommendation).filter(
                Recommendation.recommender_id == recommender_id
            ).delete(synchronize_session=False)
            db.delete(recommender)
            logger.info(f"Deleted recommender {recommender_id} and {deleted} recommendations")
            return True

    def search_recommenders(self, query: str) -> list[RecommenderResponse]:
        with self._session() as db:
            recommenders = db.scalars(
                select(Recommender)
                .where(_contains(Recommender.name, query) | _contains(Recommender.organization, query))
                .order_by(Recommender.id)
            ).all()
            return [RecommenderResponse.model_validate(r) for r in recommenders]

    # Recommendations

    def get_all_recommendations(self) -> list[RecommendationResponse]:
        with self._session() as db:
            recs = db.scalars(select(Recommendation).order_by(Recommendation.id)).all()
            return [RecommendationResponse.model_validate(rec) for rec in recs]

    def get_recommendation_by_id(self, recommendation_id: int) -> Optional[RecommendationResponse]:
        with self._session() as db:
            rec = db.get(Recommendation, recommendation_id)
            return RecommendationResponse.model_validate(rec) if rec else None

    def find_recommendation(self, book_id: int, recommender_id: int) -> Optional[RecommendationResponse]:
        with self._session() as db:
            rec = db.scalars(
                select(Recommendation)
                .where(
                    Recommendation.book_id == book_id,
                    Recommendation.recommender_id == recommender_id,
                )
                .order_by(Recommendation.id)
            ).first()
            return RecommendationResponse.model_validate(rec) if rec else None

    def create_recommendation(self, recommendation: RecommendationCreate) -> RecommendationResponse:
        with self._session() as db:
            rec = Recommendation(**recommendation.model_dump())
            db.add(rec)
            db.flush()
            return RecommendationResponse.model_validate(rec)

    def update_recommendation(
        self, recommendation_id: int, changes: RecommendationUpdate
    ) -> Optional[RecommendationResponse]:
        with self._session() as db:
            rec = db.get(Recommendation, recommendation_id)
            if rec is None:
                return None
            for field, value in changes.model_dump(exclude_unset=True).items():
                setattr(rec, field, value)
            db.flush()
            return RecommendationResponse.model_validate(rec)

    def delete_recommendation(self, recommendation_id: int) -> bool:
        with self._session() as db:
            rec = db.get(Recommendation, recommendation_id)
            if rec is None:
                return False
            db.delete(rec)
            return True

    # Joins

    def get_books_by_recommender_id(self, recommender_id: int) -> list[BookResponse]:
        with self._session() as db:
            linked = select(Recommendation.book_id).where(Recommendation.recommender_id == recommender_id)
            books = db.scalars(select(Book).where(Book.id.in_(linked)).order_by(Book.id)).all()
            return [BookResponse.model_validate(book) for book in books]

    def get_recommenders_by_book_id(self, book_id: int) -> list[RecommenderResponse]:
        with self._session() as db:
            linked = select(Recommendation.recommender_id).where(Recommendation.book_id == book_id)
            recommenders = db.scalars(
                select(Recommender).where(Recommender.id.in_(linked)).order_by(Recommender.id)
            ).all()
            return [RecommenderResponse.model_validate(r) for r in recommenders]

    def _complete_recommendations(self, db: Session, *criteria) -> list[Recommendation]:
        stmt = (
            select(Recommendation)
            .options(joinedload(Recommendation.book), joinedload(Recommendation.recommender))
            .where(*criteria)
            .order_by(Recommendation.id)
        )
        return list(db.scalars(stmt).unique().all())

    @staticmethod
    def _to_complete(rec: Recommendation) -> CompleteRecommendationResponse:
        if rec.book is None or rec.recommender is None:
            raise ReferentialIntegrityError(rec.id, rec.book_id, rec.recommender_id)
        return CompleteRecommendationResponse.model_validate(rec)

    def get_all_complete_recommendations(self) -> list[CompleteRecommendationResponse]:
        with self._session() as db:
            return [self._to_complete(rec) for rec in self._complete_recommendations(db)]

    def get_complete_recommendations_by_book_id(self, book_id: int) -> list[CompleteRecommendationResponse]:
        with self._session() as db:
            recs = self._complete_recommendations(db, Recommendation.book_id == book_id)
            recs = first_per_key(recs, key=lambda rec: rec.recommender_id)
            return [self._to_complete(rec) for rec in recs]

    def get_complete_recommendations_by_recommender_id(
        self, recommender_id: int
    ) -> list[CompleteRecommendationResponse]:
        with self._session() as db:
            recs = self._complete_recommendations(db, Recommendation.recommender_id == recommender_id)
            recs = first_per_key(recs, key=lambda rec: rec.book_id)
            return [self._to_complete(rec) for rec in recs]

    def create_complete_recommendation(self, data: CombinedCreate) -> CompleteRecommendationResponse:
        with self._write_lock, self._session() as db:
            self._lock_key(db, "book", data.title)
            book = self._find_book_by_title(db, data.title)
            if book is None:
                book = Book(**book_fields_from_combined(data).model_dump())
                db.add(book)
                db.flush()
                logger.debug(f"Created book {book.id} for title={data.title!r}")
            else:
                patch = book_patch_from_combined(BookResponse.model_validate(book), data)
                if patch is not None:
                    for field, value in patch.model_dump(exclude_unset=True).items():
                        setattr(book, field, value)

            self._lock_key(db, "recommender", data.recommender_name)
            recommender = self._find_recommender_by_name(db, data.recommender_name)
            if recommender is None:
                recommender = Recommender(**recommender_fields_from_combined(data).model_dump())
                db.add(recommender)
                db.flush()
                logger.debug(f"Created recommender {recommender.id} for name={data.recommender_name!r}")

            rec = Recommendation(
                **recommendation_fields_from_combined(data, book.id, recommender.id).model_dump()
            )
            db.add(rec)
            db.flush()
            return CompleteRecommendationResponse(
                **RecommendationResponse.model_validate(rec).model_dump(),
                book=BookResponse.model_validate(book),
                recommender=RecommenderResponse.model_validate(recommender),
            )
