"""
Exceptions shared by the storage layer, the import pipeline and the routers.

Validation failures use pydantic's own ``ValidationError`` and lookups that
miss return ``None``/``False``; the classes here cover the remaining cases.
"""


class ReferentialIntegrityError(RuntimeError):
    """A recommendation points at a book or recommender that does not exist."""

    def __init__(self, recommendation_id: int, book_id: int, recommender_id: int):
        self.recommendation_id = recommendation_id
        self.book_id = book_id
        self.recommender_id = recommender_id
        super().__init__(
            f"Missing book or recommender for recommendation {recommendation_id} "
            f"(book_id={book_id}, recommender_id={recommender_id})"
        )


class CsvFormatError(ValueError):
    """The CSV file as a whole cannot be imported (e.g. mandatory columns missing)."""
