from sqlalchemy import Column, String, Integer, Text, ForeignKey
from sqlalchemy.orm import relationship
import sqlalchemy as sa
from app.database import Base


# Suggested categories shown in the filter UI. Book.category is free text.
BOOK_CATEGORIES = [
    "ビジネス",
    "社会科学",
    "歴史",
    "SF",
    "科学",
    "小説",
    "投資",
    "経営",
    "自己啓発",
    "哲学",
]


class Book(Base):
    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    author = Column(String, nullable=False)
    category = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    publish_year = Column(String, nullable=True)  # free text, e.g. "1999" or "c. 1940"
    description = Column(Text, nullable=True)

    __table_args__ = (
        # Lookup index for find-or-create by title; uniqueness is enforced procedurally
        sa.Index("ix_books_title_lower", sa.func.lower(title)),
        # Ids of deleted rows are never handed out again
        {"sqlite_autoincrement": True},
    )


class Recommender(Base):
    __tablename__ = "recommenders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    organization = Column(String, nullable=True)
    industry = Column(String, nullable=True)
    image_url = Column(String, nullable=True)

    __table_args__ = (
        sa.Index("ix_recommenders_name_lower", sa.func.lower(name)),
        {"sqlite_autoincrement": True},
    )


class Recommendation(Base):
    """
    One recommender's endorsement of one book.

    The (book_id, recommender_id) pair is intentionally not unique: the same
    person may recommend a book in several interviews or articles.
    """
    __tablename__ = "recommendations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    recommender_id = Column(Integer, ForeignKey("recommenders.id"), nullable=False, index=True)
    comment = Column(Text, nullable=True)
    recommendation_date = Column(String, nullable=True)
    recommendation_medium = Column(String, nullable=True)
    source = Column(String, nullable=True)  # event, article or interview name
    source_url = Column(String, nullable=True)
    reason = Column(Text, nullable=True)

    # Relationships
    book = relationship("Book")
    recommender = relationship("Recommender")
