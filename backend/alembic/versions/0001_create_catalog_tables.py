"""create books, recommenders and recommendations tables

Revision ID: 0001_create_catalog_tables
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_create_catalog_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "books",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("author", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("publish_year", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_books_title_lower", "books", [sa.text("lower(title)")])

    op.create_table(
        "recommenders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("organization", sa.String(), nullable=True),
        sa.Column("industry", sa.String(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_recommenders_name_lower", "recommenders", [sa.text("lower(name)")])

    op.create_table(
        "recommendations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("book_id", sa.Integer(), sa.ForeignKey("books.id"), nullable=False),
        sa.Column("recommender_id", sa.Integer(), sa.ForeignKey("recommenders.id"), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("recommendation_date", sa.String(), nullable=True),
        sa.Column("recommendation_medium", sa.String(), nullable=True),
        sa.Column("source", sa.String(), nullable=True),
        sa.Column("source_url", sa.String(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_recommendations_book_id", "recommendations", ["book_id"])
    op.create_index("ix_recommendations_recommender_id", "recommendations", ["recommender_id"])


def downgrade() -> None:
    op.drop_index("ix_recommendations_recommender_id", table_name="recommendations")
    op.drop_index("ix_recommendations_book_id", table_name="recommendations")
    op.drop_table("recommendations")
    op.drop_index("ix_recommenders_name_lower", table_name="recommenders")
    op.drop_table("recommenders")
    op.drop_index("ix_books_title_lower", table_name="books")
    op.drop_table("books")
