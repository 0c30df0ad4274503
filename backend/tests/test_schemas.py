"""Tests for request validation shapes."""
import pytest
from pydantic import ValidationError

from app.schemas.book import BookUpdate, validate_book_insert
from app.schemas.recommender import RecommenderUpdate, validate_recommender_insert
from app.schemas.recommendation import (
    RecommendationUpdate,
    validate_combined_insert,
    validate_recommendation_insert,
)


def _error_fields(exc: ValidationError) -> set[str]:
    return {err["loc"][0] for err in exc.errors()}


def test_book_insert_requires_title_and_author():
    with pytest.raises(ValidationError) as exc_info:
        validate_book_insert({"title": "", "category": "SF"})
    assert _error_fields(exc_info.value) == {"title", "author"}


def test_book_insert_treats_whitespace_as_empty():
    with pytest.raises(ValidationError):
        validate_book_insert({"title": "   ", "author": "Douglas Adams"})


def test_book_insert_accepts_camel_case_keys():
    book = validate_book_insert({
        "title": "Factfulness",
        "author": "Hans Rosling",
        "imageUrl": "https://example.com/factfulness.jpg",
        "publishYear": "2018",
    })
    assert book.image_url == "https://example.com/factfulness.jpg"
    assert book.publish_year == "2018"
    assert book.description is None


def test_recommender_insert_requires_name():
    with pytest.raises(ValidationError) as exc_info:
        validate_recommender_insert({"organization": "Microsoft"})
    assert _error_fields(exc_info.value) == {"name"}

    recommender = validate_recommender_insert({"name": "Bill Gates", "organization": "Microsoft"})
    assert recommender.name == "Bill Gates"


def test_recommendation_insert_requires_numeric_ids():
    with pytest.raises(ValidationError) as exc_info:
        validate_recommendation_insert({"bookId": "abc", "comment": "great"})
    assert _error_fields(exc_info.value) == {"bookId", "recommenderId"}


def test_recommendation_insert_coerces_numeric_strings():
    # The admin form posts select values as strings
    rec = validate_recommendation_insert({"bookId": "3", "recommenderId": "7"})
    assert rec.book_id == 3
    assert rec.recommender_id == 7


def test_combined_insert_requires_title_author_and_recommender_name():
    with pytest.raises(ValidationError) as exc_info:
        validate_combined_insert({"comment": "must read"})
    assert _error_fields(exc_info.value) == {"title", "author", "recommenderName"}


def test_combined_insert_keeps_optional_fields():
    data = validate_combined_insert({
        "title": "Zero to One",
        "author": "Peter Thiel",
        "recommenderName": "Elon Musk",
        "recommenderOrg": "Tesla/SpaceX",
        "recommendationDate": "2014",
        "sourceUrl": "https://example.com/interview",
    })
    assert data.recommender_org == "Tesla/SpaceX"
    assert data.recommendation_date == "2014"
    assert data.source_url == "https://example.com/interview"
    assert data.reason is None


def test_update_models_track_only_supplied_fields():
    changes = RecommendationUpdate.model_validate({"comment": "new"})
    assert changes.model_dump(exclude_unset=True) == {"comment": "new"}

    changes = BookUpdate.model_validate({"description": None})
    assert changes.model_dump(exclude_unset=True) == {"description": None}


def test_update_models_reject_nulling_required_columns():
    with pytest.raises(ValidationError):
        BookUpdate.model_validate({"title": None})
    with pytest.raises(ValidationError):
        BookUpdate.model_validate({"author": ""})
    with pytest.raises(ValidationError):
        RecommenderUpdate.model_validate({"name": None})
