"""Tests for CSV row mapping, category inference and CSV parsing."""
import pytest
from pydantic import ValidationError

from app.core.errors import CsvFormatError
from app.schemas.csv_import import CsvRecord
from app.services.csv_import import (
    infer_category,
    parse_csv_text,
    record_to_combined,
    split_period,
    split_recommender,
)


@pytest.mark.parametrize(
    "display, expected",
    [
        ("Elon Musk (Tesla/SpaceX)", ("Elon Musk", "Tesla/SpaceX")),
        ("  Bill Gates ( Microsoft )  ", ("Bill Gates", "Microsoft")),
        ("孫正義（ソフトバンク）", ("孫正義", "ソフトバンク")),
        ("Warren Buffett", ("Warren Buffett", "")),
        ("", ("", "")),
    ],
)
def test_split_recommender(display, expected):
    assert split_recommender(display) == expected


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Business Adventures", "ビジネス"),
        ("The Effective Executive: management classics", "ビジネス"),
        ("SAPIENS", "社会科学"),
        ("Factfulness", "社会科学"),
        ("The Hitchhiker's Guide to the Galaxy", "SF"),
        ("Structures: Or Why Things Don't Fall Down", "科学"),
        ("The Remains of the Day", "小説"),
        ("The Intelligent Investor", "投資"),
        ("Zero to One", ""),
        (None, ""),
    ],
)
def test_infer_category(title, expected):
    assert infer_category(title) == expected


def test_infer_category_first_rule_wins():
    # "business" is checked before "day"
    assert infer_category("Business of the Day") == "ビジネス"


def test_split_period():
    assert split_period("2014 Blog") == ("2014", "Blog")
    assert split_period("2019 TED Talk") == ("2019", "TED Talk")
    assert split_period("2020") == ("2020", "")
    assert split_period("   ") == ("", "")
    assert split_period(None) == ("", "")


def test_record_to_combined_splits_recommender_and_infers_category():
    record = CsvRecord(
        title="Zero to One",
        author="Peter Thiel",
        recommender_name="Elon Musk (Tesla/SpaceX)",
        recommendation_date="2014 Twitter",
    )

    data = record_to_combined(record)

    assert data.recommender_name == "Elon Musk"
    assert data.recommender_org == "Tesla/SpaceX"
    assert data.recommendation_date == "2014"
    assert data.recommendation_medium == "Twitter"
    assert data.category is None


def test_record_to_combined_keeps_explicit_values():
    record = CsvRecord(
        title="Business Adventures",
        author="John Brooks",
        recommender_name="Bill Gates",
        recommender_org="Gates Foundation",
        category="経営",
        recommendation_date="2014",
        recommendation_medium="Blog post",
    )

    data = record_to_combined(record)

    assert data.recommender_org == "Gates Foundation"
    assert data.category == "経営"
    assert data.recommendation_medium == "Blog post"


def test_record_to_combined_infers_category_when_missing():
    record = CsvRecord(title="Business Adventures", author="John Brooks", recommender_name="Bill Gates")
    assert record_to_combined(record).category == "ビジネス"


def test_record_to_combined_rejects_missing_recommender():
    with pytest.raises(ValidationError):
        record_to_combined(CsvRecord(title="Factfulness", author="Hans Rosling", recommender_name=""))


def test_parse_csv_text_with_japanese_headers():
    text = (
        "書籍タイトル,著者名,推薦者（所属）,推薦コメント,推薦時期・媒体,推薦理由・背景\n"
        'Zero to One,Peter Thiel,Elon Musk (Tesla/SpaceX),"Great, read it",2014 Twitter,Startups\n'
    )

    records = parse_csv_text(text)

    assert len(records) == 1
    record = records[0]
    assert record.title == "Zero to One"
    assert record.recommender_name == "Elon Musk (Tesla/SpaceX)"
    assert record.comment == "Great, read it"
    assert record.recommendation_date == "2014 Twitter"
    assert record.reason == "Startups"


def test_parse_csv_text_maps_english_headers_and_keeps_unknown_columns():
    text = (
        "Title,Author,Recommender (Org),Category,Image URL,Publish Year,Source,Source URL,Shelf\n"
        "Sapiens,Yuval Noah Harari,Bill Gates (Microsoft),社会科学,https://img/s.jpg,2011,Blog,https://b/s,A3\n"
    )

    [record] = parse_csv_text(text)

    assert record.category == "社会科学"
    assert record.image_url == "https://img/s.jpg"
    assert record.publish_year == "2011"
    assert record.source == "Blog"
    assert record.source_url == "https://b/s"
    assert record.extra == {"shelf": "A3"}


def test_parse_csv_text_drops_rows_without_title_or_author():
    text = (
        "title,author,recommender\n"
        "Factfulness,Hans Rosling,Bill Gates\n"
        ",Nobody,Someone\n"
        "\n"
        "Untitled,,Someone\n"
    )

    records = parse_csv_text(text)

    assert [r.title for r in records] == ["Factfulness"]


def test_parse_csv_text_requires_mandatory_columns():
    with pytest.raises(CsvFormatError) as exc_info:
        parse_csv_text("title,comment\nFactfulness,great\n")
    assert "author" in str(exc_info.value)
    assert "recommender" in str(exc_info.value)


def test_parse_csv_text_rejects_empty_input():
    with pytest.raises(CsvFormatError):
        parse_csv_text("")
