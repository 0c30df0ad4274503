"""
Map loosely-structured recommendation rows into combined-insert payloads.

Rows come either from the admin UI (already split into columns, posted as
JSON) or from a CSV file parsed here. The heuristics below are best-effort
defaults: the admin can override any of them after import.
"""
import csv
import io
import logging
import re
from typing import Any, Iterable, Mapping, Optional

from app.core.errors import CsvFormatError
from app.schemas.csv_import import CsvRecord
from app.schemas.recommendation import CombinedCreate, validate_combined_insert

logger = logging.getLogger(__name__)

# "Name (Organization)"; greedy so "A (B) (C)" keeps "A (B)" as the name
RECOMMENDER_PATTERN = re.compile(r"^(.+)[(（](.+)[)）]\s*$")

# Checked in order, first match wins
CATEGORY_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("business", "management"), "ビジネス"),
    (("sapiens", "factfulness"), "社会科学"),
    (("hitchhiker",), "SF"),
    (("structures",), "科学"),
    (("day", "remains"), "小説"),
    (("investor", "investment"), "投資"),
]

# Normalized header -> CsvRecord field. "recommender" holds the raw display string.
HEADER_ALIASES = {
    "title": "title",
    "書籍タイトル": "title",
    "author": "author",
    "著者名": "author",
    "recommender": "recommender",
    "recommender (org)": "recommender",
    "recommender(org)": "recommender",
    "recommendername": "recommender",
    "推薦者（所属）": "recommender",
    "推薦者(所属)": "recommender",
    "推薦者": "recommender",
    "comment": "comment",
    "推薦コメント": "comment",
    "recommendation period": "recommendation_date",
    "recommendation date": "recommendation_date",
    "recommendationdate": "recommendation_date",
    "推薦時期・媒体": "recommendation_date",
    "reason": "reason",
    "推薦理由・背景": "reason",
    "category": "category",
    "カテゴリー": "category",
    "image url": "image_url",
    "imageurl": "image_url",
    "画像url": "image_url",
    "publish year": "publish_year",
    "publishyear": "publish_year",
    "出版年": "publish_year",
    "description": "description",
    "説明": "description",
    "source": "source",
    "出所": "source",
    "source url": "source_url",
    "sourceurl": "source_url",
    "出所url": "source_url",
}

REQUIRED_COLUMNS = ("title", "author", "recommender")


def split_recommender(display: Optional[str]) -> tuple[str, str]:
    """Split "Elon Musk (Tesla/SpaceX)" into ("Elon Musk", "Tesla/SpaceX")."""
    display = (display or "").strip()
    match = RECOMMENDER_PATTERN.match(display)
    if not match:
        return display, ""
    return match.group(1).strip(), match.group(2).strip()


def infer_category(title: Optional[str]) -> str:
    """Guess a category from title keywords; "" when nothing matches."""
    title_lower = (title or "").lower()
    for keywords, category in CATEGORY_KEYWORDS:
        if any(keyword in title_lower for keyword in keywords):
            return category
    return ""


def split_period(period: Optional[str]) -> tuple[str, str]:
    """Split a combined "date medium" string: first token is the date, the rest the medium."""
    tokens = (period or "").split()
    if not tokens:
        return "", ""
    return tokens[0], " ".join(tokens[1:])


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def record_to_combined(record: CsvRecord) -> CombinedCreate:
    """
    Build the combined-insert payload for one row.

    Raises pydantic.ValidationError when the row lacks a title, author or
    recommender name.
    """
    name, org = record.recommender_name or "", record.recommender_org or ""
    if not org.strip():
        name, org = split_recommender(name)

    category = record.category
    if not (category or "").strip():
        category = infer_category(record.title)

    date, medium = record.recommendation_date, record.recommendation_medium
    if not (medium or "").strip():
        date, medium = split_period(date)

    return validate_combined_insert({
        "title": record.title,
        "author": record.author,
        "category": _blank_to_none(category),
        "image_url": _blank_to_none(record.image_url),
        "publish_year": _blank_to_none(record.publish_year),
        "description": _blank_to_none(record.description),
        "recommender_name": name,
        "recommender_org": _blank_to_none(org),
        "comment": _blank_to_none(record.comment),
        "recommendation_date": _blank_to_none(date),
        "recommendation_medium": _blank_to_none(medium),
        "source": _blank_to_none(record.source),
        "source_url": _blank_to_none(record.source_url),
        "reason": _blank_to_none(record.reason),
    })


def normalize_header(header: str) -> str:
    return (header or "").strip().lstrip("\ufeff").strip().lower()


def map_headers(headers: Iterable[str]) -> list[str]:
    """Map raw header cells to CsvRecord field names, keeping unknown ones lowercased."""
    return [HEADER_ALIASES.get(normalize_header(h), normalize_header(h)) for h in headers]


def row_to_record(row: Mapping[str, Any]) -> CsvRecord:
    """Turn one header-mapped row into a CsvRecord; unknown columns land in ``extra``."""
    known = set(CsvRecord.model_fields) - {"extra", "recommender_name", "recommender_org"}
    values: dict[str, Any] = {}
    extra: dict[str, str] = {}
    for key, value in row.items():
        value = (value or "").strip()
        if key == "recommender":
            values["recommender_name"] = value
        elif key in known:
            values[key] = value
        elif key:
            extra[key] = value
    values["extra"] = extra
    return CsvRecord(**values)


def parse_csv_text(text: str) -> list[CsvRecord]:
    """
    Parse CSV text (header row first) into records.

    Raises CsvFormatError when the title, author or recommender column is
    missing; rows without a title or author are dropped.
    """
    reader = csv.reader(io.StringIO(text.strip()))
    try:
        headers = map_headers(next(reader))
    except StopIteration:
        raise CsvFormatError("CSV file is empty") from None

    missing = [column for column in REQUIRED_COLUMNS if column not in headers]
    if missing:
        raise CsvFormatError(f"CSV is missing required columns: {', '.join(missing)}")

    records: list[CsvRecord] = []
    for line_no, cells in enumerate(reader, start=2):
        if not any(cell.strip() for cell in cells):
            continue
        record = row_to_record(dict(zip(headers, cells)))
        if not (record.title and record.author):
            logger.debug(f"Dropping CSV line {line_no}: missing title or author")
            continue
        records.append(record)

    logger.info(f"Parsed {len(records)} CSV records")
    return records
