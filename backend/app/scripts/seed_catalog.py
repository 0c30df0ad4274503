# backend/app/scripts/seed_catalog.py

"""
Seed the Hondana catalog from one or more recommendation CSV files.

Usage examples:

  # Default: seed the bundled sample file
  cd backend
  python -m app.scripts.seed_catalog

  # Seed specific files
  python -m app.scripts.seed_catalog \
    --file data/books.csv \
    --file data/more_books.csv

Re-running is safe: rows whose book and recommender are already linked are
skipped.
"""

import argparse
import logging
from pathlib import Path

from app.schemas.csv_import import ImportResult
from app.services.csv_import import parse_csv_text
from app.services.storage import CatalogStorage, build_storage

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent

DEFAULT_FILES = [
    BASE_DIR / "data" / "recommendations_sample.csv",
]


def seed_from_csv(storage: CatalogStorage, path: Path) -> ImportResult:
    """
    Parse one CSV file and import it.

    Raises FileNotFoundError when the file is missing and CsvFormatError when
    its header lacks the title, author or recommender column.
    """
    if not path.exists():
        raise FileNotFoundError(f"Seed file not found: {path}")

    logger.info(f"[seed_catalog] Loading recommendations from: {path}")
    records = parse_csv_text(path.read_text(encoding="utf-8-sig"))
    result = storage.import_from_csv(records)
    logger.info(
        f"[seed_catalog] {path.name}: imported={result.count}, "
        f"skipped={result.skipped}, total={result.total}"
    )
    return result


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    parser = argparse.ArgumentParser(
        description="Seed the Hondana catalog from recommendation CSV files."
    )
    parser.add_argument(
        "--file",
        "-f",
        action="append",
        dest="files",
        help=(
            "Path to a CSV file with a header row. "
            "Can be specified multiple times. "
            "If omitted, uses the bundled sample file."
        ),
    )

    args = parser.parse_args()

    files = [Path(f).resolve() for f in args.files] if args.files else DEFAULT_FILES

    from app.core.config import settings
    from app.database import init_db

    if settings.STORAGE_BACKEND == "database":
        init_db()
    else:
        logger.warning("[seed_catalog] STORAGE_BACKEND=memory: data will be lost when this process exits")

    storage = build_storage()
    for path in files:
        seed_from_csv(storage, path)


if __name__ == "__main__":
    main()
