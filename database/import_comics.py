"""Bulk load a CSV export of comics into the SQLite store."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import pandas as pd
import pydantic

from comics_api import schemas
from comics_api.config import configure_logging, load_settings
from comics_api.errors import ValidationError
from comics_api.store import ComicStore, SQLiteComicStore

logger = logging.getLogger(__name__)

CSV_PATH_ENV_VAR = "COMICS_IMPORT_CSV"
DEFAULT_CSV_PATH = Path("data") / "comics.csv"

TEXT_COLUMNS = ("title", "author", "publisher", "genre", "description")
# CSV header -> request field; both spellings of the stock flag are accepted.
STOCK_COLUMNS = ("inStock", "in_stock")

_TRUE_VALUES = {"true", "yes", "y", "1", "1.0", "in stock"}
_FALSE_VALUES = {"false", "no", "n", "0", "0.0", "out of stock"}


@dataclass
class ImportSummary:
    inserted: int = 0
    skipped: int = 0


def resolve_csv_path() -> Path:
    raw = os.environ.get(CSV_PATH_ENV_VAR)
    return Path(raw) if raw else DEFAULT_CSV_PATH


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def normalize_text(value: Any) -> str | None:
    """
    Convert NaN or None to None, otherwise a stripped string
    (blank strings also become None).
    """
    if _is_missing(value):
        return None
    text = str(value).strip()
    return text or None


def normalize_year(value: Any) -> int | None:
    """
    Normalize the year column so 1986.0 becomes 1986 and NaN becomes None.
    Fractional or non-numeric years raise ValueError.
    """
    if _is_missing(value):
        return None
    number = float(str(value).strip())
    if not number.is_integer():
        raise ValueError(f"year {value!r} is not a whole number")
    return int(number)


def normalize_price(value: Any) -> float | None:
    """Parse prices such as ``"$12.50"`` or ``"1,000 USD"``."""
    if _is_missing(value):
        return None
    cleaned = (
        str(value)
        .replace("US$", "")
        .replace("USD", "")
        .replace("$", "")
        .replace(",", "")
        .strip()
    )
    if not cleaned:
        return None
    return float(cleaned)


def normalize_stock(value: Any) -> bool | None:
    if _is_missing(value):
        return None
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"unrecognised stock flag {value!r}")


def build_request(row: pd.Series) -> schemas.CreateComicRequest:
    """Turn a CSV row into a create payload; absent cells stay unset."""
    fields: dict[str, Any] = {}
    for column in TEXT_COLUMNS:
        text = normalize_text(row.get(column))
        if text is not None:
            fields[column] = text

    year = normalize_year(row.get("year"))
    if year is not None:
        fields["year"] = year

    price = normalize_price(row.get("price"))
    if price is not None:
        fields["price"] = price

    for column in STOCK_COLUMNS:
        stock = normalize_stock(row.get(column))
        if stock is not None:
            fields["in_stock"] = stock
            break

    return schemas.CreateComicRequest(**fields)


def describe_row(row: pd.Series) -> str:
    """Short human readable label for log messages."""
    title = normalize_text(row.get("title"))
    author = normalize_text(row.get("author"))
    if title and author:
        return f"row {row.name} ({title} by {author})"
    if title:
        return f"row {row.name} ({title})"
    return f"row {row.name}"


def log_row_skip(row: pd.Series, reason: str, error: Optional[Exception] = None) -> None:
    """
    Emit a warning when a row is not inserted into the database.
    """
    context = describe_row(row)
    if error:
        logger.warning("skipped %s (%s) - %s", context, reason, error)
    else:
        logger.warning("skipped %s - %s", context, reason)


def load_csv(csv_path: Path) -> pd.DataFrame:
    logger.info("Loading CSV from %s", csv_path)
    df = pd.read_csv(csv_path, dtype=str, keep_default_na=True)
    logger.info("Loaded %d records from CSV", len(df))
    return df


async def import_comics(df: pd.DataFrame, store: ComicStore) -> ImportSummary:
    """Create one comic per row, skipping rows the comic rules reject."""
    summary = ImportSummary()
    for _, row in df.iterrows():
        try:
            request = build_request(row)
        except (ValueError, pydantic.ValidationError) as exc:
            summary.skipped += 1
            log_row_skip(row, "unparseable value", exc)
            continue

        try:
            await store.create(request)
        except ValidationError as exc:
            summary.skipped += 1
            log_row_skip(row, "failed validation", exc)
            continue
        summary.inserted += 1

    logger.info(
        "Finished importing comics (inserted=%d, skipped=%d)",
        summary.inserted,
        summary.skipped,
    )
    return summary


async def run_import(csv_path: Path, db_path: Path) -> ImportSummary:
    df = load_csv(csv_path)
    store = SQLiteComicStore(db_path)
    await store.open()
    try:
        return await import_comics(df, store)
    finally:
        await store.close()


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)

    csv_path = resolve_csv_path()
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found at {csv_path}")

    logger.info("Importing %s into %s", csv_path, settings.db_path)
    asyncio.run(run_import(csv_path, settings.db_path))
    logger.info("Database updated at %s", settings.db_path.resolve())


if __name__ == "__main__":
    main()
