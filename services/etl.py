import io
import logging
from datetime import date, datetime
from functools import reduce

import pandas as pd
from pydantic import BaseModel, Field

from services.status import COMPLETED, IN_PROGRESS, is_tbr_shelf, status_for_shelf
from services.store import StoreError

logger = logging.getLogger(__name__)


class RowOutcome(BaseModel):
    imported: bool = False
    errors: list[str] = Field(default_factory=list)

class ImportResult(BaseModel):
    imported: int = 0
    errors: list[str] = Field(default_factory=list)


def _raw(x):
    return "" if x is None else str(x)

def _clean(x):
    return _raw(x).strip()

def _to_int(x):
    try:
        if x is None:
            return None
        if isinstance(x, (int, float)):
            if pd.isna(x):
                return None
            v = int(float(x))
            return v if v != 0 else None
        # strings like "384.0" or "1,024"
        s = str(x).strip()
        if not s or s.lower() == "nan":
            return None
        s = s.replace(",", "")
        v = int(float(s))
        return v if v != 0 else None
    except (TypeError, ValueError, OverflowError):
        return None

def _to_rating(x):
    # unlike page counts, a rating of 0 is kept
    s = _clean(x).replace(",", "")
    if not s:
        return None
    try:
        return int(float(s))
    except (ValueError, OverflowError):
        return None

def _to_date(s):
    if s is None:
        return None
    s = str(s).strip()
    if not s:
        return None
    for fmt in ("%Y/%m/%d", "%Y-%m-%d", "%m/%d/%Y"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def parse_goodreads_csv(content) -> list[dict]:
    """Parse Goodreads-style CSV text into one dict per data row.

    The header row names the keys; short rows are padded with "" and
    blank or whitespace-only lines are dropped. A line of bare separators
    is still a row. Quoted fields may span lines.
    Raises pandas.errors.ParserError for text that cannot be tokenized.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig")
    content = content.lstrip("\ufeff")
    if not content.strip():
        return []

    df = pd.read_csv(
        io.StringIO(content),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        index_col=False,
    )

    # a whitespace-only line comes back as a lone whitespace value, the rest padded
    first = df.iloc[:, 0].fillna("")
    rest_empty = df.iloc[:, 1:].fillna("").eq("").all(axis=1)
    blank = first.ne("") & first.str.strip().eq("") & rest_empty
    return df[~blank].fillna("").to_dict(orient="records")


def _insert_tbr(row, title, author, user_id, store) -> RowOutcome:
    try:
        store.insert_tbr(
            user_id=user_id,
            title=title,
            author=author,
            total_pages=_to_int(row.get("Number of Pages")),
            notes=_raw(row.get("Private Notes")) or None,
            published_year=_published_year(row),
        )
    except StoreError as exc:
        logger.warning("import: tbr insert failed for %r: %s", title, exc)
        return RowOutcome(errors=[f"TBR: {title} - {exc}"])
    return RowOutcome(imported=True)

def _published_year(row):
    return _to_int(row.get("Year Published")) or _to_int(row.get("Original Publication Year"))

def _insert_book_and_review(row, title, author, user_id, store, today) -> RowOutcome:
    status = status_for_shelf(row.get("Exclusive Shelf"))
    pages = _to_int(row.get("Number of Pages"))

    try:
        book = store.insert_book(
            user_id=user_id,
            title=title,
            author=author,
            total_pages=pages,
            current_page=(pages or 0) if status == COMPLETED else 0,
            status=status,
            started_at=today if status == IN_PROGRESS else None,
            finished_at=_to_date(row.get("Date Read")),
            published_year=_published_year(row),
        )
    except StoreError as exc:
        logger.warning("import: book insert failed for %r: %s", title, exc)
        return RowOutcome(errors=[f"Book: {title} - {exc}"])

    # review needs the id of the book that was just written
    rating_text = _clean(row.get("My Rating"))
    body = _raw(row.get("My Review"))
    if not rating_text and not body.strip():
        return RowOutcome(imported=True)

    try:
        store.insert_review(user_id=user_id, book_id=book.id,
                            rating=_to_rating(rating_text), review=body if body.strip() else None)
    except StoreError as exc:
        logger.warning("import: review insert failed for %r: %s", title, exc)
        return RowOutcome(imported=True, errors=[f"Review for {title} - {exc}"])
    return RowOutcome(imported=True)

def import_row(row: dict, row_number: int, user_id: str, store, today: date) -> RowOutcome:
    # stored as written; stripping only decides whether a title is there
    title = _raw(row.get("Title"))
    if not title.strip():
        return RowOutcome(errors=[f"Row {row_number}: missing title"])
    author = _raw(row.get("Author"))

    if is_tbr_shelf(row.get("Exclusive Shelf")):
        return _insert_tbr(row, title, author, user_id, store)
    return _insert_book_and_review(row, title, author, user_id, store, today)

def accumulate(result: ImportResult, outcome: RowOutcome) -> ImportResult:
    return ImportResult(
        imported=result.imported + (1 if outcome.imported else 0),
        errors=result.errors + outcome.errors,
    )

def import_goodreads_csv(content, user_id: str, store, today: date | None = None) -> ImportResult:
    # Read a Goodreads export and write it into the user's books, tbr_books and reviews
    try:
        rows = parse_goodreads_csv(content)
    except (pd.errors.ParserError, UnicodeDecodeError) as exc:
        logger.error("import: unreadable CSV for user %s: %s", user_id, exc)
        return ImportResult(errors=[f"Could not parse CSV: {exc}"])

    today = today or date.today()
    # generator keeps rows strictly sequential
    outcomes = (import_row(row, n, user_id, store, today) for n, row in enumerate(rows, start=1))
    result = reduce(accumulate, outcomes, ImportResult())

    logger.info("import: user %s, %d of %d rows imported, %d errors",
                user_id, result.imported, len(rows), len(result.errors))
    return result
