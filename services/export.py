import logging

from services.status import DNF, SHELF_TO_READ, normalize_status, shelf_for_status
from services.store import StoreError

logger = logging.getLogger(__name__)

# Goodreads "library export" layout, in file order
GOODREADS_COLUMNS = [
    "Book Id", "Title", "Author", "Author l-f", "Additional Authors",
    "ISBN", "ISBN13", "My Rating", "Average Rating", "Publisher", "Binding",
    "Number of Pages", "Year Published", "Original Publication Year",
    "Date Read", "Date Added", "Bookshelves", "Bookshelves with positions",
    "Exclusive Shelf", "My Review", "Spoiler", "Private Notes", "Read Count",
    "Owned Copies",
]

def escape_csv_value(value) -> str:
    s = "" if value is None else str(value)
    if any(ch in s for ch in (",", '"', "\n", "\r")):
        return '"' + s.replace('"', '""') + '"'
    return s

def _str(x):
    return "" if x is None else str(x)

def _iso_date(d):
    # date or datetime -> YYYY-MM-DD
    return d.isoformat()[:10] if d else ""

def _author_last_first(author):
    # "Frank Herbert" -> "Herbert, Frank"
    parts = (author or "").strip().rsplit(" ", 1)
    if len(parts) < 2:
        return (author or "").strip()
    return f"{parts[1]}, {parts[0]}"

def _blank_row():
    return {col: "" for col in GOODREADS_COLUMNS}

def book_to_row(book, review=None) -> dict:
    shelf = shelf_for_status(book.status)
    notes = ""
    if normalize_status(book.status) == DNF and book.dnf_type:
        notes = f"DNF Type: {book.dnf_type}"
    row = _blank_row()
    row.update({
        "Book Id": _str(book.id),
        "Title": book.title,
        "Author": book.author,
        "Author l-f": _author_last_first(book.author),
        "My Rating": _str(review.rating) if review is not None else "",
        "Number of Pages": _str(book.total_pages),
        "Year Published": _str(book.published_year),
        "Date Read": _iso_date(book.finished_at),
        "Date Added": _iso_date(book.created_at),
        "Bookshelves": shelf,
        "Bookshelves with positions": f"{shelf} (#1)",
        "Exclusive Shelf": shelf,
        "My Review": (review.review or "") if review is not None else "",
        "Private Notes": notes,
        "Read Count": "1" if book.finished_at else "0",
        "Owned Copies": "0",
    })
    return row

def tbr_to_row(entry) -> dict:
    row = _blank_row()
    row.update({
        "Book Id": _str(entry.id),
        "Title": entry.title,
        "Author": entry.author,
        "Author l-f": _author_last_first(entry.author),
        "Number of Pages": _str(entry.total_pages),
        "Year Published": _str(entry.published_year),
        "Date Added": _iso_date(entry.created_at),
        "Bookshelves": SHELF_TO_READ,
        "Bookshelves with positions": f"{SHELF_TO_READ} (#1)",
        "Exclusive Shelf": SHELF_TO_READ,
        "Private Notes": entry.notes or "",
        "Read Count": "0",
        "Owned Copies": "0",
    })
    return row

def rows_to_csv(rows) -> str:
    # header comes from the fixed schema so an empty library still gets one
    lines = [",".join(escape_csv_value(c) for c in GOODREADS_COLUMNS)]
    for row in rows:
        lines.append(",".join(escape_csv_value(row.get(c, "")) for c in GOODREADS_COLUMNS))
    return "\n".join(lines)

def _load(what, loader, user_id):
    try:
        return loader(user_id)
    except StoreError:
        logger.exception("export: failed to load %s for user %s", what, user_id)
        return []

def export_goodreads_csv(user_id: str, store) -> str:
    books = _load("books", store.books_for_user, user_id)
    reviews = _load("reviews", store.reviews_for_user, user_id)
    tbr = _load("tbr_books", store.tbr_for_user, user_id)

    # first review wins if a book somehow has several
    review_by_book = {}
    for r in reviews:
        review_by_book.setdefault(r.book_id, r)

    rows = [book_to_row(b, review_by_book.get(b.id)) for b in books]
    rows += [tbr_to_row(t) for t in tbr]

    logger.info("export: user %s, %d books, %d tbr", user_id, len(books), len(tbr))
    return rows_to_csv(rows)
