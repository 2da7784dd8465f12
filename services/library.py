import logging
from datetime import date

from services.status import COMPLETED, DNF, DNF_TYPES, IN_PROGRESS, STATUSES

logger = logging.getLogger(__name__)


class DuplicateBookError(Exception):
    pass

class BookNotFoundError(Exception):
    pass


def add_book(store, user_id, title, author, total_pages=None, cover_url=None,
             status=IN_PROGRESS, published_year=None, today=None):
    if store.find_book(user_id, title, author):
        raise DuplicateBookError(f"{title!r} by {author!r} is already in your library")
    if status not in STATUSES:
        raise ValueError(f"unknown status: {status!r}")
    today = today or date.today()
    return store.insert_book(
        user_id=user_id,
        title=title,
        author=author,
        total_pages=total_pages,
        current_page=(total_pages or 0) if status == COMPLETED else 0,
        cover_url=cover_url,
        status=status,
        started_at=today if status == IN_PROGRESS else None,
        finished_at=today if status == COMPLETED else None,
        published_year=published_year,
    )

def add_tbr_entry(store, user_id, title, author, total_pages=None, cover_url=None,
                  notes=None, priority=0, published_year=None):
    if store.find_tbr(user_id, title, author):
        raise DuplicateBookError(f"{title!r} by {author!r} is already in your TBR")
    return store.insert_tbr(
        user_id=user_id,
        title=title,
        author=author,
        total_pages=total_pages,
        cover_url=cover_url,
        notes=notes,
        priority=priority,
        published_year=published_year,
    )

def move_tbr_to_active(store, user_id, tbr_id, status=IN_PROGRESS, today=None):
    """Move a TBR entry into the active books collection.

    Inserts the book first and deletes the TBR entry second. The two writes
    are not atomic: if the delete fails the book stays inserted and the
    StoreError propagates to the caller.
    """
    entry = store.get_tbr(tbr_id)
    if entry is None or entry.user_id != user_id:
        raise BookNotFoundError(tbr_id)
    if status not in (IN_PROGRESS, COMPLETED):
        raise ValueError(f"cannot move a TBR entry to {status!r}")

    today = today or date.today()
    pages = entry.total_pages
    book = store.insert_book(
        user_id=user_id,
        title=entry.title,
        author=entry.author,
        total_pages=pages,
        current_page=(pages or 0) if status == COMPLETED else 0,
        cover_url=entry.cover_url,
        status=status,
        started_at=today if status == IN_PROGRESS else None,
        finished_at=today if status == COMPLETED else None,
        published_year=entry.published_year,
    )
    store.delete_tbr(tbr_id)
    logger.info("moved tbr %s to books %s (%s)", tbr_id, book.id, status)
    return book

def _own_book(store, user_id, book_id):
    book = store.get_book(book_id)
    if book is None or book.user_id != user_id:
        raise BookNotFoundError(book_id)
    return book

def mark_dnf(store, user_id, book_id, dnf_type):
    if dnf_type not in DNF_TYPES:
        raise ValueError(f"dnf_type must be one of {DNF_TYPES}, got {dnf_type!r}")
    _own_book(store, user_id, book_id)
    return store.update_book(book_id, status=DNF, dnf_type=dnf_type)

def update_progress(store, user_id, book_id, current_page):
    book = _own_book(store, user_id, book_id)
    if current_page < 0:
        raise ValueError("current_page cannot be negative")
    if book.total_pages and current_page > book.total_pages:
        raise ValueError(f"current_page {current_page} is past the last page ({book.total_pages})")
    return store.update_book(book_id, current_page=current_page)

def set_status(store, user_id, book_id, status, dnf_type=None, today=None):
    """Change a book's reading status.

    Completing a book jumps current_page to the last page and stamps
    finished_at if it is unset; starting one stamps started_at the same way.
    A DNF needs a dnf_type, and leaving DNF clears it.
    """
    if status not in STATUSES:
        raise ValueError(f"unknown status: {status!r}")
    if status == DNF and dnf_type not in DNF_TYPES:
        raise ValueError(f"dnf_type must be one of {DNF_TYPES}, got {dnf_type!r}")
    book = _own_book(store, user_id, book_id)

    today = today or date.today()
    fields = {"status": status, "dnf_type": dnf_type if status == DNF else None}
    if status == COMPLETED:
        fields["finished_at"] = book.finished_at or today
        if book.total_pages:
            fields["current_page"] = book.total_pages
    elif status == IN_PROGRESS:
        fields["started_at"] = book.started_at or today
    return store.update_book(book_id, **fields)

def set_dates(store, user_id, book_id, started_at=None, finished_at=None):
    if started_at and finished_at and finished_at < started_at:
        raise ValueError("End date cannot be before start date")
    _own_book(store, user_id, book_id)
    return store.update_book(book_id, started_at=started_at, finished_at=finished_at)

def add_review(store, user_id, book_id, rating, review=None):
    # one review per (user, book); a second save overwrites the first
    if not 1 <= rating <= 5:
        raise ValueError(f"rating must be between 1 and 5, got {rating}")
    _own_book(store, user_id, book_id)
    existing = store.find_review(user_id, book_id)
    if existing is not None:
        return store.update_review(existing, rating=rating, review=review)
    return store.insert_review(user_id=user_id, book_id=book_id, rating=rating, review=review)

def follow(store, follower_id, following_id):
    if follower_id == following_id:
        raise ValueError("cannot follow yourself")
    existing = store.get_follow(follower_id, following_id)
    if existing is not None:
        return existing
    return store.insert_follow(follower_id, following_id)

def unfollow(store, follower_id, following_id):
    return store.delete_follow(follower_id, following_id)
