import logging

from pydantic import BaseModel

from services.status import TBR, normalize_status
from services.store import StoreError

logger = logging.getLogger(__name__)


class FollowedUserBook(BaseModel):
    user_id: str
    username: str
    display_name: str | None = None
    avatar_url: str | None = None
    status: str   # in_progress | completed | dnf | to_read | tbr
    book_title: str
    book_author: str


class FollowedUserBooks:
    """Finds which followed accounts have a given book, and on which shelf.

    Holds the last result set and a loading flag for the caller; every
    store failure degrades to "no results" for that stage instead of
    raising.
    """

    def __init__(self, store):
        self.store = store
        self.results: list[FollowedUserBook] = []
        self.is_loading = False

    def clear(self):
        self.results = []

    def _query(self, what, fn, *args):
        try:
            return fn(*args)
        except StoreError:
            logger.exception("followed books: error searching %s", what)
            return []

    def search(self, user_id, title, author=None) -> list[FollowedUserBook]:
        title = (title or "").strip()
        if not title:
            self.results = []
            return self.results

        self.is_loading = True
        try:
            self.results = self._search(user_id, title, (author or "").strip().lower())
        finally:
            self.is_loading = False
        return self.results

    def _search(self, user_id, title, author_filter):
        if not user_id:
            return []

        try:
            followed_ids = self.store.followed_ids(user_id)
        except StoreError:
            logger.exception("followed books: error loading follows for %s", user_id)
            return []
        if not followed_ids:
            return []

        books = self._query("books", self.store.search_books, followed_ids, title)
        tbr_books = self._query("tbr_books", self.store.search_tbr, followed_ids, title)

        def keep(book):
            return not author_filter or author_filter in (book.author or "").lower()

        # owner id -> [(status, title, author)], insertion ordered
        by_user = {}
        for book in books:
            if keep(book):
                by_user.setdefault(book.user_id, []).append(
                    (normalize_status(book.status), book.title, book.author))
        for book in tbr_books:
            if keep(book):
                by_user.setdefault(book.user_id, []).append((TBR, book.title, book.author))

        if not by_user:
            return []

        try:
            profiles = self.store.profiles(list(by_user))
        except StoreError:
            logger.exception("followed books: error fetching profiles")
            return []

        return [
            FollowedUserBook(
                user_id=profile.id,
                username=profile.username,
                display_name=profile.display_name,
                avatar_url=profile.avatar_url,
                status=status,
                book_title=book_title,
                book_author=book_author,
            )
            for profile in profiles
            for status, book_title, book_author in by_user.get(profile.id, [])
        ]
