from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Book, Follow, Profile, Review, TBRBook


class StoreError(Exception):
    """A read or write against the record store failed."""


def _title_contains(column, text):
    return column.icontains(text, autoescape=True)


def _same_text(column, text):
    return func.lower(column) == (text or "").lower()


class RecordStore:
    """Thin data-access layer over a SQLAlchemy session.

    Every write commits on its own so a failing row never rolls back the
    rows written before it. Any SQLAlchemyError is rolled back and
    re-raised as StoreError.
    """

    def __init__(self, db: Session):
        self.db = db

    def _read(self, what, query):
        try:
            return query.all()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(f"{what}: {exc}") from exc

    def _write(self, what, obj=None, delete=False):
        try:
            if delete:
                self.db.delete(obj)
            else:
                self.db.add(obj)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(f"{what}: {exc}") from exc
        if not delete:
            self.db.refresh(obj)
        return obj

    # --- per-user collections ---

    def books_for_user(self, user_id):
        return self._read("books", self.db.query(Book).filter(Book.user_id == user_id)
                                                      .order_by(Book.created_at))

    def tbr_for_user(self, user_id):
        return self._read("tbr_books", self.db.query(TBRBook).filter(TBRBook.user_id == user_id)
                                                              .order_by(TBRBook.created_at))

    def reviews_for_user(self, user_id):
        return self._read("reviews", self.db.query(Review).filter(Review.user_id == user_id))

    def get_book(self, book_id):
        rows = self._read("books", self.db.query(Book).filter(Book.id == book_id))
        return rows[0] if rows else None

    def get_tbr(self, tbr_id):
        rows = self._read("tbr_books", self.db.query(TBRBook).filter(TBRBook.id == tbr_id))
        return rows[0] if rows else None

    def find_book(self, user_id, title, author):
        rows = self._read("books", self.db.query(Book)
                                          .filter(Book.user_id == user_id,
                                                  _same_text(Book.title, title),
                                                  _same_text(Book.author, author)))
        return rows[0] if rows else None

    def find_tbr(self, user_id, title, author):
        rows = self._read("tbr_books", self.db.query(TBRBook)
                                              .filter(TBRBook.user_id == user_id,
                                                      _same_text(TBRBook.title, title),
                                                      _same_text(TBRBook.author, author)))
        return rows[0] if rows else None

    def find_review(self, user_id, book_id):
        rows = self._read("reviews", self.db.query(Review).filter(Review.user_id == user_id,
                                                                  Review.book_id == book_id))
        return rows[0] if rows else None

    # --- writes ---

    def insert_book(self, **fields):
        return self._write("insert book", Book(**fields))

    def insert_tbr(self, **fields):
        return self._write("insert tbr_book", TBRBook(**fields))

    def insert_review(self, **fields):
        return self._write("insert review", Review(**fields))

    def update_book(self, book_id, **fields):
        book = self.get_book(book_id)
        if book is None:
            return None
        for key, value in fields.items():
            setattr(book, key, value)
        return self._write("update book", book)

    def update_review(self, existing, **fields):
        for key, value in fields.items():
            setattr(existing, key, value)
        return self._write("update review", existing)

    def delete_tbr(self, tbr_id):
        entry = self.get_tbr(tbr_id)
        if entry is None:
            return False
        self._write("delete tbr_book", entry, delete=True)
        return True

    # --- social graph ---

    def followed_ids(self, user_id):
        rows = self._read("follows", self.db.query(Follow.following_id)
                                            .filter(Follow.follower_id == user_id))
        return [r.following_id for r in rows]

    def get_follow(self, follower_id, following_id):
        rows = self._read("follows", self.db.query(Follow)
                                            .filter(Follow.follower_id == follower_id,
                                                    Follow.following_id == following_id))
        return rows[0] if rows else None

    def insert_follow(self, follower_id, following_id):
        return self._write("insert follow", Follow(follower_id=follower_id,
                                                   following_id=following_id))

    def delete_follow(self, follower_id, following_id):
        follow = self.get_follow(follower_id, following_id)
        if follow is None:
            return False
        self._write("delete follow", follow, delete=True)
        return True

    def profiles(self, user_ids):
        return self._read("profiles", self.db.query(Profile).filter(Profile.id.in_(list(user_ids))))

    # --- cross-user search ---

    def search_books(self, user_ids, title):
        return self._read("books", self.db.query(Book)
                                          .filter(Book.user_id.in_(list(user_ids)),
                                                  _title_contains(Book.title, title)))

    def search_tbr(self, user_ids, title):
        return self._read("tbr_books", self.db.query(TBRBook)
                                              .filter(TBRBook.user_id.in_(list(user_ids)),
                                                      _title_contains(TBRBook.title, title)))
