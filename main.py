import logging
from datetime import date

from fastapi import FastAPI, UploadFile, File, HTTPException, Depends, Header, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from config import get_settings
from database import SessionLocal, init_db
from services import library
from services.etl import import_goodreads_csv
from services.export import export_goodreads_csv
from services.followed import FollowedUserBooks
from services.store import RecordStore, StoreError

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI()

# create tables once at startup
init_db()

def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_store(db: Session = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


class NewBook(BaseModel):
    title: str
    author: str = ""
    total_pages: int | None = None
    cover_url: str | None = None
    status: str = "in_progress"
    published_year: int | None = None

class NewTBREntry(BaseModel):
    title: str
    author: str = ""
    total_pages: int | None = None
    cover_url: str | None = None
    notes: str | None = None
    priority: int = 0
    published_year: int | None = None

class MoveRequest(BaseModel):
    status: str = "in_progress"

class DNFRequest(BaseModel):
    dnf_type: str

class ProgressUpdate(BaseModel):
    current_page: int

class StatusUpdate(BaseModel):
    status: str
    dnf_type: str | None = None

class DatesUpdate(BaseModel):
    started_at: date | None = None
    finished_at: date | None = None

class ReviewBody(BaseModel):
    rating: int
    review: str | None = None


def _book_json(book):
    return {
        "id": book.id,
        "title": book.title,
        "author": book.author,
        "status": book.status,
        "dnf_type": book.dnf_type,
        "total_pages": book.total_pages,
        "current_page": book.current_page,
        "started_at": str(book.started_at) if book.started_at else None,
        "finished_at": str(book.finished_at) if book.finished_at else None,
    }

def _store_failure(exc):
    logger.error("store failure: %s", exc)
    return HTTPException(status_code=503, detail="record store unavailable")

def _update_book(op, store, user_id, book_id, *args):
    try:
        book = op(store, user_id, book_id, *args)
    except library.BookNotFoundError:
        raise HTTPException(status_code=404, detail="book not found")
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except StoreError as exc:
        raise _store_failure(exc)
    return _book_json(book)


@app.get("/")
def health():
    return {"status": "ok"}

@app.post("/import/goodreads")
async def import_goodreads(
    file: UploadFile = File(...),
    user_id: str = Header(..., alias="X-User-Id"),
    store: RecordStore = Depends(get_store),
):
    if not file.filename.endswith(".csv"):
        raise HTTPException(status_code=415, detail="upload a .csv file")
    content = await file.read()
    result = import_goodreads_csv(content, user_id, store)
    return result.model_dump()

@app.get("/export/goodreads")
def export_goodreads(
    user_id: str = Header(..., alias="X-User-Id"),
    store: RecordStore = Depends(get_store),
):
    csv_text = export_goodreads_csv(user_id, store)
    return Response(
        content=csv_text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{settings.export_filename}"'},
    )

@app.get("/followed/books")
def followed_books(
    title: str,
    author: str | None = None,
    user_id: str | None = Header(None, alias="X-User-Id"),
    store: RecordStore = Depends(get_store),
):
    finder = FollowedUserBooks(store)
    return [r.model_dump() for r in finder.search(user_id, title, author)]

@app.post("/books", status_code=201)
def create_book(
    body: NewBook,
    user_id: str = Header(..., alias="X-User-Id"),
    store: RecordStore = Depends(get_store),
):
    try:
        book = library.add_book(store, user_id, **body.model_dump())
    except library.DuplicateBookError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except StoreError as exc:
        raise _store_failure(exc)
    return _book_json(book)

@app.post("/tbr", status_code=201)
def create_tbr_entry(
    body: NewTBREntry,
    user_id: str = Header(..., alias="X-User-Id"),
    store: RecordStore = Depends(get_store),
):
    try:
        entry = library.add_tbr_entry(store, user_id, **body.model_dump())
    except library.DuplicateBookError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except StoreError as exc:
        raise _store_failure(exc)
    return {"id": entry.id, "title": entry.title, "author": entry.author}

@app.post("/tbr/{tbr_id}/move")
def move_tbr_entry(
    tbr_id: str,
    body: MoveRequest,
    user_id: str = Header(..., alias="X-User-Id"),
    store: RecordStore = Depends(get_store),
):
    try:
        book = library.move_tbr_to_active(store, user_id, tbr_id, status=body.status)
    except library.BookNotFoundError:
        raise HTTPException(status_code=404, detail="tbr entry not found")
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except StoreError as exc:
        raise _store_failure(exc)
    return _book_json(book)

@app.post("/books/{book_id}/dnf")
def mark_book_dnf(
    book_id: str,
    body: DNFRequest,
    user_id: str = Header(..., alias="X-User-Id"),
    store: RecordStore = Depends(get_store),
):
    return _update_book(library.mark_dnf, store, user_id, book_id, body.dnf_type)

@app.patch("/books/{book_id}/progress")
def update_book_progress(
    book_id: str,
    body: ProgressUpdate,
    user_id: str = Header(..., alias="X-User-Id"),
    store: RecordStore = Depends(get_store),
):
    return _update_book(library.update_progress, store, user_id, book_id, body.current_page)

@app.patch("/books/{book_id}/status")
def update_book_status(
    book_id: str,
    body: StatusUpdate,
    user_id: str = Header(..., alias="X-User-Id"),
    store: RecordStore = Depends(get_store),
):
    return _update_book(library.set_status, store, user_id, book_id, body.status, body.dnf_type)

@app.patch("/books/{book_id}/dates")
def update_book_dates(
    book_id: str,
    body: DatesUpdate,
    user_id: str = Header(..., alias="X-User-Id"),
    store: RecordStore = Depends(get_store),
):
    return _update_book(library.set_dates, store, user_id, book_id, body.started_at, body.finished_at)

@app.put("/books/{book_id}/review")
def save_review(
    book_id: str,
    body: ReviewBody,
    user_id: str = Header(..., alias="X-User-Id"),
    store: RecordStore = Depends(get_store),
):
    try:
        review = library.add_review(store, user_id, book_id, body.rating, body.review)
    except library.BookNotFoundError:
        raise HTTPException(status_code=404, detail="book not found")
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except StoreError as exc:
        raise _store_failure(exc)
    return {"id": review.id, "book_id": review.book_id, "rating": review.rating, "review": review.review}

@app.post("/follows/{following_id}", status_code=201)
def follow_user(
    following_id: str,
    user_id: str = Header(..., alias="X-User-Id"),
    store: RecordStore = Depends(get_store),
):
    try:
        library.follow(store, user_id, following_id)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except StoreError as exc:
        raise _store_failure(exc)
    return {"follower_id": user_id, "following_id": following_id}

@app.delete("/follows/{following_id}")
def unfollow_user(
    following_id: str,
    user_id: str = Header(..., alias="X-User-Id"),
    store: RecordStore = Depends(get_store),
):
    try:
        removed = library.unfollow(store, user_id, following_id)
    except StoreError as exc:
        raise _store_failure(exc)
    return {"removed": removed}
