import sys

from database import SessionLocal, init_db
from services.etl import import_goodreads_csv
from services.store import RecordStore

# usage: python -m scripts.seed <user_id> [path/to/goodreads_library_export.csv]
user_id = sys.argv[1]
path = sys.argv[2] if len(sys.argv) > 2 else "data/goodreads_library_export.csv"

init_db()
with open(path, "rb") as f:
    db = SessionLocal()
    try:
        print(import_goodreads_csv(f.read(), user_id, RecordStore(db)).model_dump())
    finally:
        db.close()
