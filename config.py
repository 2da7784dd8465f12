import os

from dotenv import load_dotenv
from pydantic import BaseModel


class Settings(BaseModel):
    database_url: str = "sqlite:///./readreceipt.db"
    log_level: str = "INFO"
    export_filename: str = "goodreads_library_export.csv"


def get_settings() -> Settings:
    # .env first, real environment wins
    load_dotenv()
    defaults = Settings()
    return Settings(
        database_url=os.getenv("DATABASE_URL", defaults.database_url),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        export_filename=os.getenv("EXPORT_FILENAME", defaults.export_filename),
    )
