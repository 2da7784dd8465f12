import uuid
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base


def _uuid():
    return str(uuid.uuid4())


class Profile(Base):
    __tablename__ = "profiles"
    id           = Column(String, primary_key=True, default=_uuid)
    username     = Column(String, nullable=False, unique=True)
    display_name = Column(String)
    avatar_url   = Column(String)
    created_at   = Column(DateTime, default=datetime.utcnow)

class Follow(Base):
    __tablename__ = "follows"
    follower_id  = Column(String, ForeignKey("profiles.id"), primary_key=True)
    following_id = Column(String, ForeignKey("profiles.id"), primary_key=True)
    created_at   = Column(DateTime, default=datetime.utcnow)

class Book(Base):
    # "active" books: in progress, completed, dnf, to_read
    __tablename__ = "books"
    id             = Column(String, primary_key=True, default=_uuid)
    user_id        = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)
    title          = Column(String, nullable=False, index=True)
    author         = Column(String, nullable=False, default="")
    total_pages    = Column(Integer)
    current_page   = Column(Integer, nullable=False, default=0)
    status         = Column(String, nullable=False, default="in_progress")
    dnf_type       = Column(String)                 # "soft" | "hard"
    cover_url      = Column(String)
    started_at     = Column(Date)
    finished_at    = Column(Date)
    published_year = Column(Integer)
    created_at     = Column(DateTime, default=datetime.utcnow)

    reviews = relationship("Review", back_populates="book", cascade="all, delete")

class TBRBook(Base):
    __tablename__ = "tbr_books"
    id             = Column(String, primary_key=True, default=_uuid)
    user_id        = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)
    title          = Column(String, nullable=False, index=True)
    author         = Column(String, nullable=False, default="")
    total_pages    = Column(Integer)
    cover_url      = Column(String)
    notes          = Column(Text)
    priority       = Column(Integer, nullable=False, default=0)
    published_year = Column(Integer)
    created_at     = Column(DateTime, default=datetime.utcnow)

class Review(Base):
    __tablename__ = "reviews"
    id         = Column(String, primary_key=True, default=_uuid)
    user_id    = Column(String, ForeignKey("profiles.id"), nullable=False)
    book_id    = Column(String, ForeignKey("books.id"), nullable=False)
    rating     = Column(Integer)
    review     = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    book = relationship("Book", back_populates="reviews")
