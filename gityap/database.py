"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for profiles and comparison history.
"""

from datetime import datetime
from pathlib import Path
from sqlalchemy import create_engine, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


class CodeProfileRecord(Base):
    """Last resolved code-platform profile per handle."""

    __tablename__ = "code_profiles"

    handle_key = Column(String, primary_key=True)  # lower-cased handle
    handle = Column(String, nullable=False)
    avatar_url = Column(Text, nullable=True)
    name = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    profile_url = Column(Text, nullable=True)
    public_repos = Column(Integer, nullable=False, default=0)
    commit_count = Column(Integer, nullable=False, default=0)
    followers = Column(Integer, nullable=False, default=0)
    following = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class ChannelRecord(Base):
    """Last observed channel counters per handle."""

    __tablename__ = "channels"

    handle_key = Column(String, primary_key=True)
    handle = Column(String, nullable=False)
    title = Column(Text, nullable=True)
    post_count = Column(Integer, nullable=False, default=0)
    participant_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class ComparisonRecord(Base):
    """One comparison outcome. Superseded by delete-then-insert, never updated."""

    __tablename__ = "comparisons"
    __table_args__ = {"sqlite_autoincrement": True}  # superseded ids are never reused

    id = Column(Integer, primary_key=True, autoincrement=True)
    pair_key = Column(String, nullable=False, index=True)  # kind|type|handle|type|handle, same-type sides sorted
    kind = Column(String(32), nullable=False)
    left_handle = Column(String, nullable=False)
    left_type = Column(String(16), nullable=False)
    left_avatar_url = Column(Text, nullable=True)
    right_handle = Column(String, nullable=False)
    right_type = Column(String(16), nullable=False)
    right_avatar_url = Column(Text, nullable=True)
    left_score = Column(Integer, nullable=False)
    right_score = Column(Integer, nullable=False)
    winner = Column(String(16), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


def get_engine(db_path: Path):
    return create_engine(f"sqlite:///{db_path}")


def init_database(db_path: Path):
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy engine bound to the database
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)
    return engine


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    Session = sessionmaker(bind=get_engine(db_path))
    return Session()
