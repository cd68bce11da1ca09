"""
Database package for the podlabel durable store.

Structure:
- models.py: SQLAlchemy ORM models (Episode, EpisodeSegment, TimestampMixin)
- database.py: Engine creation, session factory and episode persistence

Database Patterns:
- Session-per-operation with the get_db_session() context manager
- One transaction per episode: the episode row and all of its segments are
  committed together or not at all

All models inherit from a common Base declarative class and follow consistent
naming conventions (singular class names, plural table names).
"""

from .models import Base, Episode, EpisodeSegment, TimestampMixin
from .database import (
    check_database_connection,
    count_rows,
    create_db_engine,
    episode_exists,
    episode_row,
    get_database_info,
    get_db_session,
    init_database,
    insert_episode_with_segments,
    make_session_factory,
    validate_database_url,
)

__all__ = [
    # Models
    "Base",
    "Episode",
    "EpisodeSegment",
    "TimestampMixin",
    # Database utilities
    "check_database_connection",
    "count_rows",
    "create_db_engine",
    "episode_exists",
    "episode_row",
    "get_database_info",
    "get_db_session",
    "init_database",
    "insert_episode_with_segments",
    "make_session_factory",
    "validate_database_url",
]
