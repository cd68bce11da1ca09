"""
Database engine and session management for the podlabel durable store.

This module provides:
- Engine creation for SQLite (NullPool + WAL pragmas) and PostgreSQL URLs
- Session-per-operation pattern through the get_db_session() context manager
- Insert-only, idempotent persistence of an episode and its segments

Nothing here reads the environment: the database URL comes from PipelineConfig
and the engine/session factory are created by the caller and passed in.
"""

import datetime
import logging
import os
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional, Sequence
from urllib.parse import urlparse

import uuid_utils as uuid
from sqlalchemy import create_engine, event, func, inspect, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from ..logger import log_function
from ..records import EpisodeMetadata, LabeledTranscriptSegment
from .models import Base, Episode, EpisodeSegment


db_logger = logging.getLogger("podlabel.database")


@log_function(logger_name="podlabel.database", log_args=True, log_result=True)
def validate_database_url(url: Optional[str]) -> tuple[bool, str]:
    """Validate the database URL scheme (sqlite or postgresql) and return its target."""
    if not url:
        return False, "Database URL is empty"
    try:
        parsed = urlparse(url)
    except ValueError as e:
        return False, f"Invalid database URL format: {e}"

    scheme = parsed.scheme.split("+")[0]
    if scheme == "sqlite":
        # sqlite:///relative.db, sqlite:////abs/path.db, sqlite:// (memory)
        db_path = parsed.path[1:] if parsed.path.startswith("/") else parsed.path
        return True, db_path or ":memory:"
    if scheme == "postgresql":
        if not parsed.hostname:
            return False, "PostgreSQL URL has no host"
        return True, f"{parsed.hostname}{parsed.path}"
    return False, f"Only SQLite and PostgreSQL databases are supported, got: {parsed.scheme}"


def optimize_sqlite_connection(dbapi_connection, connection_record):
    """Apply SQLite-specific optimizations when connection is created."""
    cursor = dbapi_connection.cursor()

    # Enable WAL mode for better concurrent access
    cursor.execute("PRAGMA journal_mode=WAL")

    # Set busy timeout to 30 seconds to handle locks
    cursor.execute("PRAGMA busy_timeout=30000")

    # Enable foreign key constraints
    cursor.execute("PRAGMA foreign_keys=ON")

    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


@log_function(logger_name="podlabel.database")
def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the SQLAlchemy engine for a database URL.

    SQLite gets NullPool (avoid connection pooling issues with file locks) and
    the pragmas above; PostgreSQL uses the default pool.

    Raises:
        ValueError: If the URL is not a supported database URL
    """
    is_valid, db_info = validate_database_url(database_url)
    if not is_valid:
        db_logger.error(f"Database configuration error: {db_info}")
        raise ValueError(f"Database configuration error: {db_info}")

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            poolclass=NullPool,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        event.listen(engine, "connect", optimize_sqlite_connection)
    else:
        engine = create_engine(database_url, echo=echo, pool_pre_ping=True)

    db_logger.info(f"Database engine created: {db_info}")
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    """Create the session factory bound to an engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for database sessions (session-per-operation pattern).

    Provides automatic session cleanup, rollback on error and logging.

    Usage:
        with get_db_session(session_factory) as session:
            session.add(episode)
            session.commit()
    """
    session = session_factory()
    try:
        db_logger.debug("Database session created")
        yield session

    except OperationalError as e:
        db_logger.error(f"Database operational error: {e}")
        session.rollback()

        error_msg = str(e.orig) if hasattr(e, "orig") else str(e)
        if "no such table" in error_msg.lower():
            raise OperationalError(
                "Database table does not exist. Run `python -m podlabel --init-db` first.",
                None,
                e.orig if hasattr(e, "orig") else None,
            ) from e
        raise

    except SQLAlchemyError as e:
        db_logger.error(f"Database error: {e}")
        session.rollback()
        raise

    except Exception as e:
        db_logger.error(f"Unexpected database error: {e}")
        session.rollback()
        raise

    finally:
        session.close()
        db_logger.debug("Database session closed")


@log_function(logger_name="podlabel.database")
def init_database(engine: Engine) -> None:
    """
    Create all tables defined in the models.

    Existing tables are left untouched; there are no migrations.
    """
    Base.metadata.create_all(bind=engine)
    db_logger.info("Database tables created successfully")


@log_function(logger_name="podlabel.database")
def check_database_connection(session_factory: sessionmaker) -> bool:
    """
    Return True if the database answers a trivial query and has every
    podlabel table.
    """
    try:
        with get_db_session(session_factory) as session:
            session.execute(text("SELECT 1"))
            inspector = inspect(session.connection())
            missing = [
                name for name in Base.metadata.tables if not inspector.has_table(name)
            ]
    except SQLAlchemyError as e:
        db_logger.error(f"Database connection test failed: {e}")
        return False

    if missing:
        db_logger.error(
            f"Database tables missing: {', '.join(sorted(missing))}. "
            f"Run `python -m podlabel --init-db` first."
        )
        return False
    db_logger.info("Database connection test successful")
    return True


def episode_exists(session: Session, external_id: str) -> bool:
    """Check whether an episode with this external id is already stored."""
    stmt = select(Episode.uuid).where(Episode.external_id == str(external_id)).limit(1)
    return session.execute(stmt).first() is not None


def _unix_to_datetime(value: Optional[float]) -> Optional[datetime.datetime]:
    # 0 and None both mean "unknown"
    if not value:
        return None
    return datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc).replace(
        tzinfo=None
    )


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def episode_row(metadata: EpisodeMetadata) -> Episode:
    """Map episode metadata to an Episode row (not yet added to a session)."""
    return Episode(
        uuid=str(uuid.uuid7()),
        external_id=metadata.external_id,
        title=metadata.title,
        description=metadata.description or None,
        link=metadata.link or None,
        guid=metadata.guid or None,
        date_published=_unix_to_datetime(metadata.date_published),
        date_crawled=_unix_to_datetime(metadata.date_crawled),
        enclosure_url=metadata.enclosure_url or None,
        enclosure_type=metadata.enclosure_type or None,
        enclosure_length=_optional_int(metadata.enclosure_length),
        duration=_optional_int(metadata.duration),
        explicit=bool(metadata.explicit),
        episode=_optional_int(metadata.episode),
        episode_type=metadata.episode_type or None,
        season=_optional_int(metadata.season),
        image=metadata.image or None,
        feed_itunes_id=_optional_int(metadata.feed_itunes_id),
        feed_image=metadata.feed_image or None,
        feed_id=_optional_int(metadata.feed_id),
        feed_url=metadata.feed_url or None,
        feed_author=metadata.feed_author or None,
        feed_title=metadata.feed_title or None,
        feed_language=metadata.feed_language or None,
        chapters_url=metadata.chapters_url or None,
        transcript_url=metadata.transcript_url or None,
        raw_metadata=metadata.to_dict(),
    )


@log_function(logger_name="podlabel.database")
def insert_episode_with_segments(
    session_factory: sessionmaker,
    metadata: EpisodeMetadata,
    segments: Sequence[LabeledTranscriptSegment],
) -> bool:
    """
    Insert an episode and all of its segments in one transaction.

    Args:
        session_factory: Session factory bound to the target database
        metadata: Validated episode metadata
        segments: Validated labeled transcript, in chronological order

    Returns:
        True if the episode was inserted, False if it already existed (no-op)
    """
    with get_db_session(session_factory) as session:
        if episode_exists(session, metadata.external_id):
            db_logger.info(
                f"Skipping episode {metadata.title!r} (and its segments) - "
                f"already exists in database"
            )
            return False

        episode = episode_row(metadata)
        episode.segments = [
            EpisodeSegment(
                uuid=str(uuid.uuid7()),
                position=position,
                speaker=segment.speaker,
                labeled_speaker=segment.labeled_speaker or None,
                timestamp_from=segment.timestamp_from,
                timestamp_to=segment.timestamp_to,
                content=segment.content,
            )
            for position, segment in enumerate(segments)
        ]
        session.add(episode)
        session.commit()

        db_logger.info(
            f"Inserted episode {metadata.title!r} with {len(segments)} segments"
        )
        return True


def count_rows(session_factory: sessionmaker) -> Dict[str, int]:
    """Total number of episode and segment rows."""
    with get_db_session(session_factory) as session:
        episodes = session.execute(select(func.count()).select_from(Episode)).scalar_one()
        segments = session.execute(
            select(func.count()).select_from(EpisodeSegment)
        ).scalar_one()
    return {"episodes": episodes, "segments": segments}


@log_function(logger_name="podlabel.database")
def get_database_info(engine: Engine) -> dict:
    """
    Get information about the database.

    Returns:
        dict: Database information including dialect, pool class and, for a
        SQLite file, its size.
    """
    url = engine.url
    info = {
        "database_url": url.render_as_string(hide_password=True),
        "dialect": url.get_backend_name(),
        "engine_pool_class": engine.pool.__class__.__name__,
    }

    if info["dialect"] == "sqlite" and url.database and url.database != ":memory:":
        if os.path.exists(url.database):
            file_stats = os.stat(url.database)
            info.update(
                {
                    "file_exists": True,
                    "file_size_bytes": file_stats.st_size,
                    "file_size_mb": round(file_stats.st_size / (1024 * 1024), 2),
                    "last_modified": file_stats.st_mtime,
                }
            )
        else:
            info["file_exists"] = False

    return info
