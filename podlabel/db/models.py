"""
SQLAlchemy ORM models for the podlabel durable store.

This module defines the database schema using SQLAlchemy's declarative base.
All models inherit from Base and use consistent naming conventions.

Models:
    Episode: One podcast episode, unique on its Podcast Index id (external_id)
    EpisodeSegment: One labeled speaker turn of an episode, ordered by position
    TimestampMixin: Provides automatic created_at/updated_at timestamps
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class TimestampMixin:
    """
    Mixin to add automatic timestamp tracking to models.

    Provides:
        created_at: Timestamp when record was created (set automatically)
        updated_at: Timestamp when record was last modified (updated automatically)

    Both fields use database-level defaults (func.now()) for consistency.
    """

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )


class Episode(Base, TimestampMixin):
    """
    Represents a podcast episode as returned by the search provider.

    Rows are insert-only: an episode is written once together with its
    segments and never updated by the pipeline.

    Attributes:
        uuid: Primary key, unique identifier (UUID7 format)
        external_id: Podcast Index episode id as a string (unique)
        title: Episode title
        date_published: Publication time (converted from unix seconds)
        date_crawled: Time the search provider crawled the episode
        duration: Audio duration in seconds
        raw_metadata: The metadata record exactly as fetched
        segments: Labeled transcript segments in chronological order
    """

    __tablename__ = "episodes"

    uuid = Column(String, primary_key=True)
    external_id = Column(String(255), nullable=False, unique=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    link = Column(String(255), nullable=True)
    guid = Column(String(255), nullable=True)
    date_published = Column(DateTime, nullable=True)
    date_crawled = Column(DateTime, nullable=True)

    # Enclosure (audio)
    enclosure_url = Column(String(255), nullable=True)
    enclosure_type = Column(String(50), nullable=True)
    enclosure_length = Column(Integer, nullable=True)
    duration = Column(Integer, nullable=True)  # in seconds

    explicit = Column(Boolean, nullable=True)
    episode = Column(Integer, nullable=True)
    episode_type = Column(String(50), nullable=True)
    season = Column(Integer, nullable=True)
    image = Column(String(255), nullable=True)

    # Feed
    feed_itunes_id = Column(Integer, nullable=True)
    feed_image = Column(String(255), nullable=True)
    feed_id = Column(Integer, nullable=True)
    feed_url = Column(String(255), nullable=True)
    feed_author = Column(String(255), nullable=True)
    feed_title = Column(String(255), nullable=True)
    feed_language = Column(String(10), nullable=True)

    chapters_url = Column(String(255), nullable=True)
    transcript_url = Column(String(255), nullable=True)
    raw_metadata = Column(JSON, nullable=True)

    segments = relationship(
        "EpisodeSegment",
        back_populates="episode_row",
        order_by="EpisodeSegment.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return (
            f"<Episode(uuid={self.uuid}, external_id={self.external_id}, "
            f"title='{self.title}', published='{self.date_published}')>"
        )


class EpisodeSegment(Base, TimestampMixin):
    """
    One speaker turn of an episode transcript.

    Attributes:
        uuid: Primary key (UUID7 format)
        episode_uuid: Owning episode
        position: Zero-based index of the segment in the transcript
        speaker: Raw diarization token ("Speaker 0")
        labeled_speaker: Resolved name, role or "Unknown Speaker"
        timestamp_from / timestamp_to: "MM:SS"
        content: Spoken text
    """

    __tablename__ = "episode_timestamps"

    uuid = Column(String, primary_key=True)
    episode_uuid = Column(
        String, ForeignKey("episodes.uuid", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False)
    speaker = Column(String(255), nullable=False)
    labeled_speaker = Column(String(255), nullable=True)
    timestamp_from = Column(String(10), nullable=False)
    timestamp_to = Column(String(10), nullable=False)
    content = Column(Text, nullable=False)

    episode_row = relationship("Episode", back_populates="segments")

    def __repr__(self):
        return (
            f"<EpisodeSegment(episode_uuid={self.episode_uuid}, position={self.position}, "
            f"speaker='{self.labeled_speaker or self.speaker}', "
            f"{self.timestamp_from}-{self.timestamp_to})>"
        )
