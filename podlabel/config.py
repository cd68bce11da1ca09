"""
Configuration settings for the podlabel pipeline.

This module defines the PipelineConfig dataclass. It is built once at the entry
point with PipelineConfig.from_env() and passed explicitly to every component;
nothing else in the package reads the environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from dotenv import load_dotenv
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError

from .errors import ConfigError


SUPPORTED_DATABASE_BACKENDS = ("sqlite", "postgresql")

STAGE_NAMES = ("fetch", "transcribe", "label", "qa", "persist")
DEFAULT_STAGES = ("fetch", "transcribe", "label", "persist")


def database_url_error(url: str) -> Optional[str]:
    """Check that SQLAlchemy can load a supported dialect for the URL."""
    try:
        parsed = make_url(url)
    except ArgumentError as e:
        return f"DATABASE_URL is not a valid database URL: {e}"
    if parsed.get_backend_name() not in SUPPORTED_DATABASE_BACKENDS:
        return f"DATABASE_URL must be a sqlite:// or postgresql:// URL, got: {parsed.drivername}://"
    try:
        parsed.get_dialect()
    except NoSuchModuleError as e:
        return f"DATABASE_URL names an unknown database driver: {e}"
    return None


@dataclass
class PipelineConfig:
    """Configuration for one pipeline run"""

    # Data layout
    data_dir: Path = Path("data")
    log_dir: Path = Path("logs")

    # Search provider (Podcast Index)
    search_query: str = "luke leaman"
    podcast_index_api_key: Optional[str] = None
    podcast_index_api_secret: Optional[str] = None
    podcast_index_base_url: str = "https://api.podcastindex.org/api/1.0"
    user_agent: str = "podlabel/1.0"

    # Diarization (AssemblyAI)
    assemblyai_api_key: Optional[str] = None
    speakers_expected: int = 2
    transcription_language: str = "en"

    # Language model (OpenAI)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-5"

    # Durable storage
    database_url: Optional[str] = None

    # Politeness and timeouts
    politeness_delay_seconds: float = 1.0
    http_timeout_seconds: float = 120.0

    # Per-stage budget for remote-backed file stages
    budget: int = 1
    stages: List[str] = field(default_factory=lambda: list(DEFAULT_STAGES))

    @classmethod
    def from_env(cls, **overrides) -> "PipelineConfig":
        """
        Build a configuration from the process environment (and `.env`).

        Keyword arguments override the environment, which is how the CLI applies
        its flags.
        """
        load_dotenv()
        values = dict(
            data_dir=Path(os.getenv("DATA_DIR", "data")),
            log_dir=Path(os.getenv("LOG_DIR", "logs")),
            search_query=os.getenv("SEARCH_QUERY", "luke leaman"),
            podcast_index_api_key=os.getenv("PODCAST_INDEX_API_KEY"),
            podcast_index_api_secret=os.getenv("PODCAST_INDEX_API_SECRET"),
            podcast_index_base_url=os.getenv(
                "PODCAST_INDEX_BASE_URL", "https://api.podcastindex.org/api/1.0"
            ),
            user_agent=os.getenv("PODLABEL_USER_AGENT", "podlabel/1.0"),
            assemblyai_api_key=os.getenv("ASSEMBLYAI_API_KEY"),
            speakers_expected=int(os.getenv("SPEAKERS_EXPECTED", "2")),
            transcription_language=os.getenv("TRANSCRIPTION_LANGUAGE", "en"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-5"),
            database_url=os.getenv("DATABASE_URL"),
            politeness_delay_seconds=float(os.getenv("POLITENESS_DELAY_SECONDS", "1.0")),
            http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "120")),
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def validate(self, stages: Optional[Iterable[str]] = None) -> List[str]:
        """
        Validate configuration for the given stages and return any error messages.

        Args:
            stages: Stage names to check (defaults to self.stages)

        Returns:
            List of validation error messages (empty if valid)
        """
        stages = list(self.stages if stages is None else stages)
        errors = []

        unknown = [s for s in stages if s not in STAGE_NAMES]
        if unknown:
            errors.append(
                f"Unknown stage(s): {', '.join(unknown)} (valid: {', '.join(STAGE_NAMES)})"
            )

        if "fetch" in stages:
            if not self.podcast_index_api_key:
                errors.append("PODCAST_INDEX_API_KEY is required for the fetch stage")
            if not self.podcast_index_api_secret:
                errors.append("PODCAST_INDEX_API_SECRET is required for the fetch stage")
            if not self.search_query:
                errors.append("SEARCH_QUERY must not be empty for the fetch stage")

        if "transcribe" in stages and not self.assemblyai_api_key:
            errors.append("ASSEMBLYAI_API_KEY is required for the transcribe stage")

        for stage in ("label", "qa"):
            if stage in stages and not self.openai_api_key:
                errors.append(f"OPENAI_API_KEY is required for the {stage} stage")

        if "persist" in stages:
            if not self.database_url:
                errors.append("DATABASE_URL is required for the persist stage")
            else:
                url_error = database_url_error(self.database_url)
                if url_error:
                    errors.append(url_error)

        if self.budget < 1:
            errors.append(f"Budget must be at least 1, got {self.budget}")
        if self.politeness_delay_seconds < 0:
            errors.append("POLITENESS_DELAY_SECONDS must not be negative")

        return errors

    def require(self, stages: Optional[Iterable[str]] = None) -> None:
        """Raise ConfigError if validate() reports any problem."""
        errors = self.validate(stages)
        if errors:
            raise ConfigError(errors)
