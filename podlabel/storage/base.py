import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple


class ArtifactKind(str, Enum):
    """
    Named on-disk artifacts belonging to one episode.

    Stages progress in order METADATA → QA_PAIRS; a later artifact is never
    written before its predecessor exists, so the presence of an artifact is the
    only record of progress.
    """

    METADATA = "metadata"
    AUDIO = "audio"
    TRANSCRIPT = "transcript"
    LABELED_TRANSCRIPT = "labeled_transcript"
    QA_PAIRS = "qa_pairs"


ARTIFACT_SUFFIXES = {
    ArtifactKind.METADATA: ".json",
    ArtifactKind.AUDIO: ".mp3",
    ArtifactKind.TRANSCRIPT: "_transcript.json",
    ArtifactKind.LABELED_TRANSCRIPT: "_transcript_labeled.json",
    ArtifactKind.QA_PAIRS: "_qa_pairs.json",
}

# Longest suffix first so "_transcript_labeled.json" wins over ".json"
_SUFFIX_LOOKUP = sorted(
    ARTIFACT_SUFFIXES.items(), key=lambda item: len(item[1]), reverse=True
)

FAILED_DOWNLOADS = "failed_downloads.txt"
FAILED_TRANSCRIPTIONS = "failed_transcriptions.txt"
FAILED_LABELING = "failed_labeling.txt"
FAILED_QA_GENERATION = "failed_qa_generation.txt"
FAILURE_LOGS = (
    FAILED_DOWNLOADS,
    FAILED_TRANSCRIPTIONS,
    FAILED_LABELING,
    FAILED_QA_GENERATION,
)


def classify_artifact(filename: str) -> Optional[Tuple[ArtifactKind, str]]:
    """
    Map a file name to (artifact kind, episode name).

    Returns None for anything that is not an episode artifact (failure logs,
    temporary files, hidden files).

    Example:
        >>> classify_artifact("123_transcript.json")
        (<ArtifactKind.TRANSCRIPT: 'transcript'>, '123')
    """
    if filename.startswith("."):
        return None
    for kind, suffix in _SUFFIX_LOOKUP:
        if filename.endswith(suffix) and len(filename) > len(suffix):
            return kind, filename[: -len(suffix)]
    return None


def feed_directory_name(feed_title: Optional[str]) -> str:
    """
    Directory name for a podcast feed: lowercased, every run of
    non-alphanumeric characters collapsed to a single underscore.

    Args:
        feed_title: Feed title from the search provider

    Returns:
        Sanitized directory name ("unknown_feed" when the title is missing)
    """
    if not feed_title:
        return "unknown_feed"
    return re.sub(r"[^a-z0-9]+", "_", feed_title.lower())


@dataclass(frozen=True)
class EpisodeRef:
    """One episode's artifact group: a feed directory plus the episode name."""

    directory: Path
    name: str

    def path_for(self, kind: ArtifactKind) -> Path:
        return self.directory / f"{self.name}{ARTIFACT_SUFFIXES[kind]}"

    def __str__(self) -> str:
        return f"{self.directory.name}/{self.name}"


class BaseStorage(ABC):
    """
    Abstract base class for the artifact store.

    Maps an episode (EpisodeRef) to its named artifacts and exposes the
    existence checks used for resumability.
    """

    @abstractmethod
    def episode_ref(self, feed_title: Optional[str], episode_id: Any) -> EpisodeRef:
        """Build the reference for an episode of the given feed."""

    @abstractmethod
    def exists(self, ref: EpisodeRef, kind: ArtifactKind) -> bool:
        """
        Check if an artifact exists.

        Never raises; filesystem errors count as "not present".
        """

    @abstractmethod
    def read(self, ref: EpisodeRef, kind: ArtifactKind) -> Any:
        """
        Load and deserialize a JSON artifact.

        Raises:
            ArtifactNotFound: If the artifact does not exist.
            CorruptArtifact: If the artifact exists but cannot be parsed.
        """

    @abstractmethod
    def write(self, ref: EpisodeRef, kind: ArtifactKind, value: Any) -> Path:
        """
        Serialize a value as JSON and replace the artifact in one step.

        Returns:
            Path of the written artifact.
        """

    @abstractmethod
    def write_stream(
        self, ref: EpisodeRef, kind: ArtifactKind, chunks: Iterable[bytes]
    ) -> Path:
        """Write binary content (audio) in one step."""

    @abstractmethod
    def append_failure(self, ref: EpisodeRef, log_name: str, note: str) -> Path:
        """Append one line to a failure log next to the episode artifacts."""

    @abstractmethod
    def read_failures(self, directory: Path, log_name: str) -> List[str]:
        """Return the lines of a failure log (empty if it does not exist)."""
