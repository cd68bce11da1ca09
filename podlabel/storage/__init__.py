"""
Storage module for episode artifacts.

This module provides the abstract artifact store interface and its local
filesystem implementation, plus the naming conventions shared by every stage.
"""

from .base import (
    ARTIFACT_SUFFIXES,
    FAILED_DOWNLOADS,
    FAILED_LABELING,
    FAILED_QA_GENERATION,
    FAILED_TRANSCRIPTIONS,
    FAILURE_LOGS,
    ArtifactKind,
    BaseStorage,
    EpisodeRef,
    classify_artifact,
    feed_directory_name,
)
from .local import LocalStorage, serialize_artifact

__all__ = [
    "ARTIFACT_SUFFIXES",
    "FAILED_DOWNLOADS",
    "FAILED_LABELING",
    "FAILED_QA_GENERATION",
    "FAILED_TRANSCRIPTIONS",
    "FAILURE_LOGS",
    "ArtifactKind",
    "BaseStorage",
    "EpisodeRef",
    "LocalStorage",
    "classify_artifact",
    "feed_directory_name",
    "serialize_artifact",
]
