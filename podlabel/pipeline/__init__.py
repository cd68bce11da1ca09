"""
Episode processing pipeline.

This module sequences the stages over the data directory:
    1. Fetch: search by person, download audio + metadata (podlabel.ingestion)
    2. Transcribe: speaker diarization (podlabel.transcription.diarization)
    3. Label: speaker identification (podlabel.transcription.speaker_mapper)
    4. QA (optional): question/answer pairs (podlabel.transcription.qa_pairs)
    5. Persist: episodes and segments into the database (podlabel.db)

Usage:
    # CLI interface
    python -m podlabel 5
    python -m podlabel --stages transcribe,label 3
    python -m podlabel --status

    # Programmatic interface
    from podlabel.pipeline import run_pipeline
    report = run_pipeline(PipelineConfig.from_env(budget=5))
"""

from .orchestrator import (
    EpisodeStage,
    PipelineReport,
    StatusReport,
    collect_status,
    episode_status,
    iter_episode_refs,
    run_pipeline,
)
from .runner import (
    Stage,
    StageResult,
    StageRunner,
    StageStats,
    WorkItem,
    discover,
    is_corrupt_json,
)
from .stages import FetchStage, LabelStage, PersistStage, QAStage, TranscribeStage

__all__ = [
    # Orchestration
    "EpisodeStage",
    "PipelineReport",
    "StatusReport",
    "collect_status",
    "episode_status",
    "iter_episode_refs",
    "run_pipeline",
    # Stage runner
    "Stage",
    "StageResult",
    "StageRunner",
    "StageStats",
    "WorkItem",
    "discover",
    "is_corrupt_json",
    # Stages
    "FetchStage",
    "LabelStage",
    "PersistStage",
    "QAStage",
    "TranscribeStage",
]
