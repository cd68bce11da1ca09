import logging
import os
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..config import STAGE_NAMES, PipelineConfig
from ..db import (
    check_database_connection,
    count_rows,
    create_db_engine,
    episode_exists,
    get_db_session,
    make_session_factory,
)
from ..errors import ConfigError, NetworkError
from ..ingestion import PodcastIndexClient, download_audio
from ..logger import log_function
from ..storage import (
    FAILURE_LOGS,
    ArtifactKind,
    BaseStorage,
    EpisodeRef,
    LocalStorage,
    classify_artifact,
)
from ..transcription import AssemblyAIDiarizer, OpenAIQAGenerator, OpenAISpeakerLabeler
from .runner import StageRunner, StageStats, is_corrupt_json
from .stages import FetchStage, LabelStage, PersistStage, QAStage, TranscribeStage


logger = logging.getLogger("podlabel.pipeline")


class EpisodeStage(str, Enum):
    """
    Furthest state an episode has reached, derived from its artifacts.

    States progress in order NEW → PERSISTED; each state implies the previous
    ones. PERSISTED can only be observed with a database connection.
    """

    NEW = "new"  # Some artifact exists but metadata or audio is missing
    FETCHED = "fetched"  # Metadata + audio
    TRANSCRIBED = "transcribed"  # Diarized transcript
    LABELED = "labeled"  # Labeled transcript
    QA = "qa"  # Q&A pairs
    PERSISTED = "persisted"  # Rows in the database


def episode_status(store: BaseStorage, ref: EpisodeRef) -> EpisodeStage:
    """Furthest file-based state of one episode."""
    if store.exists(ref, ArtifactKind.QA_PAIRS):
        return EpisodeStage.QA
    if store.exists(ref, ArtifactKind.LABELED_TRANSCRIPT):
        return EpisodeStage.LABELED
    if store.exists(ref, ArtifactKind.TRANSCRIPT):
        return EpisodeStage.TRANSCRIBED
    if store.exists(ref, ArtifactKind.METADATA) and store.exists(ref, ArtifactKind.AUDIO):
        return EpisodeStage.FETCHED
    return EpisodeStage.NEW


def iter_episode_refs(root: Path) -> Iterator[EpisodeRef]:
    """Every episode with at least one artifact under root, in sorted order."""
    root = Path(root)
    if not root.is_dir():
        return
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        names = sorted(
            {c[1] for c in (classify_artifact(f) for f in filenames) if c is not None}
        )
        for name in names:
            yield EpisodeRef(Path(dirpath), name)


@dataclass
class StatusReport:
    states: Counter = field(default_factory=Counter)
    failures: Dict[str, int] = field(default_factory=dict)
    corrupt: List[Path] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.states.values())


@log_function(logger_name="podlabel.pipeline")
def collect_status(
    store: BaseStorage, root: Path, session_factory: Optional[sessionmaker] = None
) -> StatusReport:
    """
    Summarize the data root: episodes per state, failure-log entries and
    corrupt JSON artifacts.

    With a session factory, labeled episodes already in the database are
    counted as PERSISTED.
    """
    report = StatusReport(failures={log_name: 0 for log_name in FAILURE_LOGS})
    directories = set()

    for ref in iter_episode_refs(root):
        directories.add(ref.directory)
        state = episode_status(store, ref)
        if session_factory is not None and state in (EpisodeStage.LABELED, EpisodeStage.QA):
            with get_db_session(session_factory) as session:
                if episode_exists(session, ref.name):
                    state = EpisodeStage.PERSISTED
        report.states[state] += 1

        for kind in ArtifactKind:
            if kind is ArtifactKind.AUDIO:
                continue
            path = ref.path_for(kind)
            if path.is_file() and is_corrupt_json(path):
                report.corrupt.append(path)

    for directory in sorted(directories):
        for log_name in FAILURE_LOGS:
            report.failures[log_name] += len(store.read_failures(directory, log_name))

    for path in report.corrupt:
        logger.warning(f"Corrupt artifact: {path}")
    return report


@dataclass
class PipelineReport:
    stages: Dict[str, StageStats] = field(default_factory=dict)
    row_counts: Optional[Dict[str, int]] = None

    @property
    def failed(self) -> int:
        return sum(stats.failed for stats in self.stages.values())


@log_function(logger_name="podlabel.pipeline")
def run_pipeline(
    config: PipelineConfig,
    store: Optional[BaseStorage] = None,
    search_client=None,
    diarizer=None,
    labeler=None,
    qa_generator=None,
    session_factory: Optional[sessionmaker] = None,
    downloader: Callable = download_audio,
    sleep: Callable[[float], None] = time.sleep,
) -> PipelineReport:
    """
    Run the selected stages in order: fetch → transcribe → label → qa → persist.

    Remote collaborators default to the real clients built from the config;
    tests inject fakes.

    Args:
        config: Pipeline configuration (stages, budget, credentials, paths)
        store: Artifact store (defaults to LocalStorage on config.data_dir)
        search_client: Object with search_by_person(query)
        diarizer: Object with diarize(audio_url)
        labeler: Object with identify(transcript, metadata)
        qa_generator: Object with generate(labeled_transcript)
        session_factory: SQLAlchemy session factory for the persist stage
        downloader: Audio download function
        sleep: Politeness delay function

    Returns:
        PipelineReport with per-stage statistics

    Raises:
        ConfigError: If the configuration is incomplete for the selected stages,
            or the database for the persist stage is unreachable or has no tables
    """
    config.require(config.stages)
    store = store or LocalStorage(config.data_dir)
    root = Path(config.data_dir)
    runner = StageRunner(store, config.politeness_delay_seconds, sleep=sleep)
    report = PipelineReport()
    selected = [name for name in STAGE_NAMES if name in config.stages]

    if "persist" in selected:
        if session_factory is None:
            session_factory = make_session_factory(create_db_engine(config.database_url))
        if not check_database_connection(session_factory):
            raise ConfigError(
                [
                    "Database is unreachable or its tables are missing "
                    "(run `python -m podlabel --init-db` first)"
                ]
            )

    logger.info("=== PIPELINE STARTED ===")
    logger.info(f"Stages: {', '.join(selected)} | budget: {config.budget} | data: {root}")

    if "fetch" in selected:
        stage = FetchStage(
            store,
            search_client or PodcastIndexClient.from_config(config),
            config.search_query,
            downloader=downloader,
            timeout=config.http_timeout_seconds,
        )
        try:
            report.stages["fetch"] = runner.run_stage(stage, stage.discover(store, root))
        except NetworkError as e:
            logger.error(f"Search failed, nothing fetched: {e}")
            report.stages["fetch"] = StageStats("fetch", failed=1)
        if stage.invalid_results:
            logger.warning(f"Ignored {stage.invalid_results} invalid search results")

    if "transcribe" in selected:
        stage = TranscribeStage(store, diarizer or AssemblyAIDiarizer.from_config(config))
        report.stages["transcribe"] = runner.run_stage(
            stage, stage.discover(store, root), budget=config.budget
        )

    if "label" in selected:
        stage = LabelStage(store, labeler or OpenAISpeakerLabeler.from_config(config))
        report.stages["label"] = runner.run_stage(
            stage, stage.discover(store, root), budget=config.budget
        )

    if "qa" in selected:
        stage = QAStage(store, qa_generator or OpenAIQAGenerator.from_config(config))
        report.stages["qa"] = runner.run_stage(
            stage, stage.discover(store, root), budget=config.budget
        )

    if "persist" in selected:
        stage = PersistStage(store, session_factory)
        report.stages["persist"] = runner.run_stage(stage, stage.discover(store, root))
        try:
            report.row_counts = count_rows(session_factory)
        except SQLAlchemyError as e:
            logger.error(f"Could not count database rows: {e}")
        else:
            logger.info(
                f"Total episodes in database: {report.row_counts['episodes']}, "
                f"total segments: {report.row_counts['segments']}"
            )

    logger.info("=== PIPELINE COMPLETED ===")
    return report
