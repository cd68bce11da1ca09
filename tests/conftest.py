"""Shared pytest fixtures.

Key Fixtures:
    - data_root / store: An empty artifact store rooted in tmp_path
    - episode_record: A realistic Podcast Index search result
    - transcript_record: A diarized transcript as stored on disk
    - session_factory: A SQLite database in tmp_path with the tables created
    - config: A PipelineConfig with dummy credentials pointing at tmp_path
    - seed_episode: Helper writing artifacts for one episode
"""

import copy
import logging

import pytest

from podlabel.config import PipelineConfig
from podlabel.db import create_db_engine, init_database, make_session_factory
from podlabel.storage import ArtifactKind, LocalStorage

from fakes import EPISODE_RECORD, TRANSCRIPT_RECORD


@pytest.fixture(autouse=True)
def reset_podlabel_logger():
    """Remove handlers installed by setup_logging() so tests stay independent."""
    yield
    logger = logging.getLogger("podlabel")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def data_root(tmp_path):
    root = tmp_path / "data"
    root.mkdir()
    return root


@pytest.fixture
def store(data_root):
    return LocalStorage(data_root)


@pytest.fixture
def episode_record():
    return copy.deepcopy(EPISODE_RECORD)


@pytest.fixture
def transcript_record():
    return copy.deepcopy(TRANSCRIPT_RECORD)


@pytest.fixture
def seed_episode(store):
    """
    Write artifacts for one episode and return its EpisodeRef.

    Usage:
        ref = seed_episode(record, audio=True, transcript=TRANSCRIPT_RECORD)
    """

    def _seed(record, audio=True, transcript=None, labeled=None):
        ref = store.episode_ref(record.get("feedTitle"), record["id"])
        store.write(ref, ArtifactKind.METADATA, record)
        if audio:
            store.write_stream(ref, ArtifactKind.AUDIO, [b"ID3-fake-audio"])
        if transcript is not None:
            store.write(ref, ArtifactKind.TRANSCRIPT, transcript)
        if labeled is not None:
            store.write(ref, ArtifactKind.LABELED_TRANSCRIPT, labeled)
        return ref

    return _seed


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'podlabel.db'}"


@pytest.fixture
def session_factory(database_url):
    engine = create_db_engine(database_url)
    init_database(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def config(tmp_path, data_root, database_url):
    return PipelineConfig(
        data_dir=data_root,
        log_dir=tmp_path / "logs",
        search_query="luke leaman",
        podcast_index_api_key="pi-key",
        podcast_index_api_secret="pi-secret",
        assemblyai_api_key="aai-key",
        openai_api_key="sk-test",
        database_url=database_url,
        politeness_delay_seconds=1.0,
        budget=5,
    )
