"""
Pipeline stages.

Each stage wraps one external collaborator (search provider, diarization
service, language model, database) and provides:
- Discovery of eligible work from the artifact store
- Validation of everything read from disk or returned by a remote service
- The failure-log columns written when an item fails

Stages:
    FetchStage: search results -> {id}.mp3 + {id}.json
    TranscribeStage: {id}.json (+ audio) -> {id}_transcript.json
    LabelStage: {id}_transcript.json (+ metadata) -> {id}_transcript_labeled.json
    QAStage: {id}_transcript_labeled.json -> {id}_qa_pairs.json
    PersistStage: {id}_transcript_labeled.json (+ metadata) -> database rows
"""

import logging
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.orm import sessionmaker

from ..db import insert_episode_with_segments
from ..errors import NetworkError, SkipItem
from ..ingestion import download_audio
from ..records import EpisodeMetadata, LabeledTranscriptSegment
from ..storage import (
    FAILED_DOWNLOADS,
    FAILED_LABELING,
    FAILED_QA_GENERATION,
    FAILED_TRANSCRIPTIONS,
    ArtifactKind,
    BaseStorage,
)
from ..transcription import (
    apply_speaker_mapping,
    distinct_speakers,
    resolve_speaker_mapping,
    segments_from_diarization,
)
from ..validation import (
    ValidationResult,
    validate_episode,
    validate_labeled_transcript,
    validate_qa_pairs,
    validate_transcript,
)
from .runner import Stage, WorkItem


logger = logging.getLogger("podlabel.pipeline")


def checked(result: ValidationResult, source: str) -> Any:
    """Log every validation issue, then return the data or raise ValidationError."""
    if not result.is_valid:
        logger.warning(f"Invalid data in {source}:")
        for issue in result.errors:
            logger.warning(f"- {issue.message}")
    return result.unwrap(source)


def load_metadata(store: BaseStorage, item: WorkItem) -> EpisodeMetadata:
    """Read and validate the metadata artifact of an item's episode."""
    raw = store.read(item.ref, ArtifactKind.METADATA)
    metadata = checked(validate_episode(raw), item.ref.path_for(ArtifactKind.METADATA).name)
    item.context.update(
        title=metadata.title, enclosure_url=metadata.enclosure_url or ""
    )
    return metadata


class FetchStage(Stage):
    """Search episodes by person and store their audio and metadata."""

    name = "fetch"
    failure_log = FAILED_DOWNLOADS

    def __init__(
        self,
        store: BaseStorage,
        search_client,
        query: str,
        downloader: Callable[..., Iterator[bytes]] = download_audio,
        timeout: float = 120.0,
    ):
        self.store = store
        self.search_client = search_client
        self.query = query
        self.downloader = downloader
        self.timeout = timeout
        self.invalid_results = 0

    def discover(self, store: BaseStorage, root: Path) -> Iterator[WorkItem]:
        """
        One work item per valid search result, in the order returned.

        Raises:
            NetworkError: If the search request itself fails
        """
        results = self.search_client.search_by_person(self.query)
        logger.info(f"Found {len(results)} episodes for {self.query!r}")

        for index, raw in enumerate(results):
            validation = validate_episode(raw)
            if not validation.is_valid:
                self.invalid_results += 1
                logger.warning(f"Ignoring invalid search result {index}:")
                for issue in validation.errors:
                    logger.warning(f"- {issue.message}")
                continue

            metadata = validation.data
            yield WorkItem(
                ref=store.episode_ref(metadata.feed_title, metadata.id),
                payload=metadata,
                context={
                    "title": metadata.title,
                    "enclosure_url": metadata.enclosure_url or "",
                },
            )

    def transform(self, item: WorkItem) -> EpisodeMetadata:
        if self.store.exists(item.ref, ArtifactKind.METADATA) and self.store.exists(
            item.ref, ArtifactKind.AUDIO
        ):
            raise SkipItem(f"episode already downloaded: {item.payload.title}")
        return item.payload

    def commit(self, store: BaseStorage, item: WorkItem, output: EpisodeMetadata) -> Path:
        # Audio first: metadata presence implies a complete download
        if not store.exists(item.ref, ArtifactKind.AUDIO):
            if not output.enclosure_url:
                raise ValueError("Episode has no enclosure URL")
            logger.info(f"Downloading audio for: {output.title}")
            store.write_stream(
                item.ref,
                ArtifactKind.AUDIO,
                self.downloader(output.enclosure_url, timeout=self.timeout),
            )
        if not store.exists(item.ref, ArtifactKind.METADATA):
            logger.info(f"Saving metadata for: {output.title}")
            store.write(item.ref, ArtifactKind.METADATA, output)
        return item.ref.path_for(ArtifactKind.METADATA)

    def failure_context(self, item: WorkItem) -> List[str]:
        return [item.context.get("title", ""), item.context.get("enclosure_url", "")]


class TranscribeStage(Stage):
    """Diarize a fetched episode's audio into speaker turns."""

    name = "transcribe"
    input_kind = ArtifactKind.METADATA
    output_kind = ArtifactKind.TRANSCRIPT
    requires = (ArtifactKind.AUDIO,)
    failure_log = FAILED_TRANSCRIPTIONS

    def __init__(self, store: BaseStorage, diarizer):
        self.store = store
        self.diarizer = diarizer

    def transform(self, item: WorkItem):
        metadata = load_metadata(self.store, item)
        if not metadata.enclosure_url:
            raise ValueError(f"No enclosure URL found in metadata for {item.identifier}")

        logger.info(f"Transcribing: {metadata.title}")
        transcript = segments_from_diarization(self.diarizer.diarize(metadata.enclosure_url))
        if not transcript:
            raise ValueError("Diarization returned no segments")
        return transcript

    def failure_context(self, item: WorkItem) -> List[str]:
        return [item.context.get("enclosure_url", "")]


class LabelStage(Stage):
    """
    Resolve speaker tokens to names with a language model.

    The resulting mapping always covers every token in the transcript: tokens
    the model leaves out, and every token when the model call fails, are
    labeled "Unknown Speaker".
    """

    name = "label"
    input_kind = ArtifactKind.TRANSCRIPT
    output_kind = ArtifactKind.LABELED_TRANSCRIPT
    requires = (ArtifactKind.METADATA,)
    failure_log = FAILED_LABELING

    def __init__(self, store: BaseStorage, labeler):
        self.store = store
        self.labeler = labeler

    def transform(self, item: WorkItem) -> List[LabeledTranscriptSegment]:
        metadata = load_metadata(self.store, item)
        transcript = checked(
            validate_transcript(self.store.read(item.ref, ArtifactKind.TRANSCRIPT)),
            item.identifier,
        )
        if not transcript:
            raise ValueError(f"Empty transcript for {item.identifier}")

        speakers = distinct_speakers(transcript)
        try:
            proposed = self.labeler.identify(transcript, metadata)
        except (NetworkError, ValueError) as e:
            logger.warning(f"Speaker identification failed for {metadata.title!r}: {e}")
            proposed = None

        mapping = resolve_speaker_mapping(speakers, proposed)
        return apply_speaker_mapping(transcript, mapping)

    def failure_context(self, item: WorkItem) -> List[str]:
        return [item.context.get("title", "")]


class QAStage(Stage):
    """Generate question/answer pairs from a labeled transcript."""

    name = "qa"
    input_kind = ArtifactKind.LABELED_TRANSCRIPT
    output_kind = ArtifactKind.QA_PAIRS
    failure_log = FAILED_QA_GENERATION

    def __init__(self, store: BaseStorage, generator):
        self.store = store
        self.generator = generator

    def transform(self, item: WorkItem):
        transcript = checked(
            validate_labeled_transcript(
                self.store.read(item.ref, ArtifactKind.LABELED_TRANSCRIPT)
            ),
            item.identifier,
        )
        if not transcript:
            raise ValueError(f"Empty transcript for {item.identifier}")

        pairs = checked(validate_qa_pairs(self.generator.generate(transcript)), "Q&A response")
        if not pairs:
            raise ValueError("No Q&A pairs generated")
        logger.info(f"Generated {len(pairs)} Q&A pairs for {item}")
        return pairs


class PersistStage(Stage):
    """Insert labeled episodes into the database, once per external id."""

    name = "persist"
    input_kind = ArtifactKind.LABELED_TRANSCRIPT
    output_kind = None
    remote = False

    def __init__(self, store: BaseStorage, session_factory: sessionmaker):
        self.store = store
        self.session_factory = session_factory

    def transform(
        self, item: WorkItem
    ) -> Tuple[EpisodeMetadata, Sequence[LabeledTranscriptSegment]]:
        metadata = load_metadata(self.store, item)
        segments = checked(
            validate_labeled_transcript(
                self.store.read(item.ref, ArtifactKind.LABELED_TRANSCRIPT)
            ),
            item.identifier,
        )
        logger.info(f"Validated {item}: {metadata.title!r}, {len(segments)} segments")
        return metadata, segments

    def commit(self, store: BaseStorage, item: WorkItem, output) -> Optional[bool]:
        metadata, segments = output
        if not insert_episode_with_segments(self.session_factory, metadata, segments):
            raise SkipItem(f"episode {metadata.external_id} already exists in database")
        return True
