import logging
from typing import Dict, List, Optional, Sequence

from openai import OpenAI

from ..llm import init_llm_openai, request_json, speaker_identification_prompt
from ..logger import log_function
from ..records import (
    UNKNOWN_SPEAKER,
    EpisodeMetadata,
    LabeledTranscriptSegment,
    TranscriptSegment,
)


logger = logging.getLogger("podlabel.speaker_mapper")


def distinct_speakers(transcript: Sequence[TranscriptSegment]) -> List[str]:
    """Speaker tokens in order of first appearance."""
    return list(dict.fromkeys(segment.speaker for segment in transcript))


def format_transcript(transcript: Sequence[TranscriptSegment]) -> str:
    """
    Transform transcript segments to plain text with generic speaker tokens.

    Returns:
        Formatted string like "Speaker 0: ...\\nSpeaker 1: ..."
    """
    return "\n".join(f"{segment.speaker}: {segment.content}" for segment in transcript)


def resolve_speaker_mapping(
    speakers: Sequence[str], proposed: Optional[Dict[str, str]]
) -> Dict[str, str]:
    """
    Build a mapping that covers every observed speaker token.

    Tokens the model omitted, or mapped to something that is not a non-empty
    string, fall back to "Unknown Speaker". Keys the model invented are dropped.

    Args:
        speakers: Distinct speaker tokens from the transcript
        proposed: Mapping returned by the model (None when the model call failed)

    Returns:
        Mapping with exactly one entry per token in `speakers`
    """
    if proposed is None:
        logger.warning(
            f"Speaker labeling failed; all {len(speakers)} speakers set to {UNKNOWN_SPEAKER!r}"
        )
        return {speaker: UNKNOWN_SPEAKER for speaker in speakers}

    mapping = {}
    defaulted = []
    for speaker in speakers:
        label = proposed.get(speaker)
        if isinstance(label, str) and label.strip():
            mapping[speaker] = label.strip()
        else:
            mapping[speaker] = UNKNOWN_SPEAKER
            defaulted.append(speaker)

    if defaulted:
        logger.warning(
            f"Partial speaker coverage; defaulted {', '.join(defaulted)} to {UNKNOWN_SPEAKER!r}"
        )
    return mapping


def apply_speaker_mapping(
    transcript: Sequence[TranscriptSegment], mapping: Dict[str, str]
) -> List[LabeledTranscriptSegment]:
    """Attach the resolved label to every segment."""
    return [
        LabeledTranscriptSegment.from_segment(
            segment, mapping.get(segment.speaker) or UNKNOWN_SPEAKER
        )
        for segment in transcript
    ]


class OpenAISpeakerLabeler:
    """Use an OpenAI model to map generic speaker tokens to names or roles."""

    def __init__(self, client: OpenAI, model: str = "gpt-5"):
        self.client = client
        self.model = model

    @classmethod
    def from_config(cls, config) -> "OpenAISpeakerLabeler":
        client = init_llm_openai(config.openai_api_key, timeout=config.http_timeout_seconds)
        return cls(client, model=config.openai_model)

    @log_function(logger_name="podlabel.speaker_mapper")
    def identify(
        self, transcript: Sequence[TranscriptSegment], metadata: EpisodeMetadata
    ) -> Dict[str, str]:
        """
        Ask the model for a token → label mapping.

        Returns:
            Raw mapping as returned by the model, e.g. {"Speaker 0": "Luke Leaman"}

        Raises:
            NetworkError: If the API call fails
            ValueError: If the response is not a JSON object
        """
        speakers = distinct_speakers(transcript)
        instructions = speaker_identification_prompt(
            metadata.title, metadata.feed_title or "", speakers
        )
        logger.info(f"Calling LLM for speaker identification ({len(speakers)} speakers)")
        result = request_json(self.client, self.model, instructions, format_transcript(transcript))
        if not isinstance(result, dict):
            raise ValueError(f"Expected a JSON object, got {type(result).__name__}")
        logger.info(f"LLM returned speaker mapping: {result}")
        return result
