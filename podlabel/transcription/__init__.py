# Transcription module - diarization, speaker labeling and Q&A generation

from .diarization import (
    AssemblyAIDiarizer,
    format_timestamp,
    segments_from_diarization,
    speaker_token,
)
from .qa_pairs import OpenAIQAGenerator, format_labeled_transcript
from .speaker_mapper import (
    OpenAISpeakerLabeler,
    apply_speaker_mapping,
    distinct_speakers,
    format_transcript,
    resolve_speaker_mapping,
)

__all__ = [
    "AssemblyAIDiarizer",
    "OpenAIQAGenerator",
    "OpenAISpeakerLabeler",
    "apply_speaker_mapping",
    "distinct_speakers",
    "format_labeled_transcript",
    "format_timestamp",
    "format_transcript",
    "resolve_speaker_mapping",
    "segments_from_diarization",
    "speaker_token",
]
