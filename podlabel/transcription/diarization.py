"""
Diarized transcription using AssemblyAI.

The diarization client returns plain segments
`{"speaker": int, "start": seconds, "end": seconds, "text": str}`; the pipeline
turns them into TranscriptSegment records with `segments_from_diarization`.
"""

import logging
import math
import time
from typing import Any, Dict, List, Sequence

import assemblyai as aai

from ..errors import NetworkError
from ..logger import log_function
from ..records import TranscriptSegment


logger = logging.getLogger("podlabel.transcription")


def format_timestamp(seconds: float) -> str:
    """
    Format seconds as MM:SS (minutes unbounded, both parts zero padded to two digits).

    Example:
        >>> format_timestamp(7199.6)
        '119:59'
    """
    if seconds is None or seconds < 0 or math.isnan(seconds):
        seconds = 0
    total = int(math.floor(seconds))
    minutes, remaining = divmod(total, 60)
    return f"{minutes:02d}:{remaining:02d}"


def speaker_token(speaker: int) -> str:
    """Stage-local speaker token for a diarization speaker index."""
    return f"Speaker {speaker}"


def segments_from_diarization(segments: Sequence[Dict[str, Any]]) -> List[TranscriptSegment]:
    """
    Convert diarization output to transcript segments, keeping the original order.

    Segments without text are dropped.
    """
    transcript = []
    for segment in segments:
        text = (segment.get("text") or "").strip()
        if not text:
            logger.debug(f"Dropping empty diarization segment: {segment}")
            continue
        transcript.append(
            TranscriptSegment(
                speaker=speaker_token(segment["speaker"]),
                timestamp_from=format_timestamp(segment["start"]),
                timestamp_to=format_timestamp(segment["end"]),
                content=text,
            )
        )
    return transcript


class AssemblyAIDiarizer:
    """Speaker diarization through AssemblyAI (audio URL in, speaker turns out)."""

    def __init__(
        self,
        api_key: str,
        speakers_expected: int = 2,
        language: str = "en",
        http_timeout: float = 120.0,
    ):
        aai.settings.api_key = api_key
        # Large episodes exceed the SDK's default HTTP timeout
        if hasattr(aai.settings, "http_timeout"):
            aai.settings.http_timeout = http_timeout
        self.config = aai.TranscriptionConfig(
            language_code=language,
            speaker_labels=True,
            speakers_expected=speakers_expected,
            punctuate=True,
            format_text=True,
        )

    @classmethod
    def from_config(cls, config) -> "AssemblyAIDiarizer":
        return cls(
            api_key=config.assemblyai_api_key,
            speakers_expected=config.speakers_expected,
            language=config.transcription_language,
            http_timeout=config.http_timeout_seconds,
        )

    @log_function(logger_name="podlabel.transcription", log_args=True)
    def diarize(self, audio_url: str) -> List[Dict[str, Any]]:
        """
        Transcribe an audio URL with speaker labels.

        Args:
            audio_url: Public URL of the episode audio

        Returns:
            Ordered list of {"speaker": int, "start": float, "end": float, "text": str}

        Raises:
            NetworkError: If AssemblyAI reports an error or the call fails
        """
        start_time = time.time()
        try:
            transcript = aai.Transcriber(config=self.config).transcribe(audio_url)
        except Exception as e:
            raise NetworkError(f"AssemblyAI transcription failed: {e}") from e

        if transcript.status == aai.TranscriptStatus.error:
            raise NetworkError(f"AssemblyAI transcription failed: {transcript.error}")

        utterances = transcript.utterances or []
        # AssemblyAI labels speakers "A", "B", ...; map them to 0, 1, ...
        labels = sorted({u.speaker for u in utterances})
        index = {label: i for i, label in enumerate(labels)}

        segments = [
            {
                "speaker": index[u.speaker],
                "start": u.start / 1000.0,  # Convert ms to seconds
                "end": u.end / 1000.0,
                "text": u.text,
            }
            for u in utterances
        ]
        logger.info(
            f"AssemblyAI returned {len(segments)} segments from {len(labels)} speakers "
            f"in {time.time() - start_time:.1f}s"
        )
        return segments
