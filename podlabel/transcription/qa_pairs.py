import logging
from typing import Any, List, Sequence

from openai import OpenAI

from ..llm import init_llm_openai, qa_generation_prompt, request_json
from ..logger import log_function
from ..records import LabeledTranscriptSegment


logger = logging.getLogger("podlabel.qa_pairs")


def format_labeled_transcript(transcript: Sequence[LabeledTranscriptSegment]) -> str:
    """Render a labeled transcript as 'Name (MM:SS-MM:SS): text' lines."""
    return "\n".join(
        f"{s.labeled_speaker} ({s.timestamp_from}-{s.timestamp_to}): {s.content}"
        for s in transcript
    )


class OpenAIQAGenerator:
    """Derive question/answer pairs from a labeled transcript."""

    def __init__(self, client: OpenAI, model: str = "gpt-5"):
        self.client = client
        self.model = model

    @classmethod
    def from_config(cls, config) -> "OpenAIQAGenerator":
        client = init_llm_openai(config.openai_api_key, timeout=config.http_timeout_seconds)
        return cls(client, model=config.openai_model)

    @log_function(logger_name="podlabel.qa_pairs")
    def generate(self, transcript: Sequence[LabeledTranscriptSegment]) -> List[Any]:
        """
        Returns:
            Raw list of Q&A dicts (validated by the caller)
        """
        result = request_json(
            self.client, self.model, qa_generation_prompt(), format_labeled_transcript(transcript)
        )
        # Some models wrap the array in an object
        if isinstance(result, dict) and len(result) == 1:
            result = next(iter(result.values()))
        logger.info(
            f"LLM returned {len(result) if isinstance(result, list) else 0} Q&A pairs"
        )
        return result
