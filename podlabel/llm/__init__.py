"""This package contains modules related to large language models (LLMs).
prompts.py : Instruction prompts for speaker identification and Q&A generation
openai.py : OpenAI client initialization and JSON response helper
"""

from .openai import init_llm_openai, request_json
from .prompts import qa_generation_prompt, speaker_identification_prompt


__all__ = [
    "init_llm_openai",
    "request_json",
    "qa_generation_prompt",
    "speaker_identification_prompt",
]
