import json
from typing import Sequence


def speaker_identification_prompt(
    title: str, feed_title: str, speaker_tokens: Sequence[str]
) -> str:
    """
    Returns the instructions for speaker identification.

    Args:
        title: Episode title
        feed_title: Podcast (feed) title
        speaker_tokens: Distinct speaker tokens found in the transcript

    Returns:
        Prompt string
    """
    return (
        "You are an expert at analyzing podcast transcripts and identifying speakers. "
        f'The episode is titled "{title}" and is from the podcast "{feed_title}". '
        "Here are the unique speaker IDs from the transcript: "
        f"{json.dumps(list(speaker_tokens))}. "
        "For each speaker ID: if you can confidently identify the speaker, use their full name; "
        'if you can identify the role but not the name, use the role (e.g. "Host", "Guest"); '
        'otherwise use "Unknown Speaker". '
        "Use consistent naming for the same speaker across different IDs if you can tell "
        "it is the same person. "
        "Return ONLY a valid JSON object with every speaker ID as a key and the name as value. "
        'Format: {"Speaker 0": "Name1", "Speaker 1": "Host"}.'
    )


def qa_generation_prompt() -> str:
    """
    Returns the instructions for Q&A pair generation.

    Returns:
        Prompt string
    """
    return (
        "You are an expert at analyzing podcast transcripts and creating meaningful "
        "question-answer pairs that capture important information and insights. "
        "Each transcript line is formatted as 'Speaker (MM:SS-MM:SS): text'. "
        "The question should be natural and conversational, the answer a direct response. "
        "Questions and answers can come from different speakers. "
        "Return ONLY a JSON array where every element has the string fields "
        '"question", "answer", "questionSpeaker", "answerSpeaker", '
        '"timestampFrom" and "timestampTo" (MM:SS, covering question and answer).'
    )
