"""Tests for the AssemblyAI and OpenAI adapters (SDKs mocked, no network)."""

import json
from types import SimpleNamespace
from unittest.mock import Mock, patch

import assemblyai as aai
import pytest
from openai import OpenAI, OpenAIError

from podlabel.errors import ConfigError, NetworkError
from podlabel.llm import init_llm_openai, request_json
from podlabel.records import EpisodeMetadata, LabeledTranscriptSegment, TranscriptSegment
from podlabel.transcription import (
    AssemblyAIDiarizer,
    OpenAIQAGenerator,
    OpenAISpeakerLabeler,
    format_labeled_transcript,
    format_transcript,
)


def fake_openai(output_text=None, error=None):
    create = Mock(return_value=SimpleNamespace(output_text=output_text), side_effect=error)
    return SimpleNamespace(responses=SimpleNamespace(create=create))


def utterance(speaker, start_ms, end_ms, text):
    return SimpleNamespace(speaker=speaker, start=start_ms, end=end_ms, text=text)


@pytest.fixture
def transcript():
    return [
        TranscriptSegment("Speaker 0", "00:00", "00:04", "Welcome to the Muscle Nerds."),
        TranscriptSegment("Speaker 1", "00:04", "01:01", "Thanks, I'm Luke."),
    ]


@pytest.fixture
def metadata(episode_record):
    return EpisodeMetadata.from_dict(episode_record)


class TestAssemblyAIDiarizer:
    @pytest.fixture
    def diarizer(self):
        return AssemblyAIDiarizer("aai-key", speakers_expected=2)

    def test_maps_utterances_to_segments(self, diarizer):
        result = SimpleNamespace(
            status=aai.TranscriptStatus.completed,
            error=None,
            utterances=[
                utterance("B", 0, 4200, "Welcome."),
                utterance("A", 4200, 61900, "Thanks."),
                utterance("B", 62000, 75500, "Let's start."),
            ],
        )

        with patch("podlabel.transcription.diarization.aai.Transcriber") as transcriber:
            transcriber.return_value.transcribe.return_value = result
            segments = diarizer.diarize("https://cdn.example.com/1.mp3")

        transcriber.return_value.transcribe.assert_called_once_with("https://cdn.example.com/1.mp3")
        assert segments == [
            {"speaker": 1, "start": 0.0, "end": 4.2, "text": "Welcome."},
            {"speaker": 0, "start": 4.2, "end": 61.9, "text": "Thanks."},
            {"speaker": 1, "start": 62.0, "end": 75.5, "text": "Let's start."},
        ]

    def test_requests_speaker_labels(self, diarizer):
        assert diarizer.config.speaker_labels is True
        assert diarizer.config.speakers_expected == 2

    def test_error_status_raises_network_error(self, diarizer):
        result = SimpleNamespace(
            status=aai.TranscriptStatus.error, error="Download failed", utterances=None
        )

        with patch("podlabel.transcription.diarization.aai.Transcriber") as transcriber:
            transcriber.return_value.transcribe.return_value = result
            with pytest.raises(NetworkError, match="Download failed"):
                diarizer.diarize("https://cdn.example.com/1.mp3")

    def test_sdk_exception_raises_network_error(self, diarizer):
        with patch("podlabel.transcription.diarization.aai.Transcriber") as transcriber:
            transcriber.return_value.transcribe.side_effect = RuntimeError("timeout")
            with pytest.raises(NetworkError, match="timeout"):
                diarizer.diarize("https://cdn.example.com/1.mp3")

    def test_no_utterances(self, diarizer):
        result = SimpleNamespace(status=aai.TranscriptStatus.completed, error=None, utterances=None)

        with patch("podlabel.transcription.diarization.aai.Transcriber") as transcriber:
            transcriber.return_value.transcribe.return_value = result
            assert diarizer.diarize("https://cdn.example.com/1.mp3") == []


class TestOpenAIHelpers:
    def test_init_requires_key(self):
        with pytest.raises(ConfigError):
            init_llm_openai(None)

    def test_init_returns_client(self):
        assert isinstance(init_llm_openai("sk-test", timeout=10), OpenAI)

    def test_request_json(self):
        client = fake_openai('{"Speaker 0": "Host"}')

        assert request_json(client, "gpt-5", "instructions", "text") == {"Speaker 0": "Host"}
        client.responses.create.assert_called_once_with(
            model="gpt-5", instructions="instructions", input="text"
        )

    def test_api_error_becomes_network_error(self):
        client = fake_openai(error=OpenAIError("rate limited"))

        with pytest.raises(NetworkError, match="rate limited"):
            request_json(client, "gpt-5", "instructions", "text")

    @pytest.mark.parametrize("output", [None, "", "Sure! Here is the mapping"])
    def test_unusable_output_is_a_value_error(self, output):
        with pytest.raises(ValueError):
            request_json(fake_openai(output), "gpt-5", "instructions", "text")


class TestOpenAISpeakerLabeler:
    def test_identify(self, transcript, metadata):
        client = fake_openai(json.dumps({"Speaker 0": "Host", "Speaker 1": "Luke Leaman"}))
        labeler = OpenAISpeakerLabeler(client, model="gpt-5")

        mapping = labeler.identify(transcript, metadata)

        assert mapping == {"Speaker 0": "Host", "Speaker 1": "Luke Leaman"}
        kwargs = client.responses.create.call_args.kwargs
        assert '["Speaker 0", "Speaker 1"]' in kwargs["instructions"]
        assert metadata.title in kwargs["instructions"]
        assert "The Muscle Nerds Podcast" in kwargs["instructions"]
        assert kwargs["input"] == format_transcript(transcript)

    def test_non_object_response(self, transcript, metadata):
        labeler = OpenAISpeakerLabeler(fake_openai('["Host", "Luke"]'))

        with pytest.raises(ValueError, match="Expected a JSON object"):
            labeler.identify(transcript, metadata)

    def test_from_config(self, config):
        labeler = OpenAISpeakerLabeler.from_config(config)

        assert isinstance(labeler.client, OpenAI)
        assert labeler.model == config.openai_model


class TestOpenAIQAGenerator:
    @pytest.fixture
    def labeled(self, transcript):
        return [
            LabeledTranscriptSegment.from_segment(transcript[0], "Host"),
            LabeledTranscriptSegment.from_segment(transcript[1], "Luke Leaman"),
        ]

    def test_format_labeled_transcript(self, labeled):
        assert format_labeled_transcript(labeled) == (
            "Host (00:00-00:04): Welcome to the Muscle Nerds.\n"
            "Luke Leaman (00:04-01:01): Thanks, I'm Luke."
        )

    def test_generate(self, labeled):
        pairs = [{"question": "Who are you?", "answer": "I'm Luke."}]
        generator = OpenAIQAGenerator(fake_openai(json.dumps(pairs)))

        assert generator.generate(labeled) == pairs

    def test_generate_unwraps_single_key_object(self, labeled):
        pairs = [{"question": "Who are you?", "answer": "I'm Luke."}]
        generator = OpenAIQAGenerator(fake_openai(json.dumps({"qa_pairs": pairs})))

        assert generator.generate(labeled) == pairs
