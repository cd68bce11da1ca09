"""In-memory stand-ins for the remote collaborators (no network in tests)."""

import copy
from typing import Any, Dict, Iterator, List, Optional

from podlabel.errors import NetworkError


class FakeSearchClient:
    def __init__(self, results: Optional[List[Dict[str, Any]]] = None, error: Exception = None):
        self.results = results or []
        self.error = error
        self.queries: List[str] = []

    def search_by_person(self, query: str) -> List[Dict[str, Any]]:
        self.queries.append(query)
        if self.error:
            raise self.error
        return list(self.results)


class FakeDownloader:
    def __init__(self, content: bytes = b"ID3-fake-audio", fail_urls=()):
        self.content = content
        self.fail_urls = set(fail_urls)
        self.urls: List[str] = []

    def __call__(self, url: str, timeout: float = 120.0) -> Iterator[bytes]:
        self.urls.append(url)
        if url in self.fail_urls:
            raise NetworkError(f"Failed to download episode audio from {url}: 404")
        return iter([self.content[:4], self.content[4:]])


class FakeDiarizer:
    def __init__(self, segments: Optional[List[Dict[str, Any]]] = None, fail_urls=()):
        self.segments = segments
        self.fail_urls = set(fail_urls)
        self.calls: List[str] = []

    def diarize(self, audio_url: str) -> List[Dict[str, Any]]:
        self.calls.append(audio_url)
        if audio_url in self.fail_urls:
            raise NetworkError("AssemblyAI transcription failed: upstream error")
        if self.segments is not None:
            return list(self.segments)
        return [
            {"speaker": 0, "start": 0.0, "end": 4.2, "text": f"Welcome, this is {audio_url}."},
            {"speaker": 1, "start": 4.2, "end": 61.9, "text": "Thanks for having me."},
            {"speaker": 0, "start": 62.0, "end": 75.5, "text": "Let's talk about training."},
        ]


class FakeLabeler:
    def __init__(self, mapping: Optional[Dict[str, Any]] = None, error: Exception = None):
        self.mapping = mapping if mapping is not None else {"Speaker 0": "Host", "Speaker 1": "Luke Leaman"}
        self.error = error
        self.calls: List[str] = []

    def identify(self, transcript, metadata) -> Dict[str, Any]:
        self.calls.append(metadata.external_id)
        if self.error:
            raise self.error
        return dict(self.mapping)


class FakeQAGenerator:
    def __init__(self, pairs: Optional[List[Any]] = None):
        self.pairs = pairs
        self.calls = 0

    def generate(self, transcript) -> List[Any]:
        self.calls += 1
        if self.pairs is not None:
            return self.pairs
        first = transcript[0]
        return [
            {
                "question": "Who is the guest?",
                "answer": first.content,
                "questionSpeaker": first.labeled_speaker,
                "answerSpeaker": first.labeled_speaker,
                "timestampFrom": first.timestamp_from,
                "timestampTo": first.timestamp_to,
            }
        ]


EPISODE_RECORD = {
    "id": 15915208644,
    "title": "Luke Leaman on Training Smarter",
    "description": "Coach Luke Leaman joins the show.",
    "link": "https://example.com/episodes/1",
    "guid": "abc-123",
    "datePublished": 1700000000,
    "dateCrawled": 1700000500,
    "enclosureUrl": "https://cdn.example.com/audio/15915208644.mp3",
    "enclosureType": "audio/mpeg",
    "enclosureLength": 52428800,
    "duration": 3600,
    "explicit": 0,
    "episode": 42,
    "episodeType": "full",
    "season": 2,
    "image": "https://example.com/image.jpg",
    "feedItunesId": 1234,
    "feedImage": "https://example.com/feed.jpg",
    "feedId": 98765,
    "feedUrl": "https://example.com/feed.xml",
    "feedAuthor": "Muscle Nerds",
    "feedTitle": "The Muscle Nerds Podcast",
    "feedLanguage": "en",
    "chaptersUrl": None,
    "transcriptUrl": None,
}

TRANSCRIPT_RECORD = [
    {
        "speaker": "Speaker 0",
        "timestampFrom": "00:00",
        "timestampTo": "00:04",
        "content": "Welcome back to the show.",
    },
    {
        "speaker": "Speaker 1",
        "timestampFrom": "00:04",
        "timestampTo": "01:01",
        "content": "Thanks for having me.",
    },
    {
        "speaker": "Speaker 0",
        "timestampFrom": "01:02",
        "timestampTo": "119:59",
        "content": "Let's get into it.",
    },
]


def make_episode(episode_id, title=None, feed_title="The Muscle Nerds Podcast"):
    record = copy.deepcopy(EPISODE_RECORD)
    record.update(
        id=episode_id,
        title=title or f"Episode {episode_id}",
        feedTitle=feed_title,
        enclosureUrl=f"https://cdn.example.com/audio/{episode_id}.mp3",
    )
    return record
