"""
Typed records exchanged between pipeline stages.

Records:
    EpisodeMetadata: One podcast episode as returned by the search provider
    TranscriptSegment: One diarized speaker turn
    LabeledTranscriptSegment: A speaker turn with a resolved speaker label
    QAPair: A question/answer pair derived from a labeled transcript

On disk every record uses the camelCase keys of the search provider and of the
existing transcript files, so `to_dict()` / `from_dict()` translate between the
two conventions.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional


UNKNOWN_SPEAKER = "Unknown Speaker"


# Python attribute -> on-disk key for the optional episode fields
EPISODE_OPTIONAL_KEYS = {
    "description": "description",
    "link": "link",
    "guid": "guid",
    "date_published": "datePublished",
    "date_crawled": "dateCrawled",
    "enclosure_url": "enclosureUrl",
    "enclosure_type": "enclosureType",
    "enclosure_length": "enclosureLength",
    "duration": "duration",
    "explicit": "explicit",
    "episode": "episode",
    "episode_type": "episodeType",
    "season": "season",
    "image": "image",
    "feed_itunes_id": "feedItunesId",
    "feed_image": "feedImage",
    "feed_id": "feedId",
    "feed_url": "feedUrl",
    "feed_author": "feedAuthor",
    "feed_title": "feedTitle",
    "feed_language": "feedLanguage",
    "chapters_url": "chaptersUrl",
    "transcript_url": "transcriptUrl",
}


@dataclass(frozen=True)
class EpisodeMetadata:
    """
    A podcast episode identified by its numeric external id.

    The raw record is kept verbatim in `raw` so the metadata artifact can be
    rewritten exactly as it was received.
    """

    id: int
    title: str
    description: Optional[str] = None
    link: Optional[str] = None
    guid: Optional[str] = None
    date_published: Optional[float] = None
    date_crawled: Optional[float] = None
    enclosure_url: Optional[str] = None
    enclosure_type: Optional[str] = None
    enclosure_length: Optional[int] = None
    duration: Optional[float] = None
    explicit: Optional[int] = None
    episode: Optional[float] = None
    episode_type: Optional[str] = None
    season: Optional[int] = None
    image: Optional[str] = None
    feed_itunes_id: Optional[int] = None
    feed_image: Optional[str] = None
    feed_id: Optional[int] = None
    feed_url: Optional[str] = None
    feed_author: Optional[str] = None
    feed_title: Optional[str] = None
    feed_language: Optional[str] = None
    chapters_url: Optional[str] = None
    transcript_url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def external_id(self) -> str:
        return str(self.id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EpisodeMetadata":
        """Build from an already validated raw record (see validate_episode)."""
        kwargs = {attr: data.get(key) for attr, key in EPISODE_OPTIONAL_KEYS.items()}
        return cls(id=data["id"], title=data["title"], raw=dict(data), **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        if self.raw:
            return dict(self.raw)
        data: Dict[str, Any] = {"id": self.id, "title": self.title}
        for attr, key in EPISODE_OPTIONAL_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        return data


@dataclass(frozen=True)
class TranscriptSegment:
    speaker: str
    timestamp_from: str
    timestamp_to: str
    content: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranscriptSegment":
        return cls(
            speaker=data["speaker"],
            timestamp_from=data["timestampFrom"],
            timestamp_to=data["timestampTo"],
            content=data["content"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "speaker": self.speaker,
            "timestampFrom": self.timestamp_from,
            "timestampTo": self.timestamp_to,
            "content": self.content,
        }


@dataclass(frozen=True)
class LabeledTranscriptSegment(TranscriptSegment):
    labeled_speaker: str = UNKNOWN_SPEAKER

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LabeledTranscriptSegment":
        return cls(
            speaker=data["speaker"],
            timestamp_from=data["timestampFrom"],
            timestamp_to=data["timestampTo"],
            content=data["content"],
            labeled_speaker=data.get("labeledSpeaker") or UNKNOWN_SPEAKER,
        )

    @classmethod
    def from_segment(
        cls, segment: TranscriptSegment, labeled_speaker: str
    ) -> "LabeledTranscriptSegment":
        values = {f.name: getattr(segment, f.name) for f in fields(TranscriptSegment)}
        return cls(labeled_speaker=labeled_speaker, **values)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["labeledSpeaker"] = self.labeled_speaker
        return data


@dataclass(frozen=True)
class QAPair:
    question: str
    answer: str
    question_speaker: str
    answer_speaker: str
    timestamp_from: str
    timestamp_to: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QAPair":
        return cls(
            question=data["question"],
            answer=data["answer"],
            question_speaker=data["questionSpeaker"],
            answer_speaker=data["answerSpeaker"],
            timestamp_from=data["timestampFrom"],
            timestamp_to=data["timestampTo"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "answer": self.answer,
            "questionSpeaker": self.question_speaker,
            "answerSpeaker": self.answer_speaker,
            "timestampFrom": self.timestamp_from,
            "timestampTo": self.timestamp_to,
        }
