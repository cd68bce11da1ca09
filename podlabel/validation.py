"""
Schema checks for externally sourced JSON.

Every validator walks the whole input and accumulates one ValidationIssue per
problem instead of stopping at the first fault, so a single bad record yields a
complete report. Validators never mutate their input: a fully valid input comes
back as typed records, anything else as is_valid=False with the issue list and
no data.

Validators:
    validate_episode: Episode metadata (search result / `{id}.json`)
    validate_transcript: Diarized transcript (`_transcript.json`)
    validate_labeled_transcript: Labeled transcript (`_transcript_labeled.json`)
    validate_qa_pairs: Q&A pairs (`_qa_pairs.json`)
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar

from .errors import ValidationError
from .records import EpisodeMetadata, LabeledTranscriptSegment, QAPair, TranscriptSegment


T = TypeVar("T")

# MM:SS where MM is unbounded; [0-9] rather than \d to reject non-ASCII digits
TIMESTAMP_PATTERN = re.compile(r"[0-9]+:[0-9]{2}")

EPISODE_NUMERIC_FIELDS = ("datePublished", "dateCrawled", "duration", "episode")
SEGMENT_STRING_FIELDS = ("speaker", "timestampFrom", "timestampTo", "content")
TIMESTAMP_FIELDS = ("timestampFrom", "timestampTo")
QA_STRING_FIELDS = (
    "question",
    "answer",
    "questionSpeaker",
    "answerSpeaker",
    "timestampFrom",
    "timestampTo",
)


@dataclass(frozen=True)
class ValidationIssue:
    """
    One validation problem.

    Attributes:
        index: Position of the offending element in a sequence (None for the top level)
        field: Offending field name (None when the whole element is wrong)
        reason: Short machine-matchable reason ("missing_or_invalid", "bad_format", ...)
        raw_payload: The element (or top-level value) that failed
        detail: Human readable explanation
    """

    index: Optional[int]
    field: Optional[str]
    reason: str
    raw_payload: Any = None
    detail: str = ""

    @property
    def message(self) -> str:
        text = self.detail or self.reason
        if self.index is None:
            return text
        payload = json.dumps(self.raw_payload, indent=2, ensure_ascii=False, default=str)
        return f"Entry {self.index}: {text}\nFull entry: {payload}"

    def __str__(self) -> str:
        return self.message


@dataclass
class ValidationResult(Generic[T]):
    is_valid: bool
    errors: List[ValidationIssue] = field(default_factory=list)
    data: Optional[T] = None

    def unwrap(self, source: Optional[str] = None) -> T:
        """Return the data or raise ValidationError carrying every issue."""
        if not self.is_valid:
            raise ValidationError(self.errors, source=source)
        return self.data


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid number here
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def parse_timestamp(value: str) -> int:
    """
    Convert an MM:SS timestamp to seconds.

    Raises:
        ValueError: If the format is wrong or the seconds are not in [0, 60).

    Example:
        >>> parse_timestamp("119:59")
        7199
    """
    if not isinstance(value, str) or not TIMESTAMP_PATTERN.fullmatch(value):
        raise ValueError(f"Invalid timestamp format (should be MM:SS): {value!r}")
    minutes, seconds = (int(part) for part in value.split(":"))
    if seconds >= 60:
        raise ValueError(f"Invalid timestamp, seconds must be less than 60: {value!r}")
    return minutes * 60 + seconds


def _check_timestamp(
    entry: dict, index: int, name: str, issues: List[ValidationIssue]
) -> None:
    value = entry.get(name)
    if not isinstance(value, str):
        # Already reported as missing or invalid
        return
    if not TIMESTAMP_PATTERN.fullmatch(value):
        issues.append(
            ValidationIssue(
                index,
                name,
                "bad_format",
                entry,
                f'Invalid {name} format (should be MM:SS)\nTimestamp: "{value}"',
            )
        )
    elif int(value.split(":")[1]) >= 60:
        issues.append(
            ValidationIssue(
                index,
                name,
                "seconds_out_of_range",
                entry,
                f'Invalid {name} - seconds must be less than 60\nTimestamp: "{value}"',
            )
        )


def _check_string_fields(
    entry: dict, index: int, names, issues: List[ValidationIssue]
) -> None:
    for name in names:
        if not _is_non_empty_string(entry.get(name)):
            issues.append(
                ValidationIssue(
                    index, name, "missing_or_invalid", entry, f"Missing or invalid {name}"
                )
            )


def validate_episode(raw: Any) -> ValidationResult[EpisodeMetadata]:
    """
    Validate episode metadata.

    Requires an integer `id` and a non-empty string `title`; `datePublished`,
    `dateCrawled`, `duration` and `episode` must be numeric when present.
    """
    if not isinstance(raw, dict):
        return ValidationResult(
            False, [ValidationIssue(None, None, "not_an_object", raw, "Data is not an object")]
        )

    issues: List[ValidationIssue] = []
    episode_id = raw.get("id")
    if not isinstance(episode_id, int) or isinstance(episode_id, bool):
        issues.append(
            ValidationIssue(
                None, "id", "missing_or_invalid", raw, "Missing or invalid id (must be a number)"
            )
        )
    if not _is_non_empty_string(raw.get("title")):
        issues.append(
            ValidationIssue(
                None,
                "title",
                "missing_or_invalid",
                raw,
                "Missing or invalid title (must be a string)",
            )
        )
    for name in EPISODE_NUMERIC_FIELDS:
        value = raw.get(name)
        if value is not None and not _is_number(value):
            issues.append(
                ValidationIssue(
                    None, name, "not_numeric", raw, f"Invalid {name} (must be a number)"
                )
            )

    if issues:
        return ValidationResult(False, issues)
    return ValidationResult(True, [], EpisodeMetadata.from_dict(raw))


def _validate_segments(raw: Any, labeled: bool) -> ValidationResult:
    if not isinstance(raw, list):
        return ValidationResult(
            False,
            [
                ValidationIssue(
                    None, None, "not_an_array", raw, "Transcript data must be an array"
                )
            ],
        )

    issues: List[ValidationIssue] = []
    names = SEGMENT_STRING_FIELDS + (("labeledSpeaker",) if labeled else ())
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            issues.append(
                ValidationIssue(
                    index, None, "not_an_object", entry, "Entry is not an object"
                )
            )
            continue
        _check_string_fields(entry, index, names, issues)
        for name in TIMESTAMP_FIELDS:
            _check_timestamp(entry, index, name, issues)

    if issues:
        return ValidationResult(False, issues)
    record = LabeledTranscriptSegment if labeled else TranscriptSegment
    return ValidationResult(True, [], [record.from_dict(entry) for entry in raw])


def validate_transcript(raw: Any) -> ValidationResult[List[TranscriptSegment]]:
    """
    Validate a diarized transcript.

    The top-level value must be a list; every element needs non-empty string
    `speaker`, `timestampFrom`, `timestampTo` and `content`, and both
    timestamps must be MM:SS with seconds below 60.
    """
    return _validate_segments(raw, labeled=False)


def validate_labeled_transcript(
    raw: Any,
) -> ValidationResult[List[LabeledTranscriptSegment]]:
    """Same checks as validate_transcript plus a non-empty `labeledSpeaker`."""
    return _validate_segments(raw, labeled=True)


def validate_qa_pairs(raw: Any) -> ValidationResult[List[QAPair]]:
    """Validate Q&A pairs returned by the language model."""
    if not isinstance(raw, list):
        return ValidationResult(
            False,
            [ValidationIssue(None, None, "not_an_array", raw, "Q&A pairs must be an array")],
        )

    issues: List[ValidationIssue] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            issues.append(
                ValidationIssue(index, None, "not_an_object", entry, "Entry is not an object")
            )
            continue
        _check_string_fields(entry, index, QA_STRING_FIELDS, issues)
        for name in TIMESTAMP_FIELDS:
            _check_timestamp(entry, index, name, issues)

    if issues:
        return ValidationResult(False, issues)
    return ValidationResult(True, [], [QAPair.from_dict(entry) for entry in raw])
