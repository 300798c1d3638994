"""Type definitions for the fretwise practice-scoring pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Union


class PatternNote(NamedTuple):
    """One note of a movable pattern, relative to the current position."""

    string: int  # 1 = high e, 6 = low E
    fret_offset: int  # 0 = the position fret

    def __str__(self):
        return f"S{self.string}+{self.fret_offset}"


class DrillDirection(str, Enum):
    """How string traversal order changes from one drill position to the next."""

    ASCENDING = "ascending"
    DESCENDING = "descending"
    ALTERNATE = "alternate"


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first key present in ``data`` (camelCase or snake_case)."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _as_int(value: Any) -> Any:
    """Turn integer-like values ('5', 5.0) into ints; leave anything else alone."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return value
    return value


@dataclass
class DrillConfig:
    """A sequence of positions practiced in order."""

    direction: Union[DrillDirection, str]
    start_position: int
    end_position: int
    position_increment: int
    repetitions_per_position: Optional[int] = None

    @property
    def repetitions(self) -> int:
        """Repetitions per position, defaulting to 1 when unset."""
        if self.repetitions_per_position is None:
            return 1
        return self.repetitions_per_position

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DrillConfig":
        direction = _pick(data, "direction", default=DrillDirection.ASCENDING.value)
        try:
            direction = DrillDirection(direction)
        except ValueError:
            pass  # kept verbatim so validation can report it
        return cls(
            direction=direction,
            start_position=_as_int(_pick(data, "startPosition", "start_position")),
            end_position=_as_int(_pick(data, "endPosition", "end_position")),
            position_increment=_as_int(
                _pick(data, "positionIncrement", "position_increment")
            ),
            repetitions_per_position=_as_int(
                _pick(data, "repetitionsPerPosition", "repetitions_per_position")
            ),
        )


@dataclass
class Exercise:
    """An exercise as handed over by the surrounding application.

    Either ``moveable`` with a ``pattern`` (and optionally a drill), or a
    fixed-position exercise with a static ``tablature`` string.
    """

    moveable: bool = False
    pattern: Optional[List[PatternNote]] = None
    default_position: Optional[int] = None
    drill: Optional[DrillConfig] = None
    tablature: Optional[str] = None
    bpm: Optional[int] = None
    title: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Exercise":
        raw_pattern = data.get("pattern")
        pattern = None
        if raw_pattern is not None:
            pattern = [PatternNote(int(s), int(offset)) for s, offset in raw_pattern]

        raw_drill = data.get("drill")
        return cls(
            moveable=bool(data.get("moveable", False)),
            pattern=pattern,
            default_position=_as_int(_pick(data, "defaultPosition", "default_position")),
            drill=DrillConfig.from_dict(raw_drill) if raw_drill else None,
            tablature=data.get("tablature"),
            bpm=data.get("bpm"),
            title=data.get("title", ""),
        )


@dataclass
class Note:
    """A note with pitch and timing, either expected (from tab) or detected."""

    note_name: str  # e.g. 'E2', 'A#3'
    frequency: float  # Hz
    timestamp: float  # ms; tab time for expected notes, session time for detected ones
    confidence: float = 1.0  # 1.0 for expected notes (ground truth)


# Expected notes come from tablature, detected notes from the analyzer
ExpectedNote = Note
DetectedNote = Note


@dataclass
class OnsetEvent:
    """A note attack detected from a sudden rise in frame energy."""

    timestamp: float  # wall-clock ms
    energy: float  # RMS of the frame that triggered it


@dataclass
class AnalysisResult:
    """Per-frame analyzer output."""

    pitch: Optional[float]
    note: Optional[str]
    confidence: float
    bpm: Optional[int]
    onsets: List[OnsetEvent] = field(default_factory=list)


@dataclass
class ValidationResult:
    """Outcome of validating a drill or an exercise."""

    valid: bool
    errors: List[str] = field(default_factory=list)

    def __bool__(self):
        return self.valid


@dataclass
class TabPosition:
    """A fret number found in tablature, before timing is applied."""

    string: int  # 1 = first tab line (high e)
    fret: int
    column: int  # character offset after the first '|'


@dataclass
class DrillStep:
    """One pass over the pattern at one drill position."""

    index: int  # position index within the drill (drives string-order reversal)
    position: int
    repetition: int  # 0-based repetition at this position
    pattern: List[PatternNote]
    tablature: str


@dataclass
class SessionState:
    """Rolling state of an analysis session, for live display."""

    pitch: Optional[float] = None
    note: Optional[str] = None
    confidence: float = 0.0
    bpm: Optional[int] = None
    detected_notes: List[Note] = field(default_factory=list)
    is_analyzing: bool = False


@dataclass
class SessionSummary:
    """What the surrounding system persists when a session ends."""

    accuracy: int  # 0..100
    achieved_bpm: int  # 0 when no tempo could be estimated
    detected_count: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "accuracy": self.accuracy,
            "achievedBpm": self.achieved_bpm,
            "detectedCount": self.detected_count,
        }
