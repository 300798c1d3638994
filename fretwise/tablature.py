"""ASCII tablature parsing.

Each non-empty line of a tab block is one guitar string, highest string
first. Everything after the first ``|`` on a line is tab content; every run
of digits in it is a fret number. Tab notation carries no rhythm, so one
character column is taken to be one sixteenth note at the given tempo.
"""

from typing import List

from .logger import get_logger
from .note_types import ExpectedNote, TabPosition
from .note_utils import fret_frequency, frequency_to_note

logger = get_logger(__name__)

STRING_COUNT = 6


def sixteenth_ms(bpm: float) -> float:
    """Length of one sixteenth note (one tab column) in milliseconds."""
    if bpm <= 0:
        raise ValueError(f"bpm must be positive, got {bpm}")
    return (60000.0 / bpm) / 4


def parse_tab_positions(tab: str) -> List[TabPosition]:
    """Find every fret number in a tab block.

    Args:
        tab: Tab text, one line per string (e.g. "e|--1-2-3--|\\nB|...")

    Returns:
        Positions sorted by column; notes in the same column keep line order
    """
    lines = [line.strip() for line in tab.split("\n")]
    lines = [line for line in lines if line]
    positions: List[TabPosition] = []

    for line_index, line in enumerate(lines):
        pipe_index = line.find("|")
        if pipe_index == -1:
            logger.debug(f"Skipping tab line without '|': {line!r}")
            continue
        if line_index >= STRING_COUNT:
            logger.debug(f"Ignoring tab line {line_index + 1}: only six strings")
            continue

        content = line[pipe_index + 1 :]
        digits = ""
        for column, char in enumerate(content):
            if "0" <= char <= "9":
                digits += char
                continue
            if digits:
                positions.append(
                    TabPosition(line_index + 1, int(digits), column - len(digits))
                )
                digits = ""
        if digits:
            positions.append(
                TabPosition(line_index + 1, int(digits), len(content) - len(digits))
            )

    positions.sort(key=lambda p: p.column)
    return positions


def parse_tablature(tab: str, bpm: float = 120) -> List[ExpectedNote]:
    """Convert a tab block into timed expected notes.

    Args:
        tab: Tab text, highest string first
        bpm: Tempo used for the sixteenth-note grid

    Returns:
        Expected notes in chronological order, confidence 1.0
    """
    step_ms = sixteenth_ms(bpm)
    notes = []
    for position in parse_tab_positions(tab):
        frequency = fret_frequency(position.string, position.fret)
        notes.append(
            ExpectedNote(
                note_name=frequency_to_note(frequency),
                frequency=frequency,
                timestamp=position.column * step_ms,
                confidence=1.0,
            )
        )
    logger.debug(f"Parsed {len(notes)} notes at {bpm} BPM")
    return notes


def tablature_duration(tab: str, bpm: float = 120) -> float:
    """Total length of a tab block in milliseconds (longest line wins)."""
    step_ms = sixteenth_ms(bpm)
    longest = 0
    for line in tab.split("\n"):
        pipe_index = line.find("|")
        if pipe_index != -1:
            longest = max(longest, len(line) - pipe_index - 1)
    return longest * step_ms


def count_notes(tab: str) -> int:
    """Number of fret numbers in a tab block."""
    return len(parse_tab_positions(tab))
