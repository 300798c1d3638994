"""Utility functions for working with notes, frequencies and frames.

Everything that turns a frequency into a note name goes through
``frequency_to_note`` so the analyzer, the tablature parser and the scorer
always agree on names.
"""

import math
import re
import time
from typing import List, Optional

import numpy as np

from .logger import get_logger

logger = get_logger(__name__)

NOTE_NAMES: List[str] = [
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
]

FLAT_TO_SHARP = {
    "Db": "C#",
    "Eb": "D#",
    "Gb": "F#",
    "Ab": "G#",
    "Bb": "A#",
    "Cb": "B",
    "Fb": "E",
}

A4_HZ = 440.0
# Frequency of C in octave 0
C0_HZ = A4_HZ * 2 ** -4.75

# Open-string frequencies, low E (index 0) to high e (index 5)
STANDARD_TUNING: List[float] = [
    82.41,  # E2 (6th string)
    110.00,  # A2 (5th string)
    146.83,  # D3 (4th string)
    196.00,  # G3 (3rd string)
    246.94,  # B3 (2nd string)
    329.63,  # E4 (1st string)
]

# Tab labels for strings 1..6 (index 0 unused)
STRING_LABELS = ["", "e", "B", "G", "D", "A", "E"]

NOTE_PATTERN = re.compile(r"^([A-G][#b]?)(-?\d+)$")


def round_half_up(value: float) -> int:
    """Round halves up (2.5 -> 3), unlike the built-in banker's rounding."""
    return math.floor(value + 0.5)


def frequency_to_note(frequency: float) -> Optional[str]:
    """Convert a frequency in Hz to a note name with octave.

    Octaves count from C0 (``440 * 2**-4.75`` Hz), so 440 Hz is 'A4' and
    82.41 Hz is 'E2'. Half steps round half-up.

    Args:
        frequency: Frequency in Hz

    Returns:
        Note name such as 'A4' or 'C#3', or None for non-positive input
    """
    if frequency is None or not math.isfinite(frequency) or frequency <= 0:
        logger.debug(f"No note for frequency {frequency}")
        return None

    half_steps = round_half_up(12 * math.log2(frequency / C0_HZ))
    octave = half_steps // 12
    note_index = half_steps % 12
    return f"{NOTE_NAMES[note_index]}{octave}"


def normalize_to_sharp(note: str) -> str:
    """Rewrite a flat spelling ('Bb3') with its sharp equivalent ('A#3').

    Cb belongs to the octave below, so 'Cb4' becomes 'B3'.
    """
    if len(note) > 1 and note[1] == "b":
        flat, rest = note[:2], note[2:]
        if flat == "Cb" and re.fullmatch(r"-?\d+", rest):
            return f"B{int(rest) - 1}"
        return FLAT_TO_SHARP.get(flat, flat) + rest
    return note


def note_to_frequency(note: str) -> float:
    """Convert a note name with octave back to its equal-tempered frequency.

    Args:
        note: Note name such as 'A4', 'C#3' or 'Bb2'

    Returns:
        Frequency in Hz, or 0.0 if the name cannot be parsed
    """
    match = NOTE_PATTERN.match(normalize_to_sharp(str(note).strip()))
    if not match:
        return 0.0
    name, octave = match.group(1), int(match.group(2))
    if name not in NOTE_NAMES:
        return 0.0
    half_steps = octave * 12 + NOTE_NAMES.index(name)
    return C0_HZ * 2 ** (half_steps / 12)


def cents_between(detected_hz: float, expected_hz: float) -> float:
    """Signed pitch difference in cents (positive when detected is sharp)."""
    return 1200 * math.log2(detected_hz / expected_hz)


def fret_frequency(string: int, fret: int) -> float:
    """Frequency of a fretted note in standard tuning.

    Args:
        string: String number, 1 (high e) to 6 (low E)
        fret: Fret number, 0 for the open string

    Returns:
        Frequency in Hz
    """
    open_frequency = STANDARD_TUNING[6 - string]
    return open_frequency * 2 ** (fret / 12)


def calculate_rms(frame: np.ndarray) -> float:
    """Root-mean-square energy of an audio frame (0.0 for an empty frame)."""
    samples = np.asarray(frame, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples**2)))


def now_ms() -> float:
    """Wall-clock time in milliseconds."""
    return time.time() * 1000.0
