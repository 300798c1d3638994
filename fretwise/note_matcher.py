from typing import Optional, Sequence

from .logger import get_logger
from .note_types import Note
from .note_utils import cents_between, normalize_to_sharp, round_half_up

# Get logger for this module
logger = get_logger(__name__)


class NoteMatcher:
    """
    Compares detected notes to expected notes and turns the comparison into
    an accuracy score.

    A detected note matches an expected note when the pitch agrees (same note
    name, or within ``pitch_tolerance_cents``) and it was played within
    ``timing_window_ms`` of the expected time. One detected note may satisfy
    several expected notes.
    """

    DEFAULT_PITCH_TOLERANCE_CENTS = 50.0
    DEFAULT_TIMING_WINDOW_MS = 500.0

    def __init__(
        self,
        pitch_tolerance_cents: float = DEFAULT_PITCH_TOLERANCE_CENTS,
        timing_window_ms: float = DEFAULT_TIMING_WINDOW_MS,
    ) -> None:
        self.pitch_tolerance_cents = pitch_tolerance_cents
        self.timing_window_ms = timing_window_ms

    @staticmethod
    def same_note(expected: str, detected: str) -> bool:
        """
        Check whether two note names denote the same pitch, octave included.

        Args:
            expected: The expected note (e.g., 'A#3', 'Bb3')
            detected: The detected note (e.g., 'A#3')
        Returns:
            bool: True if the names match after flat-to-sharp normalization
        """
        if not expected or not detected:
            return False
        return normalize_to_sharp(expected.strip()) == normalize_to_sharp(
            detected.strip()
        )

    def pitch_matches(self, detected: Note, expected: Note) -> bool:
        if self.same_note(expected.note_name, detected.note_name):
            return True
        if detected.frequency <= 0 or expected.frequency <= 0:
            return False
        cents = cents_between(detected.frequency, expected.frequency)
        return abs(cents) <= self.pitch_tolerance_cents

    def timing_matches(self, detected: Note, expected: Note) -> bool:
        return abs(detected.timestamp - expected.timestamp) < self.timing_window_ms

    def matches(self, detected: Note, expected: Note) -> bool:
        """Both the pitch and the timing tolerance must hold."""
        return self.pitch_matches(detected, expected) and self.timing_matches(
            detected, expected
        )

    def find_match(
        self, expected: Note, detected_notes: Sequence[Note]
    ) -> Optional[Note]:
        """Return the first detected note satisfying ``expected``, if any."""
        for detected in detected_notes:
            if self.matches(detected, expected):
                return detected
        return None

    def score(self, detected_notes: Sequence[Note], expected_notes: Sequence[Note]) -> int:
        """
        Percentage of expected notes that found a matching detected note.

        Args:
            detected_notes: Notes reported by the analyzer
            expected_notes: Notes parsed from the exercise tablature
        Returns:
            int: Accuracy from 0 to 100
        """
        if not expected_notes:
            return 100
        if not detected_notes:
            return 0

        matched = 0
        for expected in expected_notes:
            match = self.find_match(expected, detected_notes)
            if match is not None:
                matched += 1
                logger.debug(
                    f"Matched {expected.note_name} @ {expected.timestamp:.0f}ms "
                    f"with {match.note_name} @ {match.timestamp:.0f}ms"
                )
            else:
                logger.debug(
                    f"Missed {expected.note_name} @ {expected.timestamp:.0f}ms"
                )

        accuracy = round_half_up(100 * matched / len(expected_notes))
        logger.info(
            f"Accuracy {accuracy}% ({matched}/{len(expected_notes)} expected notes, "
            f"{len(detected_notes)} detected)"
        )
        return accuracy


def score_accuracy(
    detected_notes: Sequence[Note], expected_notes: Sequence[Note]
) -> int:
    """Score with the default tolerances (50 cents, 500 ms)."""
    return NoteMatcher().score(detected_notes, expected_notes)
