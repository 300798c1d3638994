"""Movable fretboard patterns and multi-position drills.

A pattern is a list of ``(string, fret_offset)`` pairs in playing order.
Played at a position, each offset is added to the position fret. A drill
walks the pattern through a sequence of positions and may flip the order in
which strings are visited at each step; the frets played on each string are
never reordered.
"""

import numbers
from typing import Any, Dict, List, Optional, Sequence, Union

from .logger import get_logger
from .note_types import (
    DrillConfig,
    DrillDirection,
    DrillStep,
    Exercise,
    ExpectedNote,
    PatternNote,
    ValidationResult,
)
from .note_utils import STRING_LABELS
from .tablature import parse_tablature

logger = get_logger(__name__)

MIN_POSITION = 1
MAX_POSITION = 24
MAX_FRET_OFFSET = 24
STRING_NUMBERS = range(1, 7)

Direction = Union[DrillDirection, str]


def _is_int(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def validate_drill(drill: DrillConfig) -> ValidationResult:
    """Check a drill configuration and report every problem found."""
    errors: List[str] = []
    start, end, increment = (
        drill.start_position,
        drill.end_position,
        drill.position_increment,
    )

    missing = [
        name
        for name, value in (
            ("startPosition", start),
            ("endPosition", end),
            ("positionIncrement", increment),
        )
        if value is None
    ]
    if missing:
        errors.extend(f"{name} is required" for name in missing)
        return ValidationResult(valid=False, errors=errors)

    repetitions = drill.repetitions_per_position
    not_integers = [
        (name, value)
        for name, value in (
            ("startPosition", start),
            ("endPosition", end),
            ("positionIncrement", increment),
            ("repetitionsPerPosition", repetitions),
        )
        if value is not None and not _is_int(value)
    ]
    if not_integers:
        errors.extend(
            f"{name} must be an integer, got {value!r}" for name, value in not_integers
        )
        return ValidationResult(valid=False, errors=errors)

    if start < MIN_POSITION or start > MAX_POSITION:
        errors.append(f"startPosition must be between 1 and 24, got {start}")
    if end < MIN_POSITION or end > MAX_POSITION:
        errors.append(f"endPosition must be between 1 and 24, got {end}")

    if increment == 0:
        errors.append("positionIncrement cannot be 0")

    if start < end and increment < 0:
        errors.append(
            f"positionIncrement must be positive when startPosition ({start}) "
            f"< endPosition ({end})"
        )
    if start > end and increment > 0:
        errors.append(
            f"positionIncrement must be negative when startPosition ({start}) "
            f"> endPosition ({end})"
        )

    if repetitions is not None and repetitions < 1:
        errors.append(f"repetitionsPerPosition must be at least 1, got {repetitions}")

    try:
        DrillDirection(drill.direction)
    except ValueError:
        errors.append(
            "direction must be one of ascending, descending, alternate, "
            f"got {drill.direction}"
        )

    return ValidationResult(valid=not errors, errors=errors)


# Alias matching the descriptor field naming of the surrounding application
validate_drill_config = validate_drill


def validate_exercise(exercise: Exercise) -> ValidationResult:
    """Check that an exercise carries what its mode requires."""
    errors: List[str] = []

    if exercise.moveable:
        if not exercise.pattern:
            errors.append("Moveable exercises must have a pattern defined")
        else:
            for i, (string, fret_offset) in enumerate(exercise.pattern):
                if string < 1 or string > 6:
                    errors.append(
                        f"Pattern note {i}: string must be between 1 and 6, got {string}"
                    )
                if fret_offset < 0 or fret_offset > MAX_FRET_OFFSET:
                    errors.append(
                        f"Pattern note {i}: fretOffset must be between 0 and 24, "
                        f"got {fret_offset}"
                    )

        position = exercise.default_position
        if position is not None and not _is_int(position):
            errors.append(f"defaultPosition must be an integer, got {position!r}")
        elif position is not None and (position < MIN_POSITION or position > MAX_POSITION):
            errors.append(f"defaultPosition must be between 1 and 24, got {position}")

        if exercise.drill is not None:
            errors.extend(validate_drill(exercise.drill).errors)
    elif not exercise.tablature:
        errors.append("Non-moveable exercises must have tablature defined")

    return ValidationResult(valid=not errors, errors=errors)


def drill_positions(drill: DrillConfig) -> List[int]:
    """Positions visited by a drill, from start towards end.

    Raises:
        ValueError: If the increment is 0 (validation rejects such drills)
    """
    increment = drill.position_increment
    if increment == 0:
        raise ValueError("positionIncrement cannot be 0")

    positions = []
    current = drill.start_position
    ascending = increment > 0
    while (current <= drill.end_position) if ascending else (current >= drill.end_position):
        positions.append(current)
        current += increment
    return positions


def should_reverse_string_order(direction: Direction, position_index: int) -> bool:
    """Whether strings are visited in reverse order at a drill step.

    Ascending never reverses, descending always does, alternate reverses on
    odd (0-based) position indexes.
    """
    direction = DrillDirection(direction)
    if direction is DrillDirection.ASCENDING:
        return False
    if direction is DrillDirection.DESCENDING:
        return True
    return position_index % 2 == 1


def pattern_at_position(
    pattern: Sequence[PatternNote], direction: Direction, position_index: int
) -> List[PatternNote]:
    """The pattern as played at a drill step.

    When the string order reverses, each string's run of notes is kept intact
    and only the order of the runs changes.
    """
    if not should_reverse_string_order(direction, position_index):
        return list(pattern)

    # dicts keep insertion order, i.e. first appearance of each string
    runs: Dict[int, List[PatternNote]] = {}
    for note in pattern:
        runs.setdefault(note[0], []).append(note)

    reordered: List[PatternNote] = []
    for string in reversed(list(runs)):
        reordered.extend(runs[string])
    return reordered


def absolute_frets(pattern: Sequence[PatternNote], position: int) -> List[dict]:
    """Map a pattern to ``{"string", "fret"}`` pairs at a position (no clamping)."""
    return [
        {"string": string, "fret": position + fret_offset}
        for string, fret_offset in pattern
    ]


def generate_tablature(
    pattern: Sequence[PatternNote],
    position: int,
    include_labels: bool = True,
    spacing: int = 2,
) -> str:
    """Render a pattern at a position as a six-line tab block.

    Every pattern note gets its own column; strings without a note in that
    column get dashes. Lines run from string 1 (high e) to string 6 (low E).

    Args:
        pattern: Notes in playing order
        position: Fret of offset 0
        include_labels: Prefix each line with its string name
        spacing: Characters per column

    Returns:
        Tab text, lines joined with newlines
    """
    columns: Dict[int, List[Optional[int]]] = {s: [] for s in STRING_NUMBERS}

    note_index = 0
    for string, fret_offset in pattern:
        cells = columns[string]
        while len(cells) < note_index:
            cells.append(None)
        cells.append(position + fret_offset)
        note_index += 1

    for cells in columns.values():
        while len(cells) < note_index:
            cells.append(None)

    # A column widens so a multi-digit fret stays separated from the next one
    widths = [spacing] * note_index
    for cells in columns.values():
        for i, fret in enumerate(cells):
            if fret is not None:
                widths[i] = max(spacing, len(str(fret)) + 1)

    lines = []
    for string in STRING_NUMBERS:
        label = f"{STRING_LABELS[string]}|" if include_labels else "|"
        body = "".join(
            "-" * width if fret is None else str(fret).ljust(width, "-")
            for fret, width in zip(columns[string], widths)
        )
        lines.append(f"{label}{body}|")
    return "\n".join(lines)


def generate_exercise_preview_tab(exercise: Exercise) -> Optional[str]:
    """Tab to show for an exercise: its default position, or its static tab."""
    if not exercise.moveable or not exercise.pattern:
        return exercise.tablature or None
    return generate_tablature(exercise.pattern, exercise.default_position or 1)


def drill_steps(exercise: Exercise) -> List[DrillStep]:
    """Expand an exercise into the ordered passes a player practices.

    Raises:
        ValueError: If the exercise does not validate
    """
    result = validate_exercise(exercise)
    if not result.valid:
        raise ValueError("; ".join(result.errors))

    if not exercise.moveable:
        return [DrillStep(0, 0, 0, [], exercise.tablature)]

    if exercise.drill is None:
        position = exercise.default_position or 1
        pattern = list(exercise.pattern)
        return [DrillStep(0, position, 0, pattern, generate_tablature(pattern, position))]

    drill = exercise.drill
    steps = []
    for index, position in enumerate(drill_positions(drill)):
        pattern = pattern_at_position(exercise.pattern, drill.direction, index)
        tab = generate_tablature(pattern, position)
        for repetition in range(drill.repetitions):
            steps.append(DrillStep(index, position, repetition, pattern, tab))

    logger.info(
        f"Drill for '{exercise.title or 'exercise'}': {len(steps)} passes over "
        f"positions {drill.start_position}..{drill.end_position}"
    )
    return steps


def expected_notes_for_exercise(
    exercise: Exercise, bpm: float, position: Optional[int] = None
) -> List[ExpectedNote]:
    """Expected notes for one pass of an exercise.

    Moveable exercises are rendered at ``position`` (default position, or 1);
    fixed exercises use their static tablature.
    """
    if exercise.moveable and exercise.pattern:
        position = position or exercise.default_position or 1
        tab = generate_tablature(exercise.pattern, position)
    else:
        tab = exercise.tablature or ""
    return parse_tablature(tab, bpm)
