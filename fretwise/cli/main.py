"""Main entry point for the fretwise CLI."""

import json
import sys
import time
from typing import List

import click
import sounddevice as sd

from ..core.factory import ComponentFactory
from ..logger import get_logger
from ..logging_config import setup_logging
from ..note_types import Exercise, PatternNote
from ..patterns import (
    drill_steps,
    expected_notes_for_exercise,
    generate_tablature,
    pattern_at_position,
    validate_exercise,
)
from ..tablature import parse_tablature, tablature_duration

logger = get_logger(__name__)


def parse_pattern(text: str) -> List[PatternNote]:
    """Parse 'string:offset' pairs, e.g. '6:0,6:1,5:0'."""
    pattern = []
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            string, offset = item.split(":")
            pattern.append(PatternNote(int(string), int(offset)))
        except ValueError:
            raise click.BadParameter(f"expected STRING:OFFSET, got {item!r}")
        if not 1 <= pattern[-1].string <= 6:
            raise click.BadParameter(f"string must be between 1 and 6, got {item!r}")
    return pattern


def load_exercise(path: str) -> Exercise:
    with open(path, "r") as f:
        data = json.load(f)
    logger.debug(f"Loaded exercise from {path}")
    return Exercise.from_dict(data)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug):
    """fretwise - guitar practice-session scoring"""
    setup_logging(level="DEBUG" if debug else "INFO")


@cli.command()
@click.argument("pattern")
@click.option("--position", "-p", default=1, show_default=True, help="Fret of offset 0")
@click.option("--no-labels", is_flag=True, help="Omit string names")
@click.option("--spacing", default=2, show_default=True, help="Characters per note")
@click.option("--reverse-strings", is_flag=True, help="Visit strings in reverse order")
def tab(pattern, position, no_labels, spacing, reverse_strings):
    """Print tablature for PATTERN (STRING:OFFSET pairs) at a position."""
    notes = parse_pattern(pattern)
    if reverse_strings:
        notes = pattern_at_position(notes, "descending", 0)
    click.echo(
        generate_tablature(notes, position, include_labels=not no_labels, spacing=spacing)
    )


@cli.command()
@click.argument("exercise_file", type=click.Path(exists=True, dir_okay=False))
def drill(exercise_file):
    """Validate an exercise and print every drill step."""
    exercise = load_exercise(exercise_file)
    result = validate_exercise(exercise)
    if not result.valid:
        for error in result.errors:
            click.echo(f"error: {error}", err=True)
        sys.exit(1)

    for step in drill_steps(exercise):
        if exercise.moveable:
            click.echo(
                f"Position {step.position} (step {step.index + 1}, "
                f"pass {step.repetition + 1})"
            )
        click.echo(step.tablature)
        click.echo()


@cli.command()
@click.argument("tab_file", type=click.File("r"))
@click.option("--bpm", default=120, show_default=True, help="Tempo for the sixteenth grid")
def parse(tab_file, bpm):
    """Print the expected notes of a tab file."""
    text = tab_file.read()
    for note in parse_tablature(text, bpm):
        click.echo(f"{note.timestamp:8.1f} ms  {note.note_name:<4} {note.frequency:8.2f} Hz")
    click.echo(f"Duration: {tablature_duration(text, bpm):.1f} ms")


@cli.command()
@click.argument("exercise_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--bpm", type=int, default=None, help="Tempo (defaults to the exercise's)")
@click.option("--duration", "-t", default=None, type=float, help="Seconds to listen")
@click.option("--device", type=int, default=None, help="Audio input device ID")
@click.option("--wav", type=click.Path(exists=True, dir_okay=False), help="Score a recording instead")
@click.option("--position", type=int, default=None, help="Position for moveable exercises")
def practice(exercise_file, bpm, duration, device, wav, position):
    """Listen to a performance of an exercise and score it."""
    exercise = load_exercise(exercise_file)
    result = validate_exercise(exercise)
    if not result.valid:
        for error in result.errors:
            click.echo(f"error: {error}", err=True)
        sys.exit(1)

    bpm = bpm or exercise.bpm or 120
    expected = expected_notes_for_exercise(exercise, bpm, position)
    if duration is None:
        duration = (expected[-1].timestamp / 1000 if expected else 0) + 2.0

    factory = ComponentFactory()
    if wav:
        # Replays run as fast as the file can be read, on the recording's own clock
        source = factory.create_audio_input("wav", file_path=wav)
        analyzer = factory.create_analyzer(
            sample_rate=source.sample_rate, force=True, clock=source.clock
        )
        session = factory.create_session(source, analyzer=analyzer, clock=source.clock)
        click.echo(f"Scoring {wav} at {bpm} BPM ({len(expected)} notes)...")
        source.start()
        while not source.finished:
            session.tick()
    else:
        source = factory.create_audio_input("live", device_id=device)
        session = factory.create_session(source)
        click.echo(f"Listening for {duration:.1f}s at {bpm} BPM ({len(expected)} notes)...")
        if not session.start():
            click.echo("error: could not open the audio input", err=True)
            sys.exit(1)
        try:
            time.sleep(duration)
        except KeyboardInterrupt:
            click.echo("Interrupted")

    summary = session.finish(expected)
    click.echo(f"Accuracy: {summary.accuracy}%")
    click.echo(f"Achieved BPM: {summary.achieved_bpm or '-'}")
    click.echo(f"Notes detected: {summary.detected_count}")


@cli.command()
def devices():
    """List audio input devices."""
    for i, device in enumerate(sd.query_devices()):
        if device["max_input_channels"] > 0:
            click.echo(
                f"{i}: {device['name']} ({device['max_input_channels']} ch, "
                f"{device['default_samplerate']:.0f} Hz)"
            )
    click.echo(f"Default input device: {sd.default.device[0]}")


def main():
    cli()


if __name__ == "__main__":
    main()
