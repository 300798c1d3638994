import threading
import time
import unittest

import numpy as np

from fretwise.audio.tempo import TempoEstimator
from fretwise.core.events import SessionEventType
from fretwise.core.interfaces import AudioAnalyzer
from fretwise.note_matcher import NoteMatcher
from fretwise.note_types import Note, OnsetEvent
from fretwise.note_utils import note_to_frequency
from fretwise.session import AnalysisSession


class FakeSource:
    sample_rate = 44100

    def __init__(self, frame=None, start_ok=True):
        self.frame = np.full(256, 0.2, dtype=np.float32) if frame is None else frame
        self.start_ok = start_ok
        self.running = False
        self.reads = 0

    def start(self):
        self.running = self.start_ok
        return self.start_ok

    def stop(self):
        self.running = False

    def is_running(self):
        return self.running

    def read_frame(self):
        self.reads += 1
        return self.frame


class ScriptedAnalyzer(AudioAnalyzer):
    """Reports whatever pitch and onset the test asks for next."""

    def __init__(self, clock):
        super().__init__(44100)
        self.clock = clock
        self.pitch = None
        self.onset = False
        self.error = None
        self.tempo = TempoEstimator()
        self.matcher = NoteMatcher()

    def play(self, note_name):
        self.pitch = note_to_frequency(note_name) if note_name else None

    def detect_pitch(self, frame):
        if self.error is not None:
            raise self.error
        self.last_confidence = 0.8 if self.pitch else 0.0
        return self.pitch

    def detect_onsets(self, frame, energy_history):
        if self.onset:
            return [OnsetEvent(timestamp=self.clock(), energy=0.3)]
        return []

    def calculate_bpm(self, onsets):
        return self.tempo.estimate(onsets)

    def calculate_accuracy(self, detected_notes, expected_notes):
        return self.matcher.score(detected_notes, expected_notes)


class SessionTestCase(unittest.TestCase):
    def setUp(self):
        self.now = 10000.0
        self.source = FakeSource()
        self.analyzer = ScriptedAnalyzer(self.clock)
        self.session = AnalysisSession(self.source, self.analyzer, clock=self.clock)

    def clock(self):
        return self.now

    def tick_at(self, now, note=None, onset=False):
        self.now = now
        self.analyzer.play(note)
        self.analyzer.onset = onset
        return self.session.tick()


class TestTick(SessionTestCase):
    def test_no_frame(self):
        self.source.frame = None
        self.assertIsNone(self.session.tick())
        self.assertEqual(self.session.detected_notes, [])
        self.assertEqual(len(self.session._energy_history), 0)

    def test_note_timestamps_are_relative_to_session_start(self):
        self.tick_at(10000.0)
        self.tick_at(10750.0, "E2")
        notes = self.session.detected_notes
        self.assertEqual(len(notes), 1)
        self.assertEqual(notes[0].note_name, "E2")
        self.assertEqual(notes[0].timestamp, 750.0)
        self.assertEqual(notes[0].confidence, 0.8)

    def test_repeated_note_is_debounced(self):
        self.tick_at(10000.0, "A4")
        self.tick_at(10100.0, "A4")
        self.tick_at(10200.0, "A4")
        self.assertEqual(len(self.session.detected_notes), 1)

        self.tick_at(10300.0, "A4")
        self.tick_at(10350.0, "C4")
        self.tick_at(10360.0, "A4")
        self.assertEqual(
            [(n.note_name, n.timestamp) for n in self.session.detected_notes],
            [("A4", 0.0), ("A4", 300.0), ("C4", 350.0), ("A4", 360.0)],
        )

    def test_silence_records_nothing(self):
        result = self.tick_at(10000.0)
        self.assertIsNone(result.pitch)
        self.assertEqual(self.session.detected_notes, [])

    def test_detected_notes_are_capped(self):
        for i in range(60):
            self.tick_at(10000.0 + i * 10, "A4" if i % 2 else "C4")
        notes = self.session.detected_notes
        self.assertEqual(len(notes), 50)
        self.assertEqual(notes[0].timestamp, 100.0)
        self.assertEqual(notes[-1].timestamp, 590.0)

    def test_energy_history_is_bounded(self):
        for i in range(25):
            self.tick_at(10000.0 + i * 100)
        self.assertEqual(len(self.session._energy_history), 20)

    def test_energy_history_excludes_current_frame(self):
        seen = []
        original = self.analyzer.analyze

        def analyze(frame, energy_history=()):
            seen.append(list(energy_history))
            return original(frame, energy_history)

        self.analyzer.analyze = analyze
        self.tick_at(10000.0)
        self.tick_at(10100.0)
        self.assertEqual(seen[0], [])
        self.assertEqual(len(seen[1]), 1)
        self.assertAlmostEqual(seen[1][0], 0.2, places=5)

    def test_tempo_from_onsets(self):
        for t in (10000.0, 10500.0, 11000.0):
            self.tick_at(t, onset=True)
        self.assertIsNone(self.session.state.bpm)
        self.tick_at(11500.0, onset=True)
        self.assertEqual(self.session.state.bpm, 120)
        self.assertEqual(len(self.session.onsets), 4)

    def test_old_onsets_are_pruned(self):
        for t in (10000.0, 10500.0, 11000.0, 11500.0):
            self.tick_at(t, onset=True)
        self.tick_at(40400.0)
        self.assertEqual([o.timestamp for o in self.session.onsets], [10500.0, 11000.0, 11500.0])
        self.tick_at(41600.0)
        self.assertEqual(self.session.onsets, [])
        self.assertIsNone(self.session.state.bpm)

    def test_state_snapshot(self):
        self.tick_at(10000.0, "G3")
        state = self.session.state
        self.assertEqual(state.note, "G3")
        self.assertAlmostEqual(state.pitch, 196.0, places=0)
        self.assertFalse(state.is_analyzing)
        state.detected_notes.clear()
        self.assertEqual(len(self.session.state.detected_notes), 1)


class TestResetAndFinish(SessionTestCase):
    def test_reset_is_idempotent(self):
        self.tick_at(10000.0, "A4", onset=True)
        self.session.reset()
        self.session.reset()
        self.assertEqual(self.session.detected_notes, [])
        self.assertEqual(self.session.onsets, [])
        self.assertEqual(len(self.session._energy_history), 0)
        self.assertIsNone(self.session.state.note)

    def test_reset_restarts_the_clock(self):
        self.tick_at(10000.0, "A4")
        self.session.reset()
        self.tick_at(12000.0, "C4")
        self.assertEqual(self.session.detected_notes[0].timestamp, 0.0)

    def test_finish(self):
        for i, t in enumerate((10000.0, 10500.0, 11000.0, 11500.0)):
            self.tick_at(t, "E2" if i % 2 == 0 else "F2", onset=True)
        expected = [
            Note("E2", 82.41, 0),
            Note("F2", 87.31, 500),
            Note("E2", 82.41, 1000),
            Note("F2", 87.31, 1500),
            Note("G2", 98.0, 2000),
        ]
        summary = self.session.finish(expected)
        self.assertEqual(summary.accuracy, 80)
        self.assertEqual(summary.achieved_bpm, 120)
        self.assertEqual(summary.detected_count, 4)
        self.assertEqual(
            summary.to_dict(), {"accuracy": 80, "achievedBpm": 120, "detectedCount": 4}
        )

    def test_achieved_bpm_keeps_last_estimate(self):
        for t in (10000.0, 10500.0, 11000.0, 11500.0):
            self.tick_at(t, onset=True)
        # Onsets age out, the live estimate disappears, the summary keeps it
        self.tick_at(50000.0)
        self.assertIsNone(self.session.state.bpm)
        self.assertEqual(self.session.finish([]).achieved_bpm, 120)

    def test_finish_without_tempo(self):
        summary = self.session.finish([Note("A4", 440.0, 0)])
        self.assertEqual(summary.accuracy, 0)
        self.assertEqual(summary.achieved_bpm, 0)

    def test_calculate_accuracy(self):
        self.tick_at(10000.0, "A4")
        self.assertEqual(self.session.calculate_accuracy([Note("A4", 440.0, 100)]), 100)


class TestEvents(SessionTestCase):
    def test_note_onset_and_bpm_events(self):
        notes, onsets, tempos = [], [], []
        self.session.events.on(SessionEventType.NOTE_DETECTED, notes.append)
        self.session.events.on(SessionEventType.ONSET_DETECTED, onsets.append)
        self.session.events.on(SessionEventType.BPM_CHANGED, tempos.append)

        for t in (10000.0, 10500.0, 11000.0, 11500.0, 12000.0):
            self.tick_at(t, "A4", onset=True)

        self.assertEqual(len(notes), 5)
        self.assertEqual(len(onsets), 5)
        self.assertEqual(tempos, [120])

    def test_failing_listener_does_not_break_tick(self):
        def explode(note):
            raise RuntimeError("listener bug")

        self.session.events.on(SessionEventType.NOTE_DETECTED, explode)
        self.tick_at(10000.0, "A4")
        self.assertEqual(len(self.session.detected_notes), 1)


class TestThreadedSession(unittest.TestCase):
    def setUp(self):
        self.source = FakeSource()
        self.analyzer = ScriptedAnalyzer(time.time)
        self.session = AnalysisSession(self.source, self.analyzer, tick_interval=0.01)

    def tearDown(self):
        self.session.stop()

    def wait_for(self, condition, timeout=2.0):
        deadline = time.time() + timeout
        while time.time() < deadline:
            if condition():
                return True
            time.sleep(0.01)
        return False

    def test_start_and_stop(self):
        self.assertTrue(self.session.start())
        self.assertTrue(self.session.is_running())
        self.assertTrue(self.session.state.is_analyzing)
        self.assertTrue(self.wait_for(lambda: self.source.reads >= 3))

        self.session.stop()
        self.assertFalse(self.session.is_running())
        self.assertFalse(self.source.running)
        self.assertFalse(self.session.state.is_analyzing)
        reads = self.source.reads
        time.sleep(0.05)
        self.assertEqual(self.source.reads, reads)

    def test_start_twice(self):
        self.assertTrue(self.session.start())
        self.assertTrue(self.session.start())

    def test_source_failure(self):
        session = AnalysisSession(FakeSource(start_ok=False), self.analyzer)
        self.assertFalse(session.start())
        self.assertFalse(session.is_running())

    def test_tick_errors_are_reported_and_loop_survives(self):
        errors = []
        reported = threading.Event()

        def on_error(error):
            errors.append(error)
            reported.set()

        self.session.events.on(SessionEventType.ERROR, on_error)
        self.analyzer.error = RuntimeError("boom")
        self.assertTrue(self.session.start())
        self.assertTrue(reported.wait(2.0))
        self.assertIsInstance(errors[0], RuntimeError)
        self.assertTrue(self.session.is_running())

    def test_stop_when_not_started(self):
        self.session.stop()
        self.assertFalse(self.session.is_running())


if __name__ == "__main__":
    unittest.main()
