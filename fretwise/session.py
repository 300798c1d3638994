"""Analysis session loop: polls an audio source at a fixed cadence.

One session owns its buffers (energy history, detected notes, onsets) and
is driven by a single ticking thread. ``tick`` can also be called directly,
which is how offline replays and tests drive it.
"""

from __future__ import annotations
import threading
from collections import deque
from typing import Callable, Deque, List, Optional, Sequence

from .core.events import EventEmitter, SessionEventType
from .core.interfaces import AudioAnalyzer, IAudioInput
from .logger import get_logger
from .note_types import (
    AnalysisResult,
    DetectedNote,
    Note,
    OnsetEvent,
    SessionState,
    SessionSummary,
)
from .note_utils import now_ms

logger = get_logger(__name__)


class AnalysisSession:
    """Runs the analyzer over live audio and keeps rolling results."""

    def __init__(
        self,
        frame_source: IAudioInput,
        analyzer: AudioAnalyzer,
        tick_interval: float = 0.1,
        energy_history_size: int = 20,
        max_detected_notes: int = 50,
        onset_window_ms: float = 30000.0,
        note_repeat_ms: float = 200.0,
        clock: Optional[Callable[[], float]] = None,
        events: Optional[EventEmitter] = None,
    ) -> None:
        """Initialize the session.

        Args:
            frame_source: Where each tick reads its audio frame from
            analyzer: Analyzer tier doing the per-frame work
            tick_interval: Seconds between ticks (0.1 = 10 analyses/second)
            energy_history_size: Frame energies kept for onset detection
            max_detected_notes: Detected notes kept; the oldest is evicted first
            onset_window_ms: Onsets older than this are dropped before tempo estimation
            note_repeat_ms: A repeated note name is recorded again only after this long
            clock: Returns wall-clock milliseconds
            events: Emitter for session events, a private one if None
        """
        self._source = frame_source
        self._analyzer = analyzer
        self._tick_interval = tick_interval
        self._onset_window_ms = onset_window_ms
        self._note_repeat_ms = note_repeat_ms
        self._clock = clock or now_ms
        self.events = events or EventEmitter()

        self._energy_history: Deque[float] = deque(maxlen=energy_history_size)
        self._detected_notes: Deque[DetectedNote] = deque(maxlen=max_detected_notes)
        self._onsets: List[OnsetEvent] = []
        self._state = SessionState()
        self._last_bpm: Optional[int] = None
        self._start_ms: Optional[float] = None

        # Serializes tick/reset/snapshot between the tick thread and the caller
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._running = False

    # Lifecycle

    def start(self) -> bool:
        """Start ticking on a background thread.

        Returns:
            True if the session is running, False if the audio source failed
        """
        if self._running:
            logger.warning("Analysis session already running")
            return True

        if not self._source.is_running() and not self._source.start():
            logger.error("Audio source failed to start; session not started")
            return False

        with self._lock:
            if self._start_ms is None:
                self._start_ms = self._clock()
            self._running = True
            self._state.is_analyzing = True

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="fretwise-analysis", daemon=True
        )
        self._thread.start()
        logger.info(f"Analysis session started ({1 / self._tick_interval:.0f} ticks/s)")
        return True

    def stop(self) -> None:
        """Stop ticking. An in-flight tick is allowed to finish."""
        if not self._running:
            return

        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join()

        self._source.stop()
        with self._lock:
            self._running = False
            self._state.is_analyzing = False
        logger.info("Analysis session stopped")

    def reset(self) -> None:
        """Forget every note, onset and energy sample. Safe at any time."""
        with self._lock:
            self._energy_history.clear()
            self._detected_notes.clear()
            self._onsets = []
            self._last_bpm = None
            self._start_ms = self._clock() if self._running else None
            self._state = SessionState(is_analyzing=self._running)
        logger.debug("Analysis session reset")

    def is_running(self) -> bool:
        return self._running

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Error during analysis tick: {e}", exc_info=True)
                self.events.emit(SessionEventType.ERROR, e)
            self._stop_event.wait(self._tick_interval)

    # Per-tick work

    def tick(self) -> Optional[AnalysisResult]:
        """Analyze the latest frame and update the rolling state.

        Returns:
            The frame's AnalysisResult, or None when no audio was available
        """
        frame = self._source.read_frame()
        if frame is None:
            return None

        with self._lock:
            result = self._analyzer.analyze(frame, list(self._energy_history))
            self._energy_history.append(self._analyzer.calculate_rms(frame))

            now = self._clock()
            if self._start_ms is None:
                self._start_ms = now

            note = None
            if result.pitch and result.note:
                note = self._record_note(result, now - self._start_ms)

            if result.onsets:
                self._onsets.extend(result.onsets)
            cutoff = now - self._onset_window_ms
            self._onsets = [o for o in self._onsets if o.timestamp > cutoff]

            bpm = self._analyzer.calculate_bpm(self._onsets)
            bpm_changed = bpm is not None and bpm != self._last_bpm
            if bpm is not None:
                self._last_bpm = bpm

            self._state = SessionState(
                pitch=result.pitch,
                note=result.note,
                confidence=result.confidence,
                bpm=bpm,
                detected_notes=list(self._detected_notes),
                is_analyzing=self._running,
            )

        if note is not None:
            self.events.emit(SessionEventType.NOTE_DETECTED, note)
        for onset in result.onsets:
            self.events.emit(SessionEventType.ONSET_DETECTED, onset)
        if bpm_changed:
            self.events.emit(SessionEventType.BPM_CHANGED, bpm)
        return result

    def _record_note(self, result: AnalysisResult, elapsed_ms: float) -> Optional[Note]:
        candidate = DetectedNote(
            note_name=result.note,
            frequency=result.pitch,
            timestamp=elapsed_ms,
            confidence=result.confidence,
        )
        last = self._detected_notes[-1] if self._detected_notes else None
        if (
            last is None
            or last.note_name != candidate.note_name
            or candidate.timestamp - last.timestamp > self._note_repeat_ms
        ):
            self._detected_notes.append(candidate)
            logger.debug(
                f"[{elapsed_ms / 1000:.2f}s] {candidate.note_name} "
                f"({candidate.frequency:.1f}Hz, conf: {candidate.confidence:.2f})"
            )
            return candidate
        return None

    # Results

    @property
    def state(self) -> SessionState:
        """Snapshot of the rolling state for display."""
        with self._lock:
            snapshot = self._state
            return SessionState(
                pitch=snapshot.pitch,
                note=snapshot.note,
                confidence=snapshot.confidence,
                bpm=snapshot.bpm,
                detected_notes=list(snapshot.detected_notes),
                is_analyzing=self._running,
            )

    @property
    def detected_notes(self) -> List[DetectedNote]:
        with self._lock:
            return list(self._detected_notes)

    @property
    def onsets(self) -> List[OnsetEvent]:
        with self._lock:
            return list(self._onsets)

    def calculate_accuracy(self, expected_notes: Sequence[Note]) -> int:
        """Score the notes detected so far against an exercise."""
        return self._analyzer.calculate_accuracy(self.detected_notes, expected_notes)

    def finish(self, expected_notes: Sequence[Note]) -> SessionSummary:
        """Stop the session and produce what gets persisted.

        Args:
            expected_notes: Notes the player was supposed to play

        Returns:
            Accuracy (0-100) and the last tempo estimate (0 if none)
        """
        self.stop()
        detected = self.detected_notes
        summary = SessionSummary(
            accuracy=self._analyzer.calculate_accuracy(detected, expected_notes),
            achieved_bpm=self._last_bpm or 0,
            detected_count=len(detected),
        )
        logger.info(
            f"Session finished: accuracy={summary.accuracy}% bpm={summary.achieved_bpm} "
            f"notes={summary.detected_count}"
        )
        return summary
