"""DSP-based analyzer: YIN pitch, energy onsets, interval tempo."""

from __future__ import annotations

from typing import Callable, ClassVar, Dict, List, Optional, Sequence

import aubio
import numpy as np

from ..core.interfaces import AudioAnalyzer
from ..logger import get_logger
from ..note_matcher import NoteMatcher
from ..note_types import Note, OnsetEvent
from ..note_utils import now_ms
from .tempo import TempoEstimator

logger = get_logger(__name__)


class DspAnalyzer(AudioAnalyzer):
    """Analyzer tier that needs nothing beyond classic signal processing.

    Works on any device; this is the tier every capability class falls back to.
    """

    # Frames quieter than this are treated as silence
    DEFAULT_SILENCE_RMS: ClassVar[float] = 0.01
    # Guitar range with margin: E2 is 82.41 Hz, high frets reach ~1.3 kHz
    MIN_FREQUENCY: ClassVar[float] = 60.0
    MAX_FREQUENCY: ClassVar[float] = 2000.0

    def __init__(
        self,
        sample_rate: int = 44100,
        silence_rms: float = DEFAULT_SILENCE_RMS,
        min_frequency: float = MIN_FREQUENCY,
        max_frequency: float = MAX_FREQUENCY,
        yin_tolerance: float = 0.1,
        min_confidence: float = 0.0,
        onset_threshold: float = 1.5,
        min_onset_energy: float = 0.05,
        tempo_estimator: Optional[TempoEstimator] = None,
        note_matcher: Optional[NoteMatcher] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """Initialize the DspAnalyzer.

        Args:
            sample_rate: Audio sample rate in Hz
            silence_rms: Frames with lower RMS yield no pitch
            min_frequency: Lowest pitch accepted, in Hz
            max_frequency: Highest pitch accepted, in Hz
            yin_tolerance: YIN threshold (lower = stricter periodicity test)
            min_confidence: Pitches with lower YIN confidence are dropped
            onset_threshold: Energy multiple over the history mean that counts as an attack
            min_onset_energy: Absolute RMS an attack must exceed
            tempo_estimator: BPM estimator, default thresholds if None
            note_matcher: Accuracy scorer, default tolerances if None
            clock: Returns wall-clock milliseconds for onset timestamps
        """
        super().__init__(sample_rate)
        self._silence_rms = silence_rms
        self._min_frequency = min_frequency
        self._max_frequency = max_frequency
        self._yin_tolerance = yin_tolerance
        self._min_confidence = min_confidence
        self._onset_threshold = onset_threshold
        self._min_onset_energy = min_onset_energy
        self._tempo = tempo_estimator or TempoEstimator()
        self._matcher = note_matcher or NoteMatcher()
        self._clock = clock or now_ms

        # aubio needs the hop size up front, so keep one detector per frame length
        self._pitch_detectors: Dict[int, aubio.pitch] = {}

        logger.info(f"DSP analyzer initialized: sample_rate={sample_rate}")

    def _pitch_detector(self, frame_size: int) -> aubio.pitch:
        detector = self._pitch_detectors.get(frame_size)
        if detector is None:
            detector = aubio.pitch("yin", frame_size, frame_size, self.sample_rate)
            detector.set_unit("Hz")
            detector.set_tolerance(self._yin_tolerance)
            self._pitch_detectors[frame_size] = detector
        return detector

    def detect_pitch(self, frame: np.ndarray) -> Optional[float]:
        """Estimate the fundamental frequency of a frame with YIN.

        Args:
            frame: Mono float samples

        Returns:
            Frequency in Hz, or None for silence, failed or out-of-range detections
        """
        self.last_confidence = 0.0
        samples = np.ascontiguousarray(frame, dtype=np.float32)
        if samples.size == 0:
            return None

        rms = self.calculate_rms(samples)
        if rms < self._silence_rms:
            logger.debug(f"Signal too weak: RMS {rms:.4f}")
            return None

        try:
            detector = self._pitch_detector(samples.size)
            frequency = float(detector(samples)[0])
            confidence = float(detector.get_confidence())
        except Exception as e:
            logger.warning(f"Pitch detection error: {e}")
            return None

        if not (self._min_frequency <= frequency <= self._max_frequency):
            logger.debug(f"Pitch {frequency:.1f}Hz outside guitar range")
            return None
        confidence = min(max(confidence, 0.0), 1.0)
        if confidence < self._min_confidence:
            logger.debug(f"Pitch {frequency:.1f}Hz below confidence ({confidence:.2f})")
            return None

        self.last_confidence = confidence
        return frequency

    def detect_onsets(
        self, frame: np.ndarray, energy_history: Sequence[float] = ()
    ) -> List[OnsetEvent]:
        """Flag an attack when the frame is much louder than recent frames.

        Args:
            frame: Mono float samples
            energy_history: RMS of recent frames

        Returns:
            A single onset stamped with the current wall-clock time, or nothing
        """
        if len(energy_history) == 0:
            return []

        current = self.calculate_rms(frame)
        average = float(np.mean(energy_history))
        if current > average * self._onset_threshold and current > self._min_onset_energy:
            onset = OnsetEvent(timestamp=self._clock(), energy=current)
            logger.debug(f"Onset: RMS {current:.4f} vs mean {average:.4f}")
            return [onset]
        return []

    def calculate_bpm(self, onsets: Sequence[OnsetEvent]) -> Optional[int]:
        return self._tempo.estimate(onsets)

    def calculate_accuracy(
        self, detected_notes: Sequence[Note], expected_notes: Sequence[Note]
    ) -> int:
        return self._matcher.score(detected_notes, expected_notes)
