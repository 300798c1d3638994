"""Defines the core interfaces for the fretwise scoring pipeline."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import numpy as np

from ..note_types import AnalysisResult, Note, OnsetEvent
from ..note_utils import calculate_rms, frequency_to_note, note_to_frequency


class IAudioInput(ABC):
    """Interface for audio-frame sources polled by the session loop."""

    @abstractmethod
    def start(self) -> bool:
        """Start capturing audio."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing audio."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check if audio is running."""
        pass

    @abstractmethod
    def read_frame(self) -> Optional[np.ndarray]:
        """Return the latest fixed-size frame, or None if nothing arrived yet."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """The sample rate of the audio stream."""
        pass


class AudioAnalyzer(ABC):
    """Base class for every analyzer tier.

    Tiers differ in how they detect pitch, onsets and tempo; the per-frame
    ``analyze`` step and the note/frequency law are shared.
    """

    def __init__(self, sample_rate: int = 44100) -> None:
        self.sample_rate = sample_rate
        self.last_confidence = 0.0

    @abstractmethod
    def detect_pitch(self, frame: np.ndarray) -> Optional[float]:
        """Estimate the fundamental frequency of a frame in Hz."""
        pass

    @abstractmethod
    def detect_onsets(
        self, frame: np.ndarray, energy_history: Sequence[float]
    ) -> List[OnsetEvent]:
        """Detect note attacks in a frame given recent frame energies."""
        pass

    @abstractmethod
    def calculate_bpm(self, onsets: Sequence[OnsetEvent]) -> Optional[int]:
        """Estimate tempo from onset events."""
        pass

    @abstractmethod
    def calculate_accuracy(
        self, detected_notes: Sequence[Note], expected_notes: Sequence[Note]
    ) -> int:
        """Score detected notes against expected notes (0-100)."""
        pass

    def analyze(
        self, frame: np.ndarray, energy_history: Sequence[float] = ()
    ) -> AnalysisResult:
        """Run pitch, onset and tempo detection over one frame.

        Args:
            frame: Mono float samples
            energy_history: RMS of recent frames, oldest first

        Returns:
            AnalysisResult for this frame
        """
        pitch = self.detect_pitch(frame)
        note = self.frequency_to_note(pitch) if pitch else None
        onsets = self.detect_onsets(frame, energy_history)
        bpm = self.calculate_bpm(onsets)

        return AnalysisResult(
            pitch=pitch,
            note=note,
            confidence=self.last_confidence if pitch else 0.0,
            bpm=bpm,
            onsets=onsets,
        )

    def frequency_to_note(self, frequency: float) -> Optional[str]:
        return frequency_to_note(frequency)

    def note_to_frequency(self, note: str) -> float:
        return note_to_frequency(note)

    def calculate_rms(self, frame: np.ndarray) -> float:
        return calculate_rms(frame)
