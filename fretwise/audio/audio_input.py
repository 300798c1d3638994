"""Audio-frame sources polled by the analysis session."""

from __future__ import annotations
import threading
from typing import ClassVar, Optional

import numpy as np
import sounddevice as sd
import soundfile as sf

from ..core.interfaces import IAudioInput
from ..logger import get_logger

logger = get_logger(__name__)


def to_mono(data: np.ndarray) -> np.ndarray:
    """Average a (frames, channels) block down to one channel."""
    data = np.asarray(data, dtype=np.float32)
    if data.ndim > 1:
        data = data.mean(axis=1)
    return data


class SoundDeviceInput(IAudioInput):
    """Live input using sounddevice.

    The stream callback keeps a rolling window of the most recent
    ``frame_size`` samples; ``read_frame`` hands out a copy of it, like an
    analyser node's time-domain buffer.
    """

    SAMPLE_RATE: ClassVar[int] = 44100
    FRAME_SIZE: ClassVar[int] = 2048
    CHANNELS: ClassVar[int] = 1

    def __init__(
        self,
        device_id: Optional[int] = None,
        sample_rate: Optional[int] = None,
        frame_size: Optional[int] = None,
        channels: Optional[int] = None,
    ) -> None:
        """Initialize the audio input handler.

        Args:
            device_id: Audio input device ID, or None for the default device
            sample_rate: Sample rate in Hz, or None for default (44100)
            frame_size: Samples per analysis frame, or None for default (2048)
            channels: Number of audio channels, or None for default (1)
        """
        self._device_id = device_id
        self._sample_rate = sample_rate or self.SAMPLE_RATE
        self._frame_size = frame_size or self.FRAME_SIZE
        self._channels = channels or self.CHANNELS

        self._stream: Optional[sd.InputStream] = None
        self._buffer = np.zeros(self._frame_size, dtype=np.float32)
        self._received = 0
        self._lock = threading.Lock()
        self._running = False

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def start(self) -> bool:
        """Open the input stream.

        Returns:
            True if started successfully, False otherwise
        """
        if self._running:
            logger.warning("Audio input already running")
            return True

        try:
            self._stream = sd.InputStream(
                device=self._device_id,
                channels=self._channels,
                samplerate=self._sample_rate,
                callback=self._audio_callback,
                dtype="float32",
            )
            self._stream.start()
        except Exception as e:
            logger.error(f"Error starting audio input: {e}")
            self._stream = None
            return False

        self._running = True
        logger.info(
            f"Audio input started: device={self._device_id}, rate={self._sample_rate}Hz, "
            f"frame={self._frame_size}"
        )
        return True

    def stop(self) -> None:
        """Stop capturing audio."""
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
        self._running = False
        logger.info("Audio input stopped")

    def is_running(self) -> bool:
        return self._running

    def _audio_callback(self, indata: np.ndarray, frames: int, time_info, status) -> None:
        if status:
            logger.warning(f"Audio input status: {status}")
        self.push(to_mono(indata))

    def push(self, samples: np.ndarray) -> None:
        """Append samples to the rolling window."""
        samples = np.asarray(samples, dtype=np.float32)[-self._frame_size :]
        if samples.size == 0:
            return
        with self._lock:
            self._buffer = np.roll(self._buffer, -samples.size)
            self._buffer[-samples.size :] = samples
            self._received += samples.size

    def read_frame(self) -> Optional[np.ndarray]:
        with self._lock:
            if self._received == 0:
                return None
            return self._buffer.copy()


class WavFileInput(IAudioInput):
    """Replays a recording, one tick's worth of audio per ``read_frame``."""

    def __init__(
        self,
        file_path: str,
        frame_size: int = 2048,
        tick_interval: float = 0.1,
        gain: float = 1.0,
        loop: bool = False,
    ) -> None:
        """
        Args:
            file_path: Any format soundfile can read (WAV, FLAC, OGG)
            frame_size: Samples per returned frame
            tick_interval: Seconds of audio to advance per read
            gain: Linear gain applied to the samples
            loop: Start over at the end instead of running dry
        """
        self._file_path = file_path
        self._frame_size = frame_size
        self._loop = loop
        self._running = False

        data, self._sample_rate = sf.read(file_path, dtype="float32", always_2d=True)
        self._samples = to_mono(data) * np.float32(gain)
        self._hop = max(1, int(round(self._sample_rate * tick_interval)))
        self._cursor = 0
        logger.info(
            f"Loaded {file_path}: {self._samples.size} samples at {self._sample_rate}Hz"
        )

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def finished(self) -> bool:
        return not self._loop and self._cursor >= self._samples.size

    def clock(self) -> float:
        """Milliseconds of audio replayed so far, usable as a session clock."""
        return self._cursor * 1000.0 / self._sample_rate

    def start(self) -> bool:
        self._running = True
        return True

    def stop(self) -> None:
        self._running = False

    def is_running(self) -> bool:
        return self._running

    def read_frame(self) -> Optional[np.ndarray]:
        if self._samples.size == 0:
            return None
        if self._cursor >= self._samples.size:
            if not self._loop:
                return None
            self._cursor = 0

        # The frame ends at the cursor, like a live buffer holding the latest audio
        self._cursor += self._hop
        end = min(self._cursor, self._samples.size)
        start = max(0, end - self._frame_size)
        frame = self._samples[start:end]
        if frame.size < self._frame_size:
            frame = np.concatenate(
                (np.zeros(self._frame_size - frame.size, dtype=np.float32), frame)
            )
        return frame
