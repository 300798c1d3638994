"""Tempo estimation from onset events."""

from typing import List, Optional, Sequence

from ..logger import get_logger
from ..note_types import OnsetEvent
from ..note_utils import round_half_up

logger = get_logger(__name__)


class TempoEstimator:
    """Estimates BPM from the median inter-onset interval.

    The median keeps a missed beat (one long interval) or a stray double
    trigger from pulling the estimate around.
    """

    def __init__(
        self,
        min_onsets: int = 4,
        min_onset_interval_ms: float = 100.0,
        min_bpm: int = 40,
        max_bpm: int = 240,
    ) -> None:
        """
        Args:
            min_onsets: Onsets needed before and after debouncing
            min_onset_interval_ms: Onsets closer than this to the previous
                retained onset are dropped as double triggers
            min_bpm: Lowest tempo accepted as a real estimate
            max_bpm: Highest tempo accepted as a real estimate
        """
        self.min_onsets = min_onsets
        self.min_onset_interval_ms = min_onset_interval_ms
        self.min_bpm = min_bpm
        self.max_bpm = max_bpm

    def filter_close_onsets(self, onsets: Sequence[OnsetEvent]) -> List[OnsetEvent]:
        """Drop onsets that follow the previous retained onset too closely."""
        filtered: List[OnsetEvent] = []
        last_timestamp: Optional[float] = None
        for onset in onsets:
            if (
                last_timestamp is None
                or onset.timestamp - last_timestamp >= self.min_onset_interval_ms
            ):
                filtered.append(onset)
                last_timestamp = onset.timestamp
        return filtered

    def estimate(self, onsets: Sequence[OnsetEvent]) -> Optional[int]:
        """
        Estimate tempo in BPM.

        Args:
            onsets: Onset events in chronological order

        Returns:
            BPM within the accepted range, or None if there is not enough
            data or the estimate is implausible
        """
        if len(onsets) < self.min_onsets:
            return None

        filtered = self.filter_close_onsets(onsets)
        if len(filtered) < self.min_onsets:
            return None

        intervals = sorted(
            later.timestamp - earlier.timestamp
            for earlier, later in zip(filtered, filtered[1:])
        )
        median_interval = intervals[len(intervals) // 2]
        if median_interval <= 0:
            return None

        bpm = round_half_up(60000 / median_interval)
        if self.min_bpm <= bpm <= self.max_bpm:
            return bpm

        logger.debug(f"Discarding implausible tempo {bpm} BPM")
        return None


def estimate_bpm(onsets: Sequence[OnsetEvent]) -> Optional[int]:
    """Estimate BPM with the default thresholds."""
    return TempoEstimator().estimate(onsets)
