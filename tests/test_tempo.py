import unittest

from fretwise.audio.tempo import TempoEstimator, estimate_bpm
from fretwise.note_types import OnsetEvent


def onsets_at(*timestamps):
    return [OnsetEvent(timestamp=t, energy=0.2) for t in timestamps]


class TestTempoEstimator(unittest.TestCase):
    def setUp(self):
        self.estimator = TempoEstimator()

    def test_too_few_onsets(self):
        self.assertIsNone(self.estimator.estimate([]))
        self.assertIsNone(self.estimator.estimate(onsets_at(0, 500, 1000)))

    def test_steady_quarter_notes(self):
        onsets = onsets_at(*range(0, 4000, 500))
        self.assertEqual(self.estimator.estimate(onsets), 120)

    def test_minimum_onsets(self):
        self.assertEqual(self.estimator.estimate(onsets_at(0, 600, 1200, 1800)), 100)

    def test_double_triggers_are_dropped(self):
        onsets = onsets_at(0, 50, 500, 540, 1000, 1500, 1580, 2000)
        filtered = self.estimator.filter_close_onsets(onsets)
        self.assertEqual([o.timestamp for o in filtered], [0, 500, 1000, 1500, 2000])
        self.assertEqual(self.estimator.estimate(onsets), 120)

    def test_first_onset_always_kept(self):
        filtered = self.estimator.filter_close_onsets(onsets_at(30, 60, 200))
        self.assertEqual([o.timestamp for o in filtered], [30, 200])

    def test_too_few_after_debounce(self):
        self.assertIsNone(self.estimator.estimate(onsets_at(0, 10, 20, 30, 500)))

    def test_median_ignores_a_missed_beat(self):
        # One beat missing between 1500 and 2500
        onsets = onsets_at(0, 500, 1000, 1500, 2500, 3000)
        self.assertEqual(self.estimator.estimate(onsets), 120)

    def test_upper_median_for_even_counts(self):
        # Intervals 400, 500, 600, 700 -> the upper middle one (600) wins
        onsets = onsets_at(0, 400, 900, 1500, 2200)
        self.assertEqual(self.estimator.estimate(onsets), 100)

    def test_out_of_range(self):
        # 2 s apart is 30 BPM
        self.assertIsNone(self.estimator.estimate(onsets_at(0, 2000, 4000, 6000)))
        # 200 ms apart is 300 BPM
        self.assertIsNone(self.estimator.estimate(onsets_at(0, 200, 400, 600, 800)))

    def test_range_edges_are_inclusive(self):
        self.assertEqual(self.estimator.estimate(onsets_at(0, 1500, 3000, 4500)), 40)
        self.assertEqual(self.estimator.estimate(onsets_at(0, 250, 500, 750)), 240)

    def test_custom_thresholds(self):
        estimator = TempoEstimator(min_onsets=2, max_bpm=400)
        self.assertEqual(estimator.estimate(onsets_at(0, 200)), 300)

    def test_helper(self):
        self.assertEqual(estimate_bpm(onsets_at(0, 500, 1000, 1500)), 120)


if __name__ == "__main__":
    unittest.main()
