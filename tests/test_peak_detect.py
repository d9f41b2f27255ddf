import unittest

import numpy as np

from config import PeakDetectConfig
from peak_detect import DECAY_RATE, PeakDetector, frames_per_peak_for_bpm


class DummySource:
    def __init__(self, energy):
        self.energy = energy
        self.calls = []

    def get_energy(self, freq_low, freq_high):
        self.calls.append((freq_low, freq_high))
        return self.energy


class TestPeakDetectorDefaults(unittest.TestCase):
    def test_constructor_defaults(self):
        det = PeakDetector()
        self.assertEqual(det.freq_low, 40.0)
        self.assertEqual(det.freq_high, 20000.0)
        self.assertEqual(det.threshold, 0.25)
        self.assertEqual(det.frames_per_peak, 5)
        self.assertEqual(det.decay_rate, 0.95)
        self.assertEqual(det.cutoff, 0.0)
        self.assertEqual(det.energy, 0.0)
        self.assertEqual(det.penergy, 0.0)
        self.assertEqual(det.frames_since_last_peak, 0)
        self.assertFalse(det.is_detected)

    def test_values_used_as_given(self):
        det = PeakDetector(100.0, 50.0, threshold=-1.0, frames_per_peak=0)
        self.assertEqual(det.freq_low, 100.0)
        self.assertEqual(det.freq_high, 50.0)
        self.assertEqual(det.threshold, -1.0)
        self.assertEqual(det.frames_per_peak, 0)


class TestPeakDetectorUpdate(unittest.TestCase):
    def test_rising_sequence_fires_and_debounces(self):
        det = PeakDetector(threshold=0.25, frames_per_peak=2)
        fired = [det.update(e) for e in [0.1, 0.3, 0.5, 0.4, 0.6]]

        # 0.1 is under the floor; 0.3 and 0.5 both rise above cutoff and floor
        self.assertEqual(fired, [False, True, True, False, True])
        self.assertAlmostEqual(det.cutoff, 0.6 * 1.1, places=9)

    def test_cutoff_after_peak_and_falling_frame(self):
        det = PeakDetector(threshold=0.25, frames_per_peak=2)
        for e in [0.1, 0.3, 0.5]:
            det.update(e)
        self.assertTrue(det.is_detected)
        self.assertAlmostEqual(det.cutoff, 0.55, places=9)

        det.update(0.4)
        self.assertFalse(det.is_detected)
        self.assertAlmostEqual(det.cutoff, 0.55, places=9)
        self.assertEqual(det.frames_since_last_peak, 1)

        det.update(0.6)
        self.assertTrue(det.is_detected)
        self.assertEqual(det.frames_since_last_peak, 0)

    def test_is_detected_only_for_the_peak_frame(self):
        det = PeakDetector(threshold=0.1)
        det.update(0.8)
        self.assertTrue(det.is_detected)
        det.update(0.8)
        self.assertFalse(det.is_detected)

    def test_flat_stream_fires_once(self):
        det = PeakDetector(threshold=0.25, frames_per_peak=3)
        fired = [det.update(0.26) for _ in range(200)]

        self.assertEqual(sum(fired), 1)
        self.assertTrue(fired[0])
        self.assertAlmostEqual(det.cutoff, 0.25, places=9)

    def test_no_peak_on_level_crossing_without_rise(self):
        det = PeakDetector(threshold=0.2)
        det.penergy = 0.9
        self.assertFalse(det.update(0.5))

    def test_no_peak_at_or_below_threshold(self):
        det = PeakDetector(threshold=0.25)
        self.assertFalse(det.update(0.25))
        self.assertEqual(det.cutoff, 0.0)

    def test_energy_and_penergy_track_input(self):
        det = PeakDetector()
        det.update(0.1)
        det.update(0.7)
        self.assertEqual(det.energy, 0.7)
        self.assertEqual(det.penergy, 0.7)

    def test_out_of_range_energy_is_accepted(self):
        det = PeakDetector()
        self.assertTrue(det.update(3.0))
        self.assertAlmostEqual(det.cutoff, 3.3, places=9)
        self.assertFalse(det.update(-2.0))


class TestPeakDetectorDecay(unittest.TestCase):
    def test_cutoff_holds_then_decays_to_threshold(self):
        frames_per_peak = 3
        det = PeakDetector(threshold=0.1, frames_per_peak=frames_per_peak)
        self.assertTrue(det.update(0.5))
        self.assertAlmostEqual(det.cutoff, 0.55, places=9)

        # Counter climbs from 0 to frames_per_peak + 1 before decay starts
        for i in range(frames_per_peak + 1):
            det.update(0.0)
            self.assertAlmostEqual(det.cutoff, 0.55, places=9)
            self.assertEqual(det.frames_since_last_peak, i + 1)

        expected = 0.55
        while expected * DECAY_RATE > 0.1:
            det.update(0.0)
            expected *= DECAY_RATE
            self.assertAlmostEqual(det.cutoff, expected, places=9)

        det.update(0.0)
        self.assertEqual(det.cutoff, 0.1)
        for _ in range(10):
            det.update(0.0)
            self.assertEqual(det.cutoff, 0.1)
        self.assertEqual(det.frames_since_last_peak, frames_per_peak + 1)

    def test_retrigger_allowed_during_hold(self):
        det = PeakDetector(threshold=0.1, frames_per_peak=10)
        det.update(0.3)
        det.update(0.2)
        self.assertTrue(det.update(0.4))
        self.assertAlmostEqual(det.cutoff, 0.44, places=9)

    def test_quiet_start_holds_zero_cutoff_then_jumps_to_floor(self):
        det = PeakDetector(threshold=0.25, frames_per_peak=2)
        for _ in range(3):
            det.update(0.0)
            self.assertEqual(det.cutoff, 0.0)
        det.update(0.0)
        self.assertEqual(det.cutoff, 0.25)


class TestPeakDetectorProperties(unittest.TestCase):
    def test_random_streams_follow_the_peak_rule(self):
        rng = np.random.default_rng(1234)
        for _ in range(20):
            threshold = float(rng.uniform(0.05, 0.6))
            frames_per_peak = int(rng.integers(0, 8))
            det = PeakDetector(threshold=threshold, frames_per_peak=frames_per_peak)
            floor_reached = False

            for energy in rng.uniform(0.0, 1.0, size=300):
                energy = float(energy)
                cutoff_before = det.cutoff
                penergy_before = det.penergy
                expected = energy > cutoff_before and energy > threshold and energy > penergy_before

                self.assertEqual(det.update(energy), expected)
                self.assertEqual(det.is_detected, expected)
                if expected:
                    self.assertAlmostEqual(det.cutoff, energy * 1.1, places=12)
                    self.assertEqual(det.frames_since_last_peak, 0)

                if det.cutoff >= threshold:
                    floor_reached = True
                if floor_reached:
                    self.assertGreaterEqual(det.cutoff, threshold)


class TestPeakDetectorObserver(unittest.TestCase):
    def test_callback_receives_energy_and_payload(self):
        det = PeakDetector(threshold=0.1)
        calls = []
        det.on_peak(lambda energy, payload: calls.append((energy, payload)), "kick")

        det.update(0.05)
        det.update(0.7)
        det.update(0.6)

        self.assertEqual(calls, [(0.7, "kick")])

    def test_payload_defaults_to_none(self):
        det = PeakDetector(threshold=0.1)
        calls = []
        det.on_peak(lambda energy, payload: calls.append(payload))
        det.update(0.5)
        self.assertEqual(calls, [None])

    def test_registration_replaces_previous_observer(self):
        det = PeakDetector(threshold=0.1, frames_per_peak=0)
        first, second = [], []
        det.on_peak(lambda energy, payload: first.append(energy))
        det.update(0.5)
        det.on_peak(lambda energy, payload: second.append(energy))
        det.update(0.0)
        det.update(0.9)

        self.assertEqual(first, [0.5])
        self.assertEqual(second, [0.9])

    def test_no_observer_is_fine(self):
        det = PeakDetector(threshold=0.1)
        self.assertTrue(det.update(0.5))


class TestPeakDetectorExtras(unittest.TestCase):
    def test_update_from_reads_band_energy(self):
        det = PeakDetector(freq_low=60.0, freq_high=250.0, threshold=0.1)
        source = DummySource(0.4)

        self.assertTrue(det.update_from(source))
        self.assertEqual(source.calls, [(60.0, 250.0)])
        self.assertEqual(det.energy, 0.4)

    def test_reset_restores_state_but_keeps_observer(self):
        det = PeakDetector(threshold=0.1, frames_per_peak=2)
        calls = []
        det.on_peak(lambda energy, payload: calls.append(energy))
        det.update(0.8)
        det.update(0.1)

        det.reset()
        self.assertEqual(det.cutoff, 0.0)
        self.assertEqual(det.energy, 0.0)
        self.assertEqual(det.penergy, 0.0)
        self.assertEqual(det.frames_since_last_peak, 0)
        self.assertFalse(det.is_detected)
        self.assertEqual(det.threshold, 0.1)

        det.update(0.3)
        self.assertEqual(calls, [0.8, 0.3])

    def test_from_config(self):
        det = PeakDetector.from_config(PeakDetectConfig(freq_low=20.0, freq_high=200.0,
                                                        threshold=0.4, frames_per_peak=9))
        self.assertEqual((det.freq_low, det.freq_high), (20.0, 200.0))
        self.assertEqual(det.threshold, 0.4)
        self.assertEqual(det.frames_per_peak, 9)

    def test_frames_per_peak_for_bpm(self):
        self.assertEqual(frames_per_peak_for_bpm(60, 120), 30)
        self.assertEqual(frames_per_peak_for_bpm(30, 90), 20)
        self.assertEqual(frames_per_peak_for_bpm(10, 6000), 1)

    def test_frames_per_peak_for_bpm_rejects_non_positive(self):
        with self.assertRaises(ValueError):
            frames_per_peak_for_bpm(60, 0)
        with self.assertRaises(ValueError):
            frames_per_peak_for_bpm(-1, 120)


if __name__ == "__main__":
    unittest.main()
