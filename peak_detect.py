"""
peakdetect - Peak Detector
Turns a per-frame band energy signal into debounced onset events.
"""

from typing import Any, Callable, Optional, Protocol

from logging_utils import log_event


DECAY_RATE = 0.95       # Cutoff multiplier per frame once the debounce window has passed
CUTOFF_BOOST = 1.1      # Cutoff = energy * this right after a peak


class EnergySource(Protocol):
    """Anything that can report normalized (0-1) energy for a frequency band."""

    def get_energy(self, freq_low: float, freq_high: float) -> float:
        ...


PeakCallback = Callable[[float, Any], None]


def frames_per_peak_for_bpm(frame_rate: float, bpm: float) -> int:
    """Frames between beats at a given tempo, e.g. 60 fps at 120 BPM -> 30."""
    if frame_rate <= 0 or bpm <= 0:
        raise ValueError(f"frame_rate and bpm must be positive (got {frame_rate}, {bpm})")
    return max(1, int(round(frame_rate / (bpm / 60.0))))


class PeakDetector:
    """
    Per-frame onset detector with an adaptive, self-decaying cutoff.

    Call ``update`` once per processing frame with the normalized energy of the
    band [freq_low, freq_high], after the spectral analysis for that frame has
    been refreshed. A stale sample (same as the previous frame) can never
    register a peak because a peak requires a rising edge.

    A peak fires when the energy is above the adaptive ``cutoff``, above the
    fixed ``threshold`` floor, and higher than the previous frame. Each peak
    raises the cutoff to 1.1x the peak energy. After ``frames_per_peak`` quiet
    frames the cutoff decays by 0.95 per frame, never below ``threshold``.

    ``threshold`` is logarithmic loudness scaled 0-1 (0.1 is roughly half as
    loud as 1.0). Inputs are not validated.
    """
    __slots__ = ('freq_low', 'freq_high', 'threshold', 'frames_per_peak',
                 'frames_since_last_peak', 'decay_rate', 'cutoff',
                 'energy', 'penergy', 'is_detected',
                 '_on_peak', '_on_peak_payload')

    def __init__(self, freq_low: float = 40.0, freq_high: float = 20000.0,
                 threshold: float = 0.25, frames_per_peak: int = 5):
        self.freq_low = freq_low
        self.freq_high = freq_high
        self.threshold = threshold
        self.frames_per_peak = frames_per_peak
        self.decay_rate = DECAY_RATE

        self.frames_since_last_peak: int = 0
        self.cutoff: float = 0.0
        self.energy: float = 0.0
        self.penergy: float = 0.0
        self.is_detected: bool = False

        self._on_peak: Optional[PeakCallback] = None
        self._on_peak_payload: Any = None

    @classmethod
    def from_config(cls, cfg) -> "PeakDetector":
        """Build a detector from a ``config.PeakDetectConfig``."""
        return cls(
            freq_low=cfg.freq_low,
            freq_high=cfg.freq_high,
            threshold=cfg.threshold,
            frames_per_peak=cfg.frames_per_peak,
        )

    def update(self, energy: float) -> bool:
        """Feed one frame's band energy. Sets and returns ``is_detected``."""
        self.energy = energy
        if energy > self.cutoff and energy > self.threshold and energy - self.penergy > 0:
            if self._on_peak is not None:
                self._on_peak(energy, self._on_peak_payload)
            self.is_detected = True

            # debounce
            self.cutoff = energy * CUTOFF_BOOST
            self.frames_since_last_peak = 0
            log_event("DEBUG", "Peak", "Peak detected",
                      energy=energy, cutoff=self.cutoff)
        else:
            self.is_detected = False
            if self.frames_since_last_peak <= self.frames_per_peak:
                self.frames_since_last_peak += 1
            else:
                self.cutoff = max(self.cutoff * self.decay_rate, self.threshold)

        self.penergy = energy
        return self.is_detected

    def update_from(self, source: EnergySource) -> bool:
        """Pull this detector's band energy from *source* and update with it."""
        return self.update(source.get_energy(self.freq_low, self.freq_high))

    def on_peak(self, callback: PeakCallback, payload: Any = None) -> None:
        """Register the peak observer, called as ``callback(energy, payload)``.

        Only one observer is kept; registering replaces the previous one.
        """
        self._on_peak = callback
        self._on_peak_payload = payload

    def reset(self) -> None:
        """Clear runtime state for a fresh start. Configuration and observer are kept."""
        self.frames_since_last_peak = 0
        self.cutoff = 0.0
        self.energy = 0.0
        self.penergy = 0.0
        self.is_detected = False
