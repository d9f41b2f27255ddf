import numpy as np


def band_bins(n_bins: int, sample_rate: int, freq_low: float, freq_high: float) -> tuple[int, int]:
    """Inclusive (low, high) bin indices covering a Hz range of an n-bin spectrum."""
    if freq_low > freq_high:
        freq_low, freq_high = freq_high, freq_low
    nyquist = sample_rate / 2
    # Half-up rounding
    low_bin = max(0, int(freq_low / nyquist * n_bins + 0.5))
    high_bin = min(n_bins - 1, int(freq_high / nyquist * n_bins + 0.5))
    return low_bin, high_bin


def band_energy(
    spectrum: np.ndarray | None,
    sample_rate: int,
    freq_low: float,
    freq_high: float,
    full_scale: float = 255.0,
) -> float:
    """Mean magnitude of the bins in a Hz range, scaled to 0-1 by *full_scale*."""
    if spectrum is None or len(spectrum) == 0 or sample_rate <= 0 or full_scale <= 0:
        return 0.0

    low_bin, high_bin = band_bins(len(spectrum), sample_rate, freq_low, freq_high)
    if low_bin > high_bin:
        return 0.0

    band = np.asarray(spectrum[low_bin:high_bin + 1], dtype=np.float64)
    return float(np.mean(band)) / full_scale


class SpectrumBandEnergy:
    """Serves band energy from the latest externally computed magnitude spectrum.

    Satisfies ``peak_detect.EnergySource``; call ``set_spectrum`` once per frame
    before ``PeakDetector.update_from``.
    """

    def __init__(self, sample_rate: int = 44100, full_scale: float = 255.0):
        self.sample_rate = sample_rate
        self.full_scale = full_scale
        self._spectrum: np.ndarray | None = None

    @classmethod
    def from_config(cls, cfg) -> "SpectrumBandEnergy":
        return cls(sample_rate=cfg.sample_rate, full_scale=cfg.full_scale)

    def set_spectrum(self, spectrum: np.ndarray | None) -> None:
        self._spectrum = None if spectrum is None else np.asarray(spectrum)

    def get_energy(self, freq_low: float, freq_high: float) -> float:
        return band_energy(self._spectrum, self.sample_rate, freq_low, freq_high, self.full_scale)
