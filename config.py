# peakdetect Configuration
# All default values and constants

from dataclasses import dataclass, field, fields, is_dataclass

from logging_utils import log_event


CURRENT_CONFIG_VERSION = 1

@dataclass
class PeakDetectConfig:
    """Peak detector parameters"""
    freq_low: float = 40.0            # Low band bound (Hz)
    freq_high: float = 20000.0        # High band bound (Hz)
    threshold: float = 0.25           # Absolute floor (0-1, logarithmic loudness)
    frames_per_peak: int = 5          # Frames the cutoff stays inflated after a peak

@dataclass
class SpectrumConfig:
    """Magnitude spectrum handed to SpectrumBandEnergy"""
    sample_rate: int = 44100
    full_scale: float = 255.0         # Bin value that maps to energy 1.0 (255 = byte spectrum)

@dataclass
class Config:
    """Master configuration"""
    version: int = 1                  # Schema version for persisted configs
    peak: PeakDetectConfig = field(default_factory=PeakDetectConfig)
    spectrum: SpectrumConfig = field(default_factory=SpectrumConfig)

    # Global
    log_level: str = "INFO"           # Logging level (DEBUG/INFO/WARNING/ERROR)
    report_generation_enabled: bool = True    # Master toggle for writing session reports


def apply_dict_to_dataclass(target, data) -> None:
    """Recursively apply values from a dict onto a dataclass instance.
    Unknown keys are ignored."""
    if not isinstance(data, dict):
        return

    for key, value in data.items():
        if not hasattr(target, key):
            continue

        current = getattr(target, key)

        if is_dataclass(current):
            if isinstance(value, dict):
                apply_dict_to_dataclass(current, value)
            else:
                log_event("WARNING", "Config", "Ignoring non-object value for section", section=key)
            continue

        setattr(target, key, value)


def _fill_none_with_defaults(section) -> None:
    defaults = type(section)()
    for f in fields(section):
        if getattr(section, f.name) is None:
            setattr(section, f.name, getattr(defaults, f.name))


def _coerce_field(section, name: str, cast) -> None:
    """Cast a persisted value, falling back to the dataclass default."""
    try:
        setattr(section, name, cast(getattr(section, name)))
    except (TypeError, ValueError):
        default = getattr(type(section)(), name)
        log_event("WARNING", "Config", "Invalid value, using default",
                  field=name, value=getattr(section, name), default=default)
        setattr(section, name, default)


def migrate_config(config: Config, loaded_version) -> None:
    """Upgrade older config structures to the current schema.
    Replaces missing values with defaults and bumps version."""
    try:
        version = int(loaded_version) if loaded_version is not None else 0
    except (TypeError, ValueError):
        version = 0

    if version < 1:
        if config.log_level is None:
            config.log_level = "INFO"
        if config.report_generation_enabled is None:
            config.report_generation_enabled = True

    _fill_none_with_defaults(config.peak)
    _fill_none_with_defaults(config.spectrum)

    if not isinstance(config.log_level, str):
        config.log_level = "INFO"

    for name in ("freq_low", "freq_high", "threshold"):
        _coerce_field(config.peak, name, float)
    _coerce_field(config.peak, "frames_per_peak", int)
    _coerce_field(config.spectrum, "sample_rate", int)
    _coerce_field(config.spectrum, "full_scale", float)

    # Always keep the debounce window a non-negative frame count
    config.peak.frames_per_peak = max(0, config.peak.frames_per_peak)
    if config.spectrum.full_scale <= 0:
        config.spectrum.full_scale = SpectrumConfig.full_scale

    if config.peak.freq_low > config.peak.freq_high:
        config.peak.freq_low, config.peak.freq_high = config.peak.freq_high, config.peak.freq_low

    config.version = CURRENT_CONFIG_VERSION

