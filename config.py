# multispectrum Configuration
# All default values and constants

from dataclasses import dataclass, field, fields, is_dataclass

from logging_utils import log_event


CURRENT_CONFIG_VERSION = 1

MAX_CHANNELS = 8


@dataclass
class AnalyzerConfig:
    """Spectrum and peak-hold engine parameters (fixed once the analyzer is built)"""
    buffer_size: int = 1024           # Samples per channel buffer; also the FFT size
    sample_rate: float = 44100.0      # Hz
    channel_count: int = 4            # Number of logical microphone channels
    bins_per_band: int = 10           # FFT bins aggregated under one peak-hold band
    peak_hold_time: int = 10          # Ticks a peak is held before it decays
    peak_decay_step: float = 1.0      # Amount subtracted per tick once the hold expires
    db_scale: float = 2.0             # Display units per dB
    display_width: int = 512          # Bins computed per spectrum (<= buffer_size // 2 + 1)
    db_floor: float = -200.0          # Substituted for bins with zero magnitude
    gain_step: float = 5.0            # dB per gain up/down action
    initial_gain: float = 0.0         # dB


@dataclass
class SerialConfig:
    """Serial command link (Arduino channel switcher)"""
    port: str | None = None           # None = auto-detect
    baud_rate: int = 57600
    read_timeout: float = 0.05        # Seconds the reader thread blocks per read
    auto_connect: bool = True
    reconnect_delay_ms: int = 3000
    enabled: bool = True


@dataclass
class AudioConfig:
    """Live audio capture settings"""
    # Device index - None means use system default
    device_index: int | None = None
    input_channels: int = 1           # Captured channels, mixed down to mono
    demo: bool = False                # Use the synthetic source instead of a device


@dataclass
class DisplayConfig:
    """Render loop settings"""
    fps: int = 30                     # Tick rate of the processing/render loop
    columns: int = 2                  # Panels per row
    freq_tick_hz: float = 2000.0      # Frequency axis tick spacing
    level_range: float = 400.0        # Display units shown on the level axis


@dataclass
class Config:
    """Master configuration"""
    version: int = CURRENT_CONFIG_VERSION   # Schema version for persisted configs
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    serial: SerialConfig = field(default_factory=SerialConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)

    # Global
    log_level: str = "INFO"           # Logging level (DEBUG/INFO/WARNING/ERROR)


def apply_dict_to_dataclass(target, data) -> None:
    """Recursively apply values from a dict onto a dataclass instance.
    Unknown keys are ignored; a non-dict value for a nested section is skipped."""
    if not isinstance(data, dict):
        return

    for key, value in data.items():
        if not hasattr(target, key):
            continue

        current = getattr(target, key)

        if is_dataclass(current) and isinstance(value, dict):
            apply_dict_to_dataclass(current, value)
            continue

        if is_dataclass(current):
            log_event("WARN", "Config", "Expected a section, keeping default", key=key)
            continue

        setattr(target, key, value)


def migrate_config(config: Config, loaded_version) -> None:
    """Bring a loaded config up to the current schema.
    Restores defaults for fields a hand-edited file set to null and bumps version."""
    try:
        version = int(loaded_version) if loaded_version is not None else 0
    except (TypeError, ValueError):
        version = 0

    # Hand-edited files may null out fields
    for section, defaults in ((config.analyzer, AnalyzerConfig()), (config.display, DisplayConfig())):
        for f in fields(section):
            if getattr(section, f.name) is None and getattr(defaults, f.name) is not None:
                setattr(section, f.name, getattr(defaults, f.name))

    if getattr(config, 'log_level', None) is None:
        config.log_level = "INFO"

    if version != CURRENT_CONFIG_VERSION:
        log_event("INFO", "Config", "Migrated", from_version=version, to_version=CURRENT_CONFIG_VERSION)
    config.version = CURRENT_CONFIG_VERSION


def spec_size(buffer_size: int) -> int:
    """Number of bins a real FFT of ``buffer_size`` produces."""
    return buffer_size // 2 + 1


def validate_config(config: Config) -> None:
    """Raise ValueError when an analyzer invariant is violated."""
    a = config.analyzer
    if int(a.buffer_size) < 2:
        raise ValueError(f"buffer_size must be >= 2, got {a.buffer_size}")
    if not 1 <= int(a.channel_count) <= MAX_CHANNELS:
        raise ValueError(f"channel_count must be in 1..{MAX_CHANNELS}, got {a.channel_count}")
    if int(a.bins_per_band) < 1:
        raise ValueError(f"bins_per_band must be >= 1, got {a.bins_per_band}")
    if not 0 < int(a.display_width) <= spec_size(int(a.buffer_size)):
        raise ValueError(
            f"display_width must be in 1..{spec_size(int(a.buffer_size))}, got {a.display_width}"
        )
    if int(a.peak_hold_time) < 0:
        raise ValueError(f"peak_hold_time must be >= 0, got {a.peak_hold_time}")
    if float(a.peak_decay_step) <= 0:
        raise ValueError(f"peak_decay_step must be > 0, got {a.peak_decay_step}")
    if float(a.sample_rate) <= 0:
        raise ValueError(f"sample_rate must be > 0, got {a.sample_rate}")
    if int(config.display.fps) < 1:
        raise ValueError(f"fps must be >= 1, got {config.display.fps}")
