"""
multispectrum - Spectrum Engine
Hamming-windowed forward FFT of one channel buffer, converted to display
decibels with an adjustable gain offset.
"""

import numpy as np

from config import AnalyzerConfig, spec_size
from frequency_utils import band_width, freq_to_index, index_to_freq
from sample_buffer import SampleBuffer


class SpectrumEngine:
    """
    One transform shared by every channel.
    Transform size and sample rate are fixed at construction.
    """

    def __init__(self, transform_size: int, sample_rate: float,
                 width: int | None = None, db_scale: float = 2.0, db_floor: float = -200.0):
        if transform_size < 2:
            raise ValueError(f"transform_size must be >= 2, got {transform_size}")
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be > 0, got {sample_rate}")

        self.transform_size = int(transform_size)
        self.sample_rate = float(sample_rate)
        self.spec_size = spec_size(self.transform_size)
        self.width = self.transform_size // 2 if width is None else int(width)
        if not 0 < self.width <= self.spec_size:
            raise ValueError(f"width must be in 1..{self.spec_size}, got {self.width}")
        self.db_scale = float(db_scale)
        self.db_floor = float(db_floor)

        # Tapered window keeps leakage out of the log-domain display
        self._window = np.hamming(self.transform_size).astype(np.float64)

    @classmethod
    def from_config(cls, cfg: AnalyzerConfig) -> "SpectrumEngine":
        return cls(
            transform_size=cfg.buffer_size,
            sample_rate=cfg.sample_rate,
            width=cfg.display_width,
            db_scale=cfg.db_scale,
            db_floor=cfg.db_floor,
        )

    def magnitudes(self, samples) -> np.ndarray:
        """Linear magnitude of the first ``width`` bins."""
        data = np.asarray(samples, dtype=np.float64).reshape(-1)
        if data.shape[0] != self.transform_size:
            raise ValueError(
                f"Buffer has {data.shape[0]} samples, transform size is {self.transform_size}"
            )
        spectrum = np.abs(np.fft.rfft(data * self._window))
        return spectrum[:self.width]

    def compute_spectrum(self, buffer: SampleBuffer | np.ndarray, gain: float = 0.0) -> np.ndarray:
        """Return ``width`` display-dB values for ``buffer``.

        Bins with zero magnitude get ``db_floor`` instead of log10(0).
        """
        samples = buffer.samples if isinstance(buffer, SampleBuffer) else buffer
        mags = self.magnitudes(samples)
        out = np.full(mags.shape, self.db_floor, dtype=np.float64)
        nonzero = mags > 0
        out[nonzero] = self.db_scale * (20.0 * np.log10(mags[nonzero]) + gain)
        return out

    # ---------- Axis mappings (used by the renderer) ----------

    @property
    def band_width(self) -> float:
        return band_width(self.transform_size, self.sample_rate)

    def freq_to_index(self, freq: float) -> int:
        return freq_to_index(freq, self.transform_size, self.sample_rate)

    def index_to_freq(self, index: int) -> float:
        return index_to_freq(index, self.transform_size, self.sample_rate)

    def level_to_display(self, level_db: float, gain: float = 0.0) -> float:
        """Display height of a dB level at the current gain."""
        return self.db_scale * (level_db + gain)

    def frequency_ticks(self, step_hz: float = 2000.0) -> list[tuple[float, int]]:
        """(frequency, bin index) pairs from 0 Hz up to Nyquist, every ``step_hz``."""
        if step_hz <= 0:
            raise ValueError("step_hz must be positive")
        ticks = []
        freq = 0.0
        while freq < self.sample_rate / 2:
            ticks.append((freq, self.freq_to_index(freq)))
            freq += step_hz
        return ticks

    def level_ticks(self, gain: float = 0.0, low: float = -100.0, high: float = 100.0,
                    step: float = 20.0) -> list[tuple[float, float]]:
        """(level dB, display height) pairs for the level axis."""
        levels = np.arange(low, high, step)
        return [(float(level), self.level_to_display(float(level), gain)) for level in levels]
