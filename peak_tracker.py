"""
multispectrum - Peak Tracker
Banded peak-hold with timed decay, one peak/age array pair per channel.
"""

import numpy as np

from config import AnalyzerConfig, spec_size


class PeakTracker:
    """
    Holds the loudest value seen in each band of adjacent bins.

    Each tick a band first ages; once its age reaches ``hold_time`` it loses
    ``decay_step`` per tick down to a floor of 0. A louder band then replaces
    the decayed value and its age resets.
    """

    def __init__(self, channel_count: int, bin_count: int, bins_per_band: int,
                 hold_time: int = 10, decay_step: float = 1.0):
        if channel_count < 1:
            raise ValueError(f"channel_count must be >= 1, got {channel_count}")
        if bin_count < 1:
            raise ValueError(f"bin_count must be >= 1, got {bin_count}")
        if bins_per_band < 1:
            raise ValueError(f"bins_per_band must be >= 1, got {bins_per_band}")

        self.channel_count = int(channel_count)
        self.bin_count = int(bin_count)
        self.bins_per_band = int(bins_per_band)
        self.hold_time = int(hold_time)
        self.decay_step = float(decay_step)
        self.peak_count = 1 + self.bin_count // self.bins_per_band

        self._peaks = np.zeros((self.channel_count, self.peak_count), dtype=np.float64)
        self._ages = np.zeros((self.channel_count, self.peak_count), dtype=np.int64)
        # bin index -> band index, cached per spectrum length
        self._band_index: dict[int, np.ndarray] = {}

    @classmethod
    def from_config(cls, cfg: AnalyzerConfig) -> "PeakTracker":
        return cls(
            channel_count=cfg.channel_count,
            bin_count=spec_size(cfg.buffer_size),
            bins_per_band=cfg.bins_per_band,
            hold_time=cfg.peak_hold_time,
            decay_step=cfg.peak_decay_step,
        )

    def _check_channel(self, channel: int) -> None:
        if not 0 <= channel < self.channel_count:
            raise IndexError(f"channel {channel} out of range 0..{self.channel_count - 1}")

    def _bands_for(self, length: int) -> np.ndarray:
        bands = self._band_index.get(length)
        if bands is None:
            bands = np.arange(length) // self.bins_per_band
            self._band_index[length] = bands
        return bands

    def update(self, channel: int, spectrum) -> None:
        """Age/decay the channel's peaks, then fold in one tick's spectrum.

        A band is raised when its loudest bin beats the value left after this
        tick's decay, so the held value is ``max(decayed, band_max)`` and a
        steady level never dips below itself.
        """
        self._check_channel(channel)
        values = np.asarray(spectrum, dtype=np.float64).reshape(-1)
        if values.shape[0] > self.bin_count:
            raise ValueError(f"Spectrum has {values.shape[0]} bins, tracker holds {self.bin_count}")

        peaks = self._peaks[channel]
        ages = self._ages[channel]

        holding = ages < self.hold_time
        ages[holding] += 1
        decaying = ~holding
        peaks[decaying] = np.maximum(peaks[decaying] - self.decay_step, 0.0)

        band_max = np.full(self.peak_count, -np.inf)
        if values.shape[0]:
            np.maximum.at(band_max, self._bands_for(values.shape[0]), values)

        raised = band_max > peaks
        peaks[raised] = band_max[raised]
        ages[raised] = 0

    def peaks(self, channel: int) -> np.ndarray:
        self._check_channel(channel)
        return self._peaks[channel].copy()

    def ages(self, channel: int) -> np.ndarray:
        self._check_channel(channel)
        return self._ages[channel].copy()

    def average_peak(self, channel: int) -> float:
        """Mean held value across all bands; exactly 0.0 on silence."""
        self._check_channel(channel)
        total = float(self._peaks[channel].sum())
        if total == 0:
            return 0.0
        return total / self.peak_count

    def reset(self, channel: int | None = None) -> None:
        if channel is None:
            self._peaks.fill(0.0)
            self._ages.fill(0)
            return
        self._check_channel(channel)
        self._peaks[channel].fill(0.0)
        self._ages[channel].fill(0)
