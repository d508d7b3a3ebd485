def band_width(transform_size: int, sample_rate: float) -> float:
    """Width in Hz of one FFT bin."""
    return float(sample_rate) / transform_size


def freq_to_index(freq: float, transform_size: int, sample_rate: float) -> int:
    """Return the FFT bin that holds ``freq``.

    Frequencies below half a bin map to bin 0 and anything within half a bin of
    Nyquist maps to the last bin (``transform_size // 2``).
    """
    bw = band_width(transform_size, sample_rate)
    if freq < bw / 2:
        return 0
    if freq > sample_rate / 2 - bw / 2:
        return transform_size // 2
    # round half up
    return int(transform_size * (freq / sample_rate) + 0.5)


def index_to_freq(index: int, transform_size: int, sample_rate: float) -> float:
    """Return the representative frequency (Hz) of FFT bin ``index``.

    The first and last bins are half-width, so their centre sits a quarter
    bin in from DC and Nyquist respectively.
    """
    bw = band_width(transform_size, sample_rate)
    if index <= 0:
        return bw * 0.25
    if index >= transform_size // 2:
        return sample_rate / 2 - bw * 0.25
    return index * bw
