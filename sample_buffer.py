import numpy as np


class SampleBuffer:
    """Fixed-length time-domain buffer for one channel.

    The buffer is only ever replaced whole; its length never changes.
    """

    __slots__ = ('size', '_samples')

    def __init__(self, size: int):
        if size < 1:
            raise ValueError(f"SampleBuffer size must be positive, got {size}")
        self.size = int(size)
        self._samples = np.zeros(self.size, dtype=np.float32)

    def replace(self, frame) -> None:
        """Overwrite the buffer with ``frame`` (must have exactly ``size`` samples)."""
        data = np.asarray(frame, dtype=np.float32).reshape(-1)
        if data.shape[0] != self.size:
            raise ValueError(f"Frame has {data.shape[0]} samples, buffer holds {self.size}")
        self._samples = data.copy()

    @property
    def samples(self) -> np.ndarray:
        """Read-only view of the current samples."""
        view = self._samples.view()
        view.flags.writeable = False
        return view

    def clear(self) -> None:
        self._samples = np.zeros(self.size, dtype=np.float32)

    def __len__(self) -> int:
        return self.size
