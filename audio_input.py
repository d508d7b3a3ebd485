"""
multispectrum - Audio Input
Pull sources for the live input frame: a sounddevice capture stream and a
synthetic source for running without hardware.
"""

import threading
from typing import Optional

import numpy as np

try:
    import sounddevice as sd
except Exception:  # PortAudio missing or unloadable
    sd = None

from config import AudioConfig
from logging_utils import log_event


class LiveAudioInput:
    """
    Callback-driven capture that keeps only the most recent block.
    ``latest_frame`` hands out a copy taken under the lock, so readers always
    see a whole block.
    """

    def __init__(self, sample_rate: float, buffer_size: int, device: Optional[int | str] = None,
                 channels: int = 1):
        self.sample_rate = sample_rate
        self.buffer_size = buffer_size
        self.device = device
        self.channels = max(1, int(channels))

        self.stream = None
        self._lock = threading.Lock()
        self._latest: Optional[np.ndarray] = None
        self.frames_captured = 0

    @classmethod
    def from_config(cls, audio: AudioConfig, sample_rate: float, buffer_size: int) -> "LiveAudioInput":
        return cls(sample_rate, buffer_size, device=audio.device_index, channels=audio.input_channels)

    def start(self) -> None:
        if sd is None:
            raise RuntimeError("sounddevice is not available. Install it or use --demo.")
        if self.stream is not None:
            return
        try:
            stream = sd.InputStream(
                device=self.device,
                channels=self.channels,
                samplerate=self.sample_rate,
                blocksize=self.buffer_size,
                dtype="float32",
                callback=self._callback,
            )
            stream.start()
        except sd.PortAudioError as e:
            raise RuntimeError(f"Audio device error: {e}") from e
        self.stream = stream
        log_event("INFO", "AudioInput", "Capture started", device=self.device,
                  sample_rate=int(self.sample_rate), block=self.buffer_size)

    def stop(self) -> None:
        if self.stream is None:
            return
        try:
            self.stream.stop()
            self.stream.close()
        except sd.PortAudioError as e:
            log_event("WARN", "AudioInput", "Error closing stream", error=e)
        self.stream = None
        log_event("INFO", "AudioInput", "Stopped", frames=self.frames_captured)

    def _callback(self, indata, frames, time_info, status):
        if status:
            log_event("DEBUG", "AudioInput", "Stream status", status=status)
        self.push(indata)

    def push(self, indata) -> None:
        """Store one captured block, mixed down to mono."""
        block = np.asarray(indata, dtype=np.float32)
        if block.ndim == 2:
            mono = block.mean(axis=1) if block.shape[1] > 1 else block[:, 0]
        else:
            mono = block
        if mono.shape[0] != self.buffer_size:
            log_event("DEBUG", "AudioInput", "Dropping short block", frames=mono.shape[0])
            return
        with self._lock:
            self._latest = mono.copy()
            self.frames_captured += 1

    def latest_frame(self) -> Optional[np.ndarray]:
        """Copy of the most recent block, or None before the first one arrives."""
        with self._lock:
            return None if self._latest is None else self._latest.copy()


class DemoAudioInput:
    """Synthetic source used when no microphone is available."""

    def __init__(self, sample_rate: float, buffer_size: int, seed: Optional[int] = None):
        self.sample_rate = sample_rate
        self.buffer_size = buffer_size
        self.t = 0
        self._rng = np.random.default_rng(seed)

    @classmethod
    def from_config(cls, audio: AudioConfig, sample_rate: float, buffer_size: int) -> "DemoAudioInput":
        return cls(sample_rate, buffer_size)

    def start(self) -> None:
        log_event("INFO", "AudioInput", "Demo source active")

    def stop(self) -> None:
        pass

    def latest_frame(self) -> np.ndarray:
        n = self.buffer_size
        sr = self.sample_rate
        t = (self.t + np.arange(n)) / sr
        sweep = 0.3 * np.sin(2 * np.pi * (200 + 40 * ((self.t / sr) % 50)) * t)
        tone1 = 0.25 * np.sin(2 * np.pi * 440 * t)
        tone2 = 0.15 * np.sin(2 * np.pi * 3520 * t + 0.3)
        noise = 0.01 * self._rng.standard_normal(n)
        self.t += n
        return np.tanh(1.5 * (sweep + tone1 + tone2 + noise)).astype(np.float32)
