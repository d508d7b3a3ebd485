"""
multispectrum - Frame Processor
Runs one analyzer tick: drain commands, capture into the active channel,
recompute every channel's spectrum and peaks, hand the frame to the renderer.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

import numpy as np

from channel_router import ChannelRouter, RouterState
from config import Config, validate_config
from logging_utils import log_event, log_throttled
from peak_tracker import PeakTracker
from sample_buffer import SampleBuffer
from spectrum_engine import SpectrumEngine


class LineSource(Protocol):
    def drain_lines(self) -> list[str]: ...


class AudioSource(Protocol):
    def latest_frame(self) -> Optional[np.ndarray]: ...


@dataclass(frozen=True)
class ChannelFrame:
    """Everything the renderer needs for one channel on one tick"""
    channel: int
    spectrum: np.ndarray
    peaks: np.ndarray
    average_peak: float


Renderer = Callable[[list[ChannelFrame]], None]


@dataclass
class Channel:
    index: int
    buffer: SampleBuffer
    spectrum: Optional[np.ndarray] = None


@dataclass
class AnalyzerContext:
    """
    All mutable analyzer state, passed to every tick.
    Gain changes only through the gain setters; routing only through ``router``.
    """
    channels: list[Channel]
    router: ChannelRouter
    gain_step: float = 5.0
    _gain: float = field(default=0.0, repr=False)
    tick_count: int = 0

    @property
    def gain(self) -> float:
        return self._gain

    @property
    def routing(self) -> RouterState:
        return self.router.state

    def adjust_gain(self, steps: int) -> float:
        self._gain += steps * self.gain_step
        log_event("INFO", "Gain", "Gain changed", gain_db=f"{self._gain:+.1f}")
        return self._gain

    def increase_gain(self) -> float:
        return self.adjust_gain(1)

    def decrease_gain(self) -> float:
        return self.adjust_gain(-1)


class FrameProcessor:
    """Per-tick orchestration over an :class:`AnalyzerContext`."""

    def __init__(self, engine: SpectrumEngine, tracker: PeakTracker,
                 line_source: Optional[LineSource] = None,
                 audio_source: Optional[AudioSource] = None,
                 renderer: Optional[Renderer] = None):
        if tracker.bin_count < engine.width:
            raise ValueError(
                f"PeakTracker holds {tracker.bin_count} bins, engine emits {engine.width}"
            )
        self.engine = engine
        self.tracker = tracker
        self.line_source = line_source
        self.audio_source = audio_source
        self.renderer = renderer

    def check_context(self, context: AnalyzerContext) -> None:
        """Raise ValueError if the context does not fit this processor."""
        if len(context.channels) != self.tracker.channel_count:
            raise ValueError(
                f"Context has {len(context.channels)} channels, tracker has {self.tracker.channel_count}"
            )
        if context.router.channel_count != len(context.channels):
            raise ValueError("Router channel count does not match context channels")
        for ch in context.channels:
            if ch.buffer.size != self.engine.transform_size:
                raise ValueError(
                    f"Channel {ch.index} buffer holds {ch.buffer.size} samples, "
                    f"transform size is {self.engine.transform_size}"
                )

    def tick(self, context: AnalyzerContext) -> list[ChannelFrame]:
        self._drain_commands(context)

        routing = context.routing
        if routing.recording_enabled:
            self._capture(context, routing.active_channel)

        gain = context.gain
        frames = []
        for ch in context.channels:
            spectrum = self.engine.compute_spectrum(ch.buffer, gain)
            ch.spectrum = spectrum
            self.tracker.update(ch.index, spectrum)
            frames.append(ChannelFrame(
                channel=ch.index,
                spectrum=spectrum,
                peaks=self.tracker.peaks(ch.index),
                average_peak=self.tracker.average_peak(ch.index),
            ))

        context.tick_count += 1
        self._emit(frames)
        return frames

    def _drain_commands(self, context: AnalyzerContext) -> None:
        if self.line_source is None:
            return
        try:
            lines = self.line_source.drain_lines()
        except Exception as e:
            log_event("WARN", "Tick", "Command source unavailable", error=e)
            return
        if lines:
            context.router.apply_lines(lines)

    def _capture(self, context: AnalyzerContext, channel: int) -> None:
        if self.audio_source is None:
            return
        try:
            frame = self.audio_source.latest_frame()
        except Exception as e:
            log_event("WARN", "Tick", "Audio source unavailable", error=e)
            return
        if frame is None:
            return

        buffer = context.channels[channel].buffer
        try:
            buffer.replace(frame)
        except ValueError as e:
            log_event("WARN", "Tick", "Skipping frame", channel=channel, error=e)
            return
        log_throttled("recording", 1.0, "DEBUG", "Tick", "Recording", channel=channel)

    def _emit(self, frames: list[ChannelFrame]) -> None:
        if self.renderer is None:
            return
        try:
            self.renderer(frames)
        except Exception as e:
            log_event("ERROR", "Tick", "Renderer failed", error=e)


def build_context(config: Config) -> AnalyzerContext:
    a = config.analyzer
    channels = [Channel(index=i, buffer=SampleBuffer(a.buffer_size)) for i in range(a.channel_count)]
    return AnalyzerContext(
        channels=channels,
        router=ChannelRouter(a.channel_count),
        gain_step=a.gain_step,
        _gain=a.initial_gain,
    )


def build_analyzer(config: Config, line_source: Optional[LineSource] = None,
                   audio_source: Optional[AudioSource] = None,
                   renderer: Optional[Renderer] = None) -> tuple[FrameProcessor, AnalyzerContext]:
    """Validate ``config`` and assemble a processor with a fresh context."""
    validate_config(config)
    processor = FrameProcessor(
        engine=SpectrumEngine.from_config(config.analyzer),
        tracker=PeakTracker.from_config(config.analyzer),
        line_source=line_source,
        audio_source=audio_source,
        renderer=renderer,
    )
    context = build_context(config)
    processor.check_context(context)
    log_event("INFO", "Analyzer", "Built", channels=config.analyzer.channel_count,
              buffer=config.analyzer.buffer_size, bands=processor.tracker.peak_count)
    return processor, context
