"""
multispectrum - Main Window
Per-channel live spectrum panels with decaying peak-hold bars.
'+' raises the gain, '-' lowers it.
"""

import sys
from typing import Optional

import numpy as np
from PyQt6.QtCore import QObject, QTimer, pyqtSignal
from PyQt6.QtWidgets import QApplication, QGridLayout, QLabel, QMainWindow, QWidget

import pyqtgraph as pg
pg.setConfigOptions(antialias=False, useOpenGL=False)  # Disable for compatibility

from audio_input import DemoAudioInput, LiveAudioInput
from config import Config
from config_persistence import load_config
from control_wiring import (
    PanelDescriptor,
    average_label,
    gain_steps_for_key,
    panel_descriptors,
    recording_status_text,
)
from frame_processor import ChannelFrame, build_analyzer
from logging_utils import log_event, set_log_level
from serial_link import SerialLineSource
from spectrum_engine import SpectrumEngine


class SignalBridge(QObject):
    """Bridge for thread-safe signal emission"""
    serial_status = pyqtSignal(str, bool)


class SpectrumPanel(pg.PlotWidget):
    """One channel: live dB spectrum, peak-hold bars and the average-peak line"""

    def __init__(self, descriptor: PanelDescriptor, engine: SpectrumEngine, bins_per_band: int,
                 level_range: float, freq_tick_hz: float, parent=None):
        super().__init__(parent)
        self.descriptor = descriptor
        self.engine = engine
        self.bins_per_band = bins_per_band
        self.level_range = level_range

        self.setBackground('#000000')
        self.setMouseEnabled(x=False, y=False)
        self.setMenuEnabled(False)
        self.setTitle(descriptor.title, color='#FFFFFF')
        self.setXRange(0, engine.width, padding=0)
        self.setYRange(0, level_range, padding=0)

        self.peak_bars = pg.BarGraphItem(x=[0], height=[0], width=bins_per_band,
                                         brush=(82, 179, 217), pen=None)
        self.addItem(self.peak_bars)

        self.spectrum_curve = pg.PlotCurveItem(pen=pg.mkPen((37, 116, 169), width=1))
        self.addItem(self.spectrum_curve)

        self.average_line = pg.InfiniteLine(pos=0, angle=0, pen=pg.mkPen((244, 208, 63), width=1))
        self.addItem(self.average_line)
        self.average_text = pg.TextItem("0.00", color=(244, 208, 63), anchor=(0, 0))
        self.average_text.setPos(100, level_range)
        self.addItem(self.average_text)

        self._bins = np.arange(engine.width)
        bottom = self.getAxis('bottom')
        bottom.setTicks([[(idx, f"{round(freq / 1000)}kHz")
                          for freq, idx in engine.frequency_ticks(freq_tick_hz)]])
        self.set_gain(0.0)

    def set_gain(self, gain: float) -> None:
        """Relabel the level axis for the current gain."""
        left = self.getAxis('left')
        left.setTicks([[(height, f"{int(level)} dB")
                        for level, height in self.engine.level_ticks(gain)
                        if 0 <= height <= self.level_range]])

    def update_frame(self, frame: ChannelFrame) -> None:
        heights = np.clip(frame.spectrum, 0, self.level_range)
        self.spectrum_curve.setData(self._bins, heights)

        half = self.bins_per_band / 2
        x = np.arange(frame.peaks.shape[0]) * self.bins_per_band + half
        self.peak_bars.setOpts(x=x, height=np.minimum(frame.peaks, self.level_range))

        self.average_line.setValue(frame.average_peak)
        self.average_text.setText(average_label(frame.average_peak))


class AnalyzerWindow(QMainWindow):
    """Main application window"""

    def __init__(self, config: Optional[Config] = None):
        super().__init__()
        self.config = config or load_config()
        set_log_level(getattr(self.config, 'log_level', 'INFO'))

        self.setWindowTitle("multispectrum")
        self.resize(1200, 900)

        self.signals = SignalBridge()
        self.signals.serial_status.connect(self._on_serial_status)
        self._serial_status = "Serial: off"
        self._audio_status = ""

        a = self.config.analyzer
        self.line_source: Optional[SerialLineSource] = None
        if self.config.serial.enabled:
            self.line_source = SerialLineSource(self.config.serial,
                                                status_callback=self.signals.serial_status.emit)
        if self.config.audio.demo:
            self.audio_source = DemoAudioInput.from_config(self.config.audio, a.sample_rate, a.buffer_size)
        else:
            self.audio_source = LiveAudioInput.from_config(self.config.audio, a.sample_rate, a.buffer_size)

        self.processor, self.context = build_analyzer(
            self.config,
            line_source=self.line_source,
            audio_source=self.audio_source,
            renderer=self._render,
        )

        self._setup_ui()
        self._start_sources()

        # Processing/render tick
        self.tick_timer = QTimer()
        self.tick_timer.timeout.connect(self._on_tick)
        self.tick_timer.start(max(1, int(1000 / self.config.display.fps)))

    def _setup_ui(self) -> None:
        central = QWidget()
        grid = QGridLayout(central)
        self.panels: list[SpectrumPanel] = []
        for desc in panel_descriptors(self.config.analyzer.channel_count, self.config.display.columns):
            panel = SpectrumPanel(
                desc,
                self.processor.engine,
                self.config.analyzer.bins_per_band,
                level_range=self.config.display.level_range,
                freq_tick_hz=self.config.display.freq_tick_hz,
            )
            panel.set_gain(self.context.gain)
            grid.addWidget(panel, desc.row, desc.column)
            self.panels.append(panel)
        self.setCentralWidget(central)

        self.status_label = QLabel()
        self.statusBar().addWidget(self.status_label)
        self._refresh_status()

    def _start_sources(self) -> None:
        if self.line_source is not None:
            self.line_source.start()
        try:
            self.audio_source.start()
        except RuntimeError as e:
            log_event("ERROR", "UI", "Audio input unavailable", error=e)
            self._audio_status = f" | audio: {e}"

    def _on_tick(self) -> None:
        self.processor.tick(self.context)
        self._refresh_status()

    def _render(self, frames: list[ChannelFrame]) -> None:
        for frame in frames:
            self.panels[frame.channel].update_frame(frame)

    def _refresh_status(self) -> None:
        text = recording_status_text(self.context.routing, self.context.gain)
        self.status_label.setText(f"{text} | {self._serial_status}{self._audio_status}")

    def _on_serial_status(self, message: str, connected: bool) -> None:
        self._serial_status = f"Serial: {message}"
        self._refresh_status()

    def keyReleaseEvent(self, event):
        # +/- used to adjust gain on the fly
        steps = gain_steps_for_key(event.text())
        if steps:
            gain = self.context.adjust_gain(steps)
            for panel in self.panels:
                panel.set_gain(gain)
            self._refresh_status()
            return
        super().keyReleaseEvent(event)

    def closeEvent(self, event):
        """Stop the tick and release the serial port and audio stream"""
        self.tick_timer.stop()
        if self.line_source is not None:
            self.line_source.stop()
        self.audio_source.stop()
        event.accept()


def main():
    """Main entry point - backup if not launched via run.py"""
    app = QApplication(sys.argv)
    app.setStyle('Fusion')
    window = AnalyzerWindow()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
