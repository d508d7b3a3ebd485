"""
multispectrum - Serial Link
Reads newline-terminated command lines from the Arduino channel switcher.
A background thread assembles lines; the tick thread drains them without
blocking.
"""

import queue
import threading
import time
from typing import Callable, Optional

import serial
from serial.tools import list_ports

from config import SerialConfig
from logging_utils import log_event

_PORT_HINTS = ("usbmodem", "usbserial", "arduino", "ttyacm", "ttyusb")

# Longest partial line kept while waiting for a terminator
MAX_LINE_BYTES = 256


def find_serial_port() -> Optional[str]:
    """Return the most Arduino-looking serial port, else the first one, else None."""
    ports = list(list_ports.comports())
    for port in ports:
        haystack = f"{port.device} {port.description}".lower()
        if any(hint in haystack for hint in _PORT_HINTS):
            return port.device
    return ports[0].device if ports else None


class LineAssembler:
    """Splits an arbitrary byte stream into decoded text lines."""

    def __init__(self, max_line_bytes: int = MAX_LINE_BYTES):
        self._pending = bytearray()
        self._max = max_line_bytes

    def feed(self, data: bytes) -> list[str]:
        self._pending.extend(data)
        lines = []
        while True:
            idx = self._pending.find(b"\n")
            if idx < 0:
                break
            raw = bytes(self._pending[:idx + 1])
            del self._pending[:idx + 1]
            lines.append(raw.decode("ascii", errors="replace"))
        if len(self._pending) > self._max:
            # No terminator in sight; drop the runaway fragment
            log_event("DEBUG", "Serial", "Dropping oversized partial line", size=len(self._pending))
            self._pending.clear()
        return lines

    def clear(self) -> None:
        self._pending.clear()


class SerialLineSource:
    """
    Non-blocking line source backed by pyserial.
    Reconnects on its own after the port disappears.
    """

    def __init__(self, config: SerialConfig,
                 status_callback: Optional[Callable[[str, bool], None]] = None,
                 serial_factory: Callable[..., serial.Serial] = serial.Serial):
        """
        Args:
            config: Serial link configuration
            status_callback: Called with (status_message, is_connected)
            serial_factory: Opens the port; swapped out in tests
        """
        self.config = config
        self.status_callback = status_callback
        self._serial_factory = serial_factory

        self.port: Optional[serial.Serial] = None
        self.connected = False
        self.running = False

        self.lines: queue.Queue[str] = queue.Queue()
        self._assembler = LineAssembler()
        self._io_lock = threading.Lock()
        self.worker_thread: Optional[threading.Thread] = None
        self._stopped = False

    def start(self) -> None:
        """Start the reader thread"""
        if self.running:
            return
        self.running = True
        with self._io_lock:
            self._stopped = False
        self.worker_thread = threading.Thread(target=self._worker_loop, name="SerialLineSource",
                                              daemon=True)
        self.worker_thread.start()
        log_event("INFO", "Serial", "Started")

    def stop(self) -> None:
        """Stop the reader thread and close the port"""
        self.running = False
        with self._io_lock:
            self._stopped = True
        if self.worker_thread is not None:
            self.worker_thread.join(timeout=1.0)
            self.worker_thread = None
        self.disconnect()
        log_event("INFO", "Serial", "Stopped")

    def connect(self) -> bool:
        """Open the configured (or auto-detected) port."""
        if self.connected:
            return True

        device = self.config.port or find_serial_port()
        if not device:
            self._notify_status("No serial port found", False)
            log_event("WARN", "Serial", "No serial port found")
            return False

        try:
            port = self._serial_factory(device, self.config.baud_rate,
                                        timeout=self.config.read_timeout)
            port.reset_input_buffer()
        except (serial.SerialException, OSError) as e:
            self._notify_status(f"Connection failed: {e}", False)
            log_event("ERROR", "Serial", "Connection failed", port=device, error=e)
            return False

        with self._io_lock:
            # stop() may have run while the port was opening
            stopped = self._stopped
            if not stopped:
                self.port = port
                self._assembler.clear()
                self.connected = True
        if stopped:
            try:
                port.close()
            except (serial.SerialException, OSError) as e:
                log_event("WARN", "Serial", "Close failed", error=e)
            log_event("DEBUG", "Serial", "Stopped while connecting", port=device)
            return False
        self._notify_status(f"Connected to {device}", True)
        log_event("INFO", "Serial", "Connected", port=device, baud=self.config.baud_rate)
        return True

    def disconnect(self) -> None:
        with self._io_lock:
            port = self.port
            self.port = None
            self.connected = False
        if port is not None:
            try:
                port.close()
            except (serial.SerialException, OSError) as e:
                log_event("WARN", "Serial", "Close failed", error=e)
            self._notify_status("Disconnected", False)
            log_event("INFO", "Serial", "Disconnected")

    def read_available(self) -> int:
        """Read whatever bytes are waiting and queue complete lines.

        Returns the number of lines queued. Called from the worker thread.
        """
        with self._io_lock:
            port = self.port
        if port is None:
            return 0
        try:
            waiting = port.in_waiting
            data = port.read(waiting or 1)
        except (serial.SerialException, OSError) as e:
            log_event("ERROR", "Serial", "Read error", error=e)
            self.disconnect()
            return 0
        if not data:
            return 0
        lines = self._assembler.feed(data)
        for line in lines:
            self.lines.put(line)
        return len(lines)

    def drain_lines(self) -> list[str]:
        """Return every line received so far, never blocking."""
        drained = []
        while True:
            try:
                drained.append(self.lines.get_nowait())
            except queue.Empty:
                return drained

    def _worker_loop(self) -> None:
        """Background reader with reconnect"""
        next_attempt = 0.0
        while self.running:
            if not self.connected:
                if not self.config.auto_connect:
                    time.sleep(0.1)
                    continue
                now = time.monotonic()
                if now >= next_attempt:
                    if not self.connect():
                        next_attempt = now + self.config.reconnect_delay_ms / 1000.0
                else:
                    time.sleep(0.1)
                continue
            self.read_available()

    def _notify_status(self, message: str, connected: bool) -> None:
        """Notify status callback"""
        if self.status_callback:
            self.status_callback(message, connected)
