import unittest
from types import SimpleNamespace
from unittest import mock

import serial

import serial_link
from config import SerialConfig
from serial_link import LineAssembler, SerialLineSource, find_serial_port


class FakeSerial:
    def __init__(self, device, baud, timeout=None):
        self.device = device
        self.baud = baud
        self.timeout = timeout
        self.chunks: list[bytes] = []
        self.closed = False
        self.fail_reads = False

    @property
    def in_waiting(self):
        return len(self.chunks[0]) if self.chunks else 0

    def read(self, size=1):
        if self.fail_reads:
            raise serial.SerialException("device reports readiness to read but returned no data")
        return self.chunks.pop(0) if self.chunks else b""

    def reset_input_buffer(self):
        pass

    def close(self):
        self.closed = True


class TestLineAssembler(unittest.TestCase):
    def test_splits_on_newline(self):
        asm = LineAssembler()
        self.assertEqual(asm.feed(b"s,1\ne,2\n"), ["s,1\n", "e,2\n"])

    def test_holds_partial_line(self):
        asm = LineAssembler()
        self.assertEqual(asm.feed(b"e,"), [])
        self.assertEqual(asm.feed(b"3\r"), [])
        self.assertEqual(asm.feed(b"\ns"), ["e,3\r\n"])
        self.assertEqual(asm.feed(b",0\n"), ["s,0\n"])

    def test_drops_runaway_fragment(self):
        asm = LineAssembler(max_line_bytes=8)
        self.assertEqual(asm.feed(b"x" * 20), [])
        self.assertEqual(asm.feed(b"s,1\n"), ["s,1\n"])


class TestSerialLineSource(unittest.TestCase):
    def setUp(self):
        self.ports = []

        def factory(device, baud, timeout=None):
            port = FakeSerial(device, baud, timeout)
            self.ports.append(port)
            return port

        self.factory = factory
        self.status = []
        self.source = SerialLineSource(
            SerialConfig(port="/dev/ttyACM0", baud_rate=57600),
            status_callback=lambda msg, ok: self.status.append((msg, ok)),
            serial_factory=factory,
        )

    def test_connect_uses_config(self):
        self.assertTrue(self.source.connect())
        port = self.ports[0]
        self.assertEqual((port.device, port.baud, port.timeout), ("/dev/ttyACM0", 57600, 0.05))
        self.assertTrue(self.status[-1][1])

    def test_read_and_drain(self):
        self.source.connect()
        self.ports[0].chunks = [b"e,1\ns,", b"2\n"]

        self.assertEqual(self.source.read_available(), 1)
        self.assertEqual(self.source.read_available(), 1)
        self.assertEqual(self.source.drain_lines(), ["e,1\n", "s,2\n"])
        self.assertEqual(self.source.drain_lines(), [])

    def test_read_error_disconnects(self):
        self.source.connect()
        self.ports[0].fail_reads = True

        self.assertEqual(self.source.read_available(), 0)
        self.assertFalse(self.source.connected)
        self.assertTrue(self.ports[0].closed)
        self.assertEqual(self.status[-1], ("Disconnected", False))

    def test_connect_failure_reports_status(self):
        def failing(device, baud, timeout=None):
            raise serial.SerialException("could not open port")

        source = SerialLineSource(SerialConfig(port="/dev/ttyACM9"),
                                  status_callback=lambda msg, ok: self.status.append((msg, ok)),
                                  serial_factory=failing)
        self.assertFalse(source.connect())
        self.assertFalse(self.status[-1][1])

    def test_stop_during_connect_closes_new_port(self):
        def open_while_stopping(device, baud, timeout=None):
            port = self.factory(device, baud, timeout)
            self.source.stop()
            return port

        self.source._serial_factory = open_while_stopping
        self.assertFalse(self.source.connect())
        self.assertIsNone(self.source.port)
        self.assertFalse(self.source.connected)
        self.assertTrue(self.ports[0].closed)

    def test_restart_allows_connect_again(self):
        self.source.stop()
        self.source._worker_loop = lambda: None
        self.source.start()
        self.assertTrue(self.source.connect())
        self.source.stop()
        self.assertTrue(self.ports[0].closed)

    def test_no_port_found(self):
        source = SerialLineSource(SerialConfig(port=None), serial_factory=self.factory)
        with mock.patch.object(serial_link, "find_serial_port", return_value=None):
            self.assertFalse(source.connect())
        self.assertEqual(self.ports, [])


class TestFindSerialPort(unittest.TestCase):
    def test_prefers_arduino_like_port(self):
        ports = [
            SimpleNamespace(device="/dev/ttyS0", description="n/a"),
            SimpleNamespace(device="/dev/ttyACM0", description="Arduino Uno"),
        ]
        with mock.patch.object(serial_link.list_ports, "comports", return_value=ports):
            self.assertEqual(find_serial_port(), "/dev/ttyACM0")

    def test_falls_back_to_first_or_none(self):
        ports = [SimpleNamespace(device="/dev/ttyS0", description="n/a")]
        with mock.patch.object(serial_link.list_ports, "comports", return_value=ports):
            self.assertEqual(find_serial_port(), "/dev/ttyS0")
        with mock.patch.object(serial_link.list_ports, "comports", return_value=[]):
            self.assertIsNone(find_serial_port())


if __name__ == "__main__":
    unittest.main()
