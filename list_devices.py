#!/usr/bin/env python3
"""List audio input devices and serial ports"""
from serial.tools import list_ports

try:
    import sounddevice as sd
except Exception:  # PortAudio missing or unloadable
    sd = None


def input_devices() -> list[tuple[int, dict]]:
    """(index, info) for every device that can record."""
    if sd is None:
        return []
    return [(i, d) for i, d in enumerate(sd.query_devices()) if d['max_input_channels'] > 0]


def print_devices() -> None:
    print("Available Audio Inputs:\n")
    if sd is None:
        print("    sounddevice is not available\n")
    for i, d in input_devices():
        print(f"[{i}] {d['name']}")
        print(f"    Input: {d['max_input_channels']} channels")
        print(f"    Default SR: {d['default_samplerate']} Hz")
        print()

    print("Serial Ports:\n")
    ports = list(list_ports.comports())
    if not ports:
        print("    none found\n")
    for p in ports:
        print(f"{p.device}")
        print(f"    {p.description}")
        print()


if __name__ == "__main__":
    print_devices()
