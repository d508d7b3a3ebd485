#!/usr/bin/env python3
"""
multispectrum - Multi-channel live spectrum analyzer

Runs a windowed FFT on live line-in audio for up to four microphone channels
and plots each spectrum in dB with a decaying peak-hold. An Arduino on the
serial port selects which channel is being recorded.
"""

import argparse
import cProfile
import sys
import time

from config import Config
from config_persistence import load_config, save_config
from logging_utils import log_event, set_log_level


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the multi-channel spectrum analyzer")
    parser.add_argument("--port", help="Serial port of the channel switcher (auto-detected when omitted)")
    parser.add_argument("--baud", type=int, help="Serial baud rate (default: 57600)")
    parser.add_argument("--no-serial", action="store_true", help="Run without the serial command link")
    parser.add_argument("--device", type=int, help="Audio input device index (see --list-devices)")
    parser.add_argument("--demo", action="store_true", help="Use a synthetic audio source")
    parser.add_argument("--channels", type=int, help="Number of microphone channels")
    parser.add_argument("--fps", type=int, help="Processing/render ticks per second")
    parser.add_argument("--log-level", help="DEBUG/INFO/WARNING/ERROR")
    parser.add_argument("--list-devices", action="store_true",
                        help="List audio devices and serial ports, then exit")
    parser.add_argument("--save-config", action="store_true",
                        help="Persist the effective settings to the config file")
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Enable cProfile and save stats to --profile-out",
    )
    parser.add_argument(
        "--profile-out",
        default="profile.prof",
        help="Path to save cProfile stats (default: profile.prof)",
    )
    return parser


def apply_cli_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Overlay command-line options onto a loaded config."""
    if args.port:
        config.serial.port = args.port
    if args.baud is not None:
        config.serial.baud_rate = args.baud
    if args.no_serial:
        config.serial.enabled = False
    if args.device is not None:
        config.audio.device_index = args.device
    if args.demo:
        config.audio.demo = True
    if args.channels is not None:
        config.analyzer.channel_count = args.channels
    if args.fps is not None:
        config.display.fps = args.fps
    if args.log_level:
        config.log_level = args.log_level.upper()
    return config


def run_app(app_argv: list[str], config: Config) -> int:
    t_gui = time.perf_counter()
    from PyQt6.QtWidgets import QApplication

    from main import AnalyzerWindow

    app = QApplication(app_argv)
    app.setStyle("Fusion")
    log_event("INFO", "Startup", "GUI loaded", ms=f"{(time.perf_counter() - t_gui) * 1000:.0f}")

    window = AnalyzerWindow(config)
    window.show()
    return app.exec()


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    if args.list_devices:
        from list_devices import print_devices
        print_devices()
        return

    config = apply_cli_overrides(load_config(), args)
    set_log_level(config.log_level)
    if args.save_config:
        save_config(config)

    # Keep Qt argument list clean; avoid passing our flags downstream
    app_argv = [sys.argv[0]]

    if args.profile:
        profiler = cProfile.Profile()
        profiler.enable()
        exit_code = run_app(app_argv, config)
        profiler.disable()
        profiler.dump_stats(args.profile_out)
    else:
        exit_code = run_app(app_argv, config)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
