"""
multispectrum - Channel Router
Parses ``CODE,CHANNEL`` command lines from the serial link and tracks which
channel is being recorded.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from logging_utils import log_event

CODE_STOP = "s"
CODE_RECORD = "e"

_TRAILING_NON_DIGITS = re.compile(r"\D+$")
# Optional sign and ASCII digits only; no spaces or underscores
_CHANNEL_FIELD = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class RouterState:
    """Which channel the live input goes to, and whether it is being copied."""
    active_channel: int = 0
    recording_enabled: bool = False


@dataclass(frozen=True)
class RouterCommand:
    code: str
    channel: int


def parse_command(line) -> Optional[RouterCommand]:
    """Parse one ``CODE,CHANNEL<term>`` line.

    Returns None for anything that is not exactly two comma-separated fields
    with an integer channel. The code is not checked here.
    """
    if isinstance(line, (bytes, bytearray)):
        line = line.decode("ascii", errors="replace")
    if not isinstance(line, str):
        return None

    fields = line.split(",")
    if len(fields) != 2:
        return None

    code = fields[0].strip()
    payload = _TRAILING_NON_DIGITS.sub("", fields[1])
    if not _CHANNEL_FIELD.fullmatch(payload):
        return None
    return RouterCommand(code=code, channel=int(payload))


class ChannelRouter:
    """
    Command-driven routing state.
    ``s,N`` stops recording and selects N; ``e,N`` starts recording into N.
    Malformed lines, unknown codes and out-of-range channels leave the state
    untouched.
    """

    def __init__(self, channel_count: int, initial: RouterState | None = None):
        if channel_count < 1:
            raise ValueError(f"channel_count must be >= 1, got {channel_count}")
        self.channel_count = int(channel_count)
        state = initial or RouterState()
        if not 0 <= state.active_channel < self.channel_count:
            raise ValueError(f"initial channel {state.active_channel} out of range")
        self._state = state

    @property
    def state(self) -> RouterState:
        return self._state

    @property
    def active_channel(self) -> int:
        return self._state.active_channel

    @property
    def recording_enabled(self) -> bool:
        return self._state.recording_enabled

    def apply_command(self, command: RouterCommand) -> bool:
        """Apply a parsed command. Returns True if it was accepted."""
        if command.code == CODE_STOP:
            recording = False
        elif command.code == CODE_RECORD:
            recording = True
        else:
            log_event("DEBUG", "Router", "Ignoring unknown code", code=command.code)
            return False

        if not 0 <= command.channel < self.channel_count:
            log_event("DEBUG", "Router", "Ignoring out-of-range channel",
                      code=command.code, channel=command.channel)
            return False

        # Replaced whole so readers never see a half-applied command
        self._state = RouterState(active_channel=command.channel, recording_enabled=recording)
        log_event("INFO", "Router", "action", code=command.code, channel=command.channel)
        return True

    def apply_line(self, line) -> bool:
        command = parse_command(line)
        if command is None:
            log_event("DEBUG", "Router", "Discarding malformed line", line=repr(line))
            return False
        return self.apply_command(command)

    def apply_lines(self, lines: Iterable) -> int:
        """Apply lines in order; returns how many were accepted."""
        return sum(1 for line in lines if self.apply_line(line))
