from dataclasses import dataclass

from channel_router import RouterState

_GAIN_UP_KEYS = frozenset("+=")
_GAIN_DOWN_KEYS = frozenset("-_")


@dataclass(frozen=True)
class PanelDescriptor:
    channel: int
    row: int
    column: int
    title: str


def gain_steps_for_key(key_text: str) -> int:
    """Map a released key to gain steps: +1, -1, or 0 when the key is not a gain key."""
    if not key_text:
        return 0
    if key_text in _GAIN_UP_KEYS:
        return 1
    if key_text in _GAIN_DOWN_KEYS:
        return -1
    return 0


def panel_descriptors(channel_count: int, columns: int = 2) -> list[PanelDescriptor]:
    """Grid placement for each channel, filled row by row."""
    columns = max(1, int(columns))
    return [
        PanelDescriptor(
            channel=ch,
            row=ch // columns,
            column=ch % columns,
            title=f"Mic # {ch + 1}",
        )
        for ch in range(channel_count)
    ]


def recording_status_text(state: RouterState, gain: float) -> str:
    """Status bar text for the current routing state and gain."""
    mode = "● Recording" if state.recording_enabled else "■ Idle"
    return f"{mode} | channel {state.active_channel + 1} | gain {gain:+.0f} dB"


def average_label(value: float) -> str:
    return f"{value:.2f}"
