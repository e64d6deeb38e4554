"""Display metadata shared by labels, states and timeline entries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True)
class Chip:
    """A small colored tag rendered inline (state badge or label chip)."""

    text: str
    color: str
    background: str

    def to_dict(self) -> dict[str, str]:
        return {"text": self.text, "color": self.color, "background": self.background}


@dataclass(frozen=True)
class StateDisplay:
    label: str
    color: str
    background: str

    def chip(self) -> Chip:
        return Chip(text=self.label, color=self.color, background=self.background)


SAMPLE_STATE_DISPLAY: Final[dict[str, StateDisplay]] = {
    "RECEIVED":   StateDisplay("Recibida", "#3b82f6", "#eff6ff"),
    "PROCESSING": StateDisplay("En Proceso", "#f59e0b", "#fffbeb"),
    "READY":      StateDisplay("Lista", "#10b981", "#ecfdf5"),
    "DAMAGED":    StateDisplay("Insuficiente", "#ef4444", "#fef2f2"),
    "CANCELLED":  StateDisplay("Cancelada", "#6b7280", "#f3f4f6"),
}

_UNKNOWN_STATE_COLOR = "#6b7280"
_UNKNOWN_STATE_BACKGROUND = "#f3f4f6"

# (color, background tint) pairs offered when creating a label.
LABEL_COLOR_PRESETS: Final[tuple[tuple[str, str], ...]] = (
    ("#3b82f6", "#eff6ff"),
    ("#f59e0b", "#fffbeb"),
    ("#8b5cf6", "#f5f3ff"),
    ("#ec4899", "#fdf2f8"),
    ("#10b981", "#ecfdf5"),
    ("#ef4444", "#fef2f2"),
    ("#06b6d4", "#ecfeff"),
    ("#84cc16", "#f7fee7"),
    ("#6366f1", "#eef2ff"),
    ("#a855f7", "#faf5ff"),
    ("#f97316", "#fff7ed"),
    ("#14b8a6", "#f0fdfa"),
)

AVATAR_COLORS: Final[tuple[str, ...]] = (
    "#0f8b8d", "#3b82f6", "#8b5cf6", "#ec4899",
    "#f59e0b", "#10b981", "#ef4444", "#6366f1",
)


def state_display(state: str | None) -> StateDisplay:
    """Display metadata for a sample state; unknown states keep their raw name."""
    if state and state in SAMPLE_STATE_DISPLAY:
        return SAMPLE_STATE_DISPLAY[state]
    return StateDisplay(state or "?", _UNKNOWN_STATE_COLOR, _UNKNOWN_STATE_BACKGROUND)


def label_chip(name: str, color: str) -> Chip:
    """Chip for a label, using the preset tint when the color is a known preset."""
    for preset, background in LABEL_COLOR_PRESETS:
        if preset.lower() == color.lower():
            return Chip(text=name, color=color, background=background)
    return Chip(text=name, color=color, background=f"{color}20")


def initials(name: str | None, fallback: str = "U") -> str:
    """First and last word initials, upper-cased."""
    parts = (name or "").split()
    if not parts:
        return fallback
    first = parts[0][0].upper()
    last = parts[-1][0].upper() if len(parts) > 1 else ""
    return (first + last) or fallback


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def avatar_color(name: str) -> str:
    """Deterministic avatar background for a name.

    Uses the same string hash as the web client (32-bit shift over UTF-16
    code units) so both front ends pick the same color for a user.
    """
    encoded = name.encode("utf-16-le")
    h = 0
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        h = code_unit + (_to_int32(_to_int32(h) << 5) - h)
    return AVATAR_COLORS[abs(h) % len(AVATAR_COLORS)]


def mention(name: str, username: str | None = None) -> str:
    """``@handle`` for a user; falls back to the name without spaces."""
    handle = (username or "").strip() or "".join(name.split()).lower()
    return f"@{handle}"
