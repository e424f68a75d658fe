"""Foreground/background color tables and color selection.

Each table starts with "none" (no SGR code) and ends with "default"; the
entries in between are the cyclable colors used by random picks and
rainbow mode.
"""

from __future__ import annotations

import enum
import random
import time
from dataclasses import dataclass
from typing import Iterable

from colorize_errors import UnknownColor


class Channel(enum.IntEnum):
    FOREGROUND = 0
    BACKGROUND = 1

    @property
    def desc(self) -> str:
        return "foreground" if self is Channel.FOREGROUND else "background"


@dataclass(frozen=True)
class ColorEntry:
    name: str
    code: str | None
    index: int


_NAMES = (
    "none", "black", "red", "green", "yellow",
    "blue", "magenta", "cyan", "white", "default",
)


def _build_table(base: int) -> tuple[ColorEntry, ...]:
    entries = [ColorEntry("none", None, 0)]
    for i, name in enumerate(_NAMES[1:-1], start=1):
        entries.append(ColorEntry(name, f"{base + i - 1}m", i))
    entries.append(ColorEntry("default", f"{base + 9}m", len(_NAMES) - 1))
    return tuple(entries)


FOREGROUND_COLORS = _build_table(30)
BACKGROUND_COLORS = _build_table(40)

_TABLES = {
    Channel.FOREGROUND: FOREGROUND_COLORS,
    Channel.BACKGROUND: BACKGROUND_COLORS,
}

_rng: random.Random | None = None


def table(channel: Channel) -> tuple[ColorEntry, ...]:
    return _TABLES[channel]


def max_cyclable_index(channel: Channel) -> int:
    return len(_TABLES[channel]) - 2


def lookup(name: str, channel: Channel) -> ColorEntry:
    """Find a color by name (case-insensitive) in the channel's table."""
    wanted = name.lower()
    for entry in _TABLES[channel]:
        if entry.name == wanted:
            return entry
    raise UnknownColor(name, channel.desc)


def _default_rng() -> random.Random:
    global _rng
    if _rng is None:
        _rng = random.Random(time.time_ns())
    return _rng


def pick_random(
    channel: Channel,
    exclude: Iterable[str] = (),
    rng: random.Random | None = None,
) -> ColorEntry:
    """Draw a cyclable color uniformly, skipping names in *exclude*.

    At most two names are ever excluded, which leaves at least six of the
    eight cyclable colors to draw from.
    """
    rng = rng or _default_rng()
    excluded = {name.lower() for name in exclude if name}
    entries = _TABLES[channel]
    while True:
        entry = entries[rng.randint(1, len(entries) - 2)]
        if entry.name not in excluded:
            return entry


@dataclass(frozen=True)
class ColorSelection:
    foreground: ColorEntry
    background: ColorEntry | None = None

    def entry(self, channel: Channel) -> ColorEntry | None:
        return self.foreground if channel is Channel.FOREGROUND else self.background

    def other(self, channel: Channel) -> ColorEntry | None:
        return self.background if channel is Channel.FOREGROUND else self.foreground

    def replace(self, channel: Channel, entry: ColorEntry) -> ColorSelection:
        if channel is Channel.FOREGROUND:
            selection = ColorSelection(entry, self.background)
        else:
            selection = ColorSelection(self.foreground, entry)
        return selection.normalized()

    def normalized(self) -> ColorSelection:
        # A background code needs a foreground code to be reset properly.
        if self.foreground.code is None and self.background and self.background.code:
            return ColorSelection(lookup("default", Channel.FOREGROUND), self.background)
        return self
