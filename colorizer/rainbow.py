"""Per-line color cycling for ``--rainbow-fg`` and ``--rainbow-bg``."""

from __future__ import annotations

from ansi_colors import Channel, ColorEntry, ColorSelection, max_cyclable_index, table


class RainbowCycler:
    """Hands out the next cyclable color index for one channel.

    The counter is seeded from the channel's current color on first use and
    advances once per terminated line. Partial lines reuse the same index so
    a line split across reads keeps a single color.
    """

    def __init__(self, channel: Channel) -> None:
        self.channel = channel
        self._index = 0

    def next_index(self, selection: ColorSelection, partial: bool = False) -> int:
        last = max_cyclable_index(self.channel)
        if self._index == 0:
            entry = selection.entry(self.channel)
            self._index = entry.index if entry is not None and entry.index else 1
        if self._index > last:
            self._index = 1

        candidate = self._index
        other = selection.other(self.channel)
        if other is not None:
            # Only one other index can collide, so two probes always suffice.
            for _ in range(2):
                if candidate != other.index:
                    break
                candidate = candidate + 1 if candidate < last else 1

        if not partial:
            self._index = candidate + 1
        return candidate

    def next_entry(self, selection: ColorSelection, partial: bool = False) -> ColorEntry:
        return table(self.channel)[self.next_index(selection, partial)]
