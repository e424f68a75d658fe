"""Write logical lines to the output, colorized or cleaned."""

from __future__ import annotations

import enum
from typing import BinaryIO, Iterable

from ansi_colors import Channel, ColorSelection
from colorize_errors import WriteError
from rainbow import RainbowCycler
from sgr_scanner import CleanPolicy, strip_sgr
from stream_reader import Line, LineEnding

RESET = b"\x1b[0m"


class Mode(enum.Enum):
    PLAIN = "plain"
    CLEAN = "clean"
    CLEAN_ALL = "clean-all"
    RAINBOW_FG = "rainbow-fg"
    RAINBOW_BG = "rainbow-bg"

    @property
    def policy(self) -> CleanPolicy | None:
        return _POLICIES.get(self)

    @property
    def rainbow_channel(self) -> Channel | None:
        return _RAINBOW_CHANNELS.get(self)


_POLICIES = {
    Mode.CLEAN: CleanPolicy.CLEAN,
    Mode.CLEAN_ALL: CleanPolicy.CLEAN_ALL,
}

_RAINBOW_CHANNELS = {
    Mode.RAINBOW_FG: Channel.FOREGROUND,
    Mode.RAINBOW_BG: Channel.BACKGROUND,
}


def wrap_line(text: bytes, selection: ColorSelection, attrs: str = "") -> bytes:
    """Surround *text* with the SGR sequences for *selection*.

    *attrs* is a ready-made ``;``-terminated attribute prefix such as
    ``"1;4;"``.
    """
    out = b""
    background = selection.background
    if background is not None and background.code:
        out += b"\x1b[" + background.code.encode("ascii")
    foreground = selection.foreground
    if foreground.code:
        prefix = (attrs + foreground.code).encode("ascii")
        return out + b"\x1b[" + prefix + text + RESET
    return out + text


class LineRenderer:
    def __init__(
        self,
        output: BinaryIO,
        selection: ColorSelection | None = None,
        attrs: str = "",
        mode: Mode = Mode.PLAIN,
        omit_color_empty: bool = False,
        rainbow: RainbowCycler | None = None,
    ) -> None:
        if mode.policy is None and selection is None:
            raise ValueError(f"{mode.value} mode needs a color selection")
        channel = mode.rainbow_channel
        if channel is not None and rainbow is None:
            rainbow = RainbowCycler(channel)
        self._output = output
        self.selection = selection
        self.attrs = attrs
        self.mode = mode
        self.omit_color_empty = omit_color_empty
        self.rainbow = rainbow if channel is not None else None

    def _colorize(self, line: Line) -> bytes:
        if not line.text and self.omit_color_empty:
            return line.text
        selection = self.selection
        if selection is None:
            raise ValueError(f"{self.mode.value} mode needs a color selection")
        if self.rainbow is not None:
            entry = self.rainbow.next_entry(selection, partial=line.partial)
            selection = selection.replace(self.rainbow.channel, entry)
        return wrap_line(line.text, selection, self.attrs)

    def render(self, line: Line) -> None:
        policy = self.mode.policy
        if policy is not None:
            text = strip_sgr(line.text, policy)
        else:
            text = self._colorize(line)
        self._write(text + line.ending.as_bytes())
        if line.ending & LineEnding.LF:
            self._flush()

    def render_all(self, lines: Iterable[Line]) -> None:
        for line in lines:
            self.render(line)
        self._flush()

    def _write(self, data: bytes) -> None:
        if not data:
            return
        try:
            written = self._output.write(data)
        except BrokenPipeError:
            raise
        except OSError as exc:
            raise WriteError(f"write failed: {exc.strerror or exc}") from exc
        if written is not None and written != len(data):
            raise WriteError(f"less than {len(data)} bytes written")

    def _flush(self) -> None:
        try:
            self._output.flush()
        except BrokenPipeError:
            raise
        except OSError as exc:
            raise WriteError(f"flush failed: {exc.strerror or exc}") from exc
