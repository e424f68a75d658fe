"""Chunked line reader that keeps line endings and SGR sequences intact.

Input is read ``buffer_size`` bytes at a time and split into logical lines
on LF, CR or CRLF. A CR at the very end of a read is held back until the
next read shows whether an LF follows it. Unterminated tails are carried
into the next read; in clean modes a tail ending in a truncated escape
sequence is completed byte by byte from the stream instead.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import BinaryIO, Iterator

from colorize_errors import ReadError

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 4096
MAX_BUFFER_SIZE = 65536

_CR = 0x0D
_LF = 0x0A
_EOL_RE = re.compile(rb"[\r\n]")
_PARTIAL_SGR_RE = re.compile(rb"\x1b(?:\[[0-9;]*)?\Z")
_SGR_PARAM_BYTES = frozenset(b"0123456789;")


class LineEnding(enum.IntFlag):
    NONE = 0
    LF = 0x01
    CR = 0x02

    def as_bytes(self) -> bytes:
        out = b""
        if self & LineEnding.CR:
            out += b"\r"
        if self & LineEnding.LF:
            out += b"\n"
        return out


CRLF = LineEnding.CR | LineEnding.LF


@dataclass
class Line:
    text: bytes
    ending: LineEnding = LineEnding.NONE
    # Flushed before its terminator was seen; more of the line follows.
    partial: bool = False


class PushbackStream:
    """Binary stream wrapper with a single byte of pushback."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._pushed = b""

    def _read_raw(self, size: int) -> bytes:
        try:
            data = self._stream.read(size)
        except OSError as exc:
            raise ReadError(f"read failed: {exc.strerror or exc}") from exc
        if data is None:
            raise ReadError(f"less than {size} bytes read")
        return data

    def read(self, size: int) -> bytes:
        if size <= 0:
            return b""
        if not self._pushed:
            return self._read_raw(size)
        head, self._pushed = self._pushed, b""
        if size == 1:
            return head
        return head + self._read_raw(size - 1)

    def getc(self) -> bytes:
        return self.read(1)

    def ungetc(self, ch: bytes) -> None:
        if self._pushed:
            raise RuntimeError("only one byte of pushback is supported")
        if len(ch) != 1:
            raise ValueError(f"expected a single byte, got {ch!r}")
        self._pushed = ch


def _incomplete_escape_start(tail: bytes) -> int | None:
    """Offset of a truncated ``ESC [ <digits/;>`` sequence ending *tail*."""
    match = _PARTIAL_SGR_RE.search(tail)
    return match.start() if match else None


class StreamReader:
    """Iterate over the logical lines of a binary stream.

    Not restartable: the underlying stream is consumed as lines are yielded.
    """

    def __init__(
        self,
        stream: BinaryIO,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        complete_escapes: bool = False,
    ) -> None:
        if not 1 <= buffer_size <= MAX_BUFFER_SIZE:
            raise ValueError(f"buffer size must be between 1 and {MAX_BUFFER_SIZE}")
        if isinstance(stream, PushbackStream):
            self._stream = stream
        else:
            self._stream = PushbackStream(stream)
        self._buffer_size = buffer_size
        self._complete_escapes = complete_escapes

    def __iter__(self) -> Iterator[Line]:
        pending = b""
        eof = False
        while not eof:
            chunk = self._stream.read(self._buffer_size)
            eof = self._at_eof(chunk)
            data = pending + chunk if pending else chunk
            pending = b""

            pos = 0
            size = len(data)
            while pos < size:
                match = _EOL_RE.search(data, pos)
                if match is None:
                    break
                eol = match.start()
                if data[eol] == _LF:
                    ending = LineEnding.LF
                elif eol + 1 < size:
                    ending = CRLF if data[eol + 1] == _LF else LineEnding.CR
                elif eof:
                    ending = LineEnding.CR
                else:
                    # CR is the last byte read; the next read decides CR vs CRLF.
                    break
                yield Line(data[pos:eol], ending)
                pos = eol + (2 if ending == CRLF else 1)

            tail = data[pos:]
            if not tail:
                continue
            if eof:
                yield Line(tail, LineEnding.NONE)
                continue
            if self._complete_escapes:
                esc = _incomplete_escape_start(tail)
                if esc is not None:
                    completed, pulled = self.complete_part_line(tail[esc + 1:])
                    if completed:
                        logger.debug("completed escape sequence %r from stream", tail[esc:] + pulled)
                        yield Line(tail[:esc], LineEnding.NONE, partial=True)
                        yield Line(tail[esc:] + pulled, LineEnding.NONE, partial=True)
                        continue
                    tail += pulled
            if len(tail) >= self._buffer_size and tail[-1] != _CR:
                logger.debug("flushing %d byte unterminated line", len(tail))
                yield Line(tail, LineEnding.NONE, partial=True)
            else:
                pending = tail

    def _at_eof(self, chunk: bytes) -> bool:
        """Tell a short read at end of input from one that lost data.

        A short chunk is confirmed as EOF by one more read, which must come
        back empty.
        """
        if len(chunk) == self._buffer_size:
            return False
        if chunk and self._stream.read(self._buffer_size):
            raise ReadError(f"less than {self._buffer_size} bytes read")
        return True

    def complete_part_line(self, lookahead: bytes) -> tuple[bool, bytes]:
        """Read the rest of an escape sequence cut off by the end of a read.

        *lookahead* holds the bytes already buffered after the ESC; they were
        validated by the caller and are never pushed back. Returns whether a
        terminating ``m`` was reached and the bytes pulled from the stream.
        A pulled byte that does not belong to the sequence is pushed back.
        """
        pulled = bytearray()
        need_bracket = not lookahead
        while True:
            ch = self._stream.getc()
            if not ch:
                break
            if need_bracket:
                fits = ch == b"["
                need_bracket = False
            else:
                fits = ch == b"m" or ch[0] in _SGR_PARAM_BYTES
            if not fits:
                logger.debug("pushing back %r after incomplete escape sequence", ch)
                self._stream.ungetc(ch)
                break
            pulled += ch
            if ch == b"m":
                return True, bytes(pulled)
        return False, bytes(pulled)
