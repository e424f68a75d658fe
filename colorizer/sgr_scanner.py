"""Recognizer for ANSI SGR escape sequences (``ESC [ ... m``) in byte buffers.

Two policies decide what counts as a sequence:

* ``CLEAN_ALL`` accepts anything shaped like SGR: digits and ``;`` between
  ``ESC [`` and ``m``.
* ``CLEAN`` accepts only sequences built from a sole reset (``0``), a chain
  of single attribute codes (``1``..``9``) and one terminating foreground
  (``30``..``37``, ``39``) code, or a sole background (``40``..``47``,
  ``49``) code. Anything else is left in place as literal text.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

from colorize_errors import InvalidEscapePolicy

ESC = 0x1B
_BRACKET = ord("[")
_SEMICOLON = ord(";")
_M = ord("m")
_DIGITS = frozenset(b"0123456789")

_SGR_RE = re.compile(rb"\x1b\[[0-9;]*m")
_MAX_PARAM_DIGITS = 2


class CleanPolicy(enum.Enum):
    CLEAN = "clean"
    CLEAN_ALL = "clean-all"


@dataclass(frozen=True)
class EscapeSpan:
    start: int
    end: int


def _is_fg(value: int) -> bool:
    return 30 <= value <= 37 or value == 39


def _is_bg(value: int) -> bool:
    return 40 <= value <= 47 or value == 49


def _scan_clean(buffer: bytes, pos: int) -> EscapeSpan | None:
    size = len(buffer)
    i = pos + 2
    iteration = 0
    prev_attr_iteration = 0
    while True:
        iteration += 1
        start = i
        while i < size and buffer[i] in _DIGITS:
            i += 1
        digits = i - start
        if digits == 0 or digits > _MAX_PARAM_DIGITS or i >= size:
            return None
        value = int(buffer[start:i])
        terminator = buffer[i]
        if terminator == _M:
            if value == 0:
                valid = iteration == 1
            elif _is_fg(value):
                valid = True
            elif _is_bg(value):
                valid = iteration == 1
            else:
                valid = False
            return EscapeSpan(pos, i + 1) if valid else None
        if (
            terminator == _SEMICOLON
            and 1 <= value <= 9
            and iteration - prev_attr_iteration == 1
        ):
            prev_attr_iteration = iteration
            i += 1
            continue
        return None


def scan_sgr(buffer: bytes, pos: int, policy: CleanPolicy) -> EscapeSpan | None:
    """Return the span of the SGR sequence starting at *pos*, if any."""
    if not isinstance(policy, CleanPolicy):
        raise InvalidEscapePolicy(f"unknown escape policy {policy!r}")
    if pos + 1 >= len(buffer) or buffer[pos] != ESC or buffer[pos + 1] != _BRACKET:
        return None
    if policy is CleanPolicy.CLEAN_ALL:
        match = _SGR_RE.match(buffer, pos)
        return EscapeSpan(pos, match.end()) if match else None
    return _scan_clean(buffer, pos)


def find_spans(buffer: bytes, policy: CleanPolicy) -> list[EscapeSpan]:
    """Collect the recognized sequences of *buffer*, left to right."""
    spans: list[EscapeSpan] = []
    pos = buffer.find(ESC)
    while pos != -1:
        span = scan_sgr(buffer, pos, policy)
        if span is None:
            pos = buffer.find(ESC, pos + 1)
        else:
            spans.append(span)
            pos = buffer.find(ESC, span.end)
    return spans


def strip_sgr(buffer: bytes, policy: CleanPolicy) -> bytes:
    """Drop recognized sequences and keep every other byte unchanged."""
    spans = find_spans(buffer, policy)
    if not spans:
        return buffer
    parts: list[bytes] = []
    last = 0
    for span in spans:
        parts.append(buffer[last:span.start])
        last = span.end
    parts.append(buffer[last:])
    return b"".join(parts)
