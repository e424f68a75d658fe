"""Error kinds raised by the colorize core and its option layer."""

from __future__ import annotations


class ColorizeError(Exception):
    """Base class for every fatal colorize error."""


class ReadError(ColorizeError):
    """Reading from the input stream failed before EOF."""


class WriteError(ColorizeError):
    """Writing to the output stream failed or was short."""


class UnknownColor(ColorizeError, ValueError):
    def __init__(self, name: str, channel: str) -> None:
        super().__init__(f"{channel} color '{name}' not recognized")
        self.name = name
        self.channel = channel


class InvalidEscapePolicy(ColorizeError):
    """An escape policy outside the known set reached the scanner."""


class ConfigError(ColorizeError, ValueError):
    """Invalid option, color string or configuration file entry."""
