"""Option resolution: configuration file, color strings and attributes."""

from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from ansi_colors import Channel, ColorSelection, lookup, pick_random
from colorize_errors import ConfigError
from line_renderer import Mode
from stream_reader import DEFAULT_BUFFER_SIZE, MAX_BUFFER_SIZE

logger = logging.getLogger(__name__)

CONFIG_FILE = Path.home() / ".colorize.conf"

# Declaration order is the emission order.
ATTRIBUTES: dict[str, int] = {
    "bold": 1,
    "underscore": 4,
    "blink": 5,
    "reverse": 7,
    "concealed": 8,
}

_STRING_KEYS = {"attr", "color", "exclude-random"}
_BOOL_KEYS = {"omit-color-empty", "rainbow-fg", "rainbow-bg"}
_TRUE = {"yes", "true", "on", "1"}
_FALSE = {"no", "false", "off", "0"}


def load_config(path: Path, required: bool = False) -> dict[str, Any]:
    """Parse ``name = value`` lines into option values keyed like RunOptions."""
    values: dict[str, Any] = {}
    if not path.exists():
        if required:
            raise ConfigError(f"config file '{path}' does not exist")
        return values
    if not path.is_file():
        raise ConfigError(f"config file '{path}' is not a regular file")

    for lineno, raw_line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            raise ConfigError(f"{path}:{lineno}: option line without '='")
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("'").strip('"')
        if key in _BOOL_KEYS:
            values[key.replace("-", "_")] = _parse_bool(value, f"{path}:{lineno}: {key}")
        elif key in _STRING_KEYS:
            if not value:
                raise ConfigError(f"{path}:{lineno}: {key} requires a value")
            values[key.replace("-", "_")] = value
        else:
            raise ConfigError(f"{path}:{lineno}: unknown option '{key}'")
    logger.debug("loaded %d option(s) from %s", len(values), path)
    return values


def _parse_bool(value: str, where: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{where}: '{value}' is not a boolean (use yes or no)")


def parse_attrs(value: str | None, bold: bool = False) -> str:
    """Build the ``;``-terminated attribute prefix, e.g. ``"1;4;"``."""
    chosen: set[str] = {"bold"} if bold else set()
    if value:
        seen: set[str] = set()
        for name in value.split(","):
            name = name.strip().lower()
            if name not in ATTRIBUTES:
                raise ConfigError(f"attribute '{name}' not recognized")
            if name in seen:
                raise ConfigError(f"attribute '{name}' has already been provided")
            seen.add(name)
        chosen |= seen
    return "".join(f"{code};" for name, code in ATTRIBUTES.items() if name in chosen)


def parse_color_string(color: str) -> tuple[list[str], bool]:
    """Split ``fg[/bg]`` into lowercased names and the bold flag.

    An upper case first letter on the foreground requests bold.
    """
    if color == "-":
        raise ConfigError("hyphen must be preceded by color string")
    if "/" in color:
        fg_part, _, bg_part = color.partition("/")
        if not fg_part:
            raise ConfigError("foreground color missing")
        if not bg_part:
            raise ConfigError("background color missing")
        if "/" in bg_part:
            raise ConfigError("one color pair allowed only")
        parts = [fg_part, bg_part]
    else:
        parts = [color]

    bold = False
    names: list[str] = []
    for channel, part in zip(Channel, parts):
        if not (part.isascii() and part.isalpha()):
            raise ConfigError(
                f"{channel.desc} color '{part}' cannot be made of non-alphabetic characters"
            )
        if part[1:] and not part[1:].islower():
            raise ConfigError(f"{channel.desc} color '{part}' cannot be in mixed lower/upper case")
        if part == "None":
            raise ConfigError(f"{channel.desc} color '{part}' cannot be bold")
        if part[0].isupper():
            if channel is Channel.BACKGROUND:
                raise ConfigError(f"{channel.desc} color '{part}' cannot be bold")
            bold = True
        names.append(part.lower())
    return names, bold


def resolve_selection(
    names: list[str],
    exclude_random: str | None = None,
    rng: random.Random | None = None,
) -> ColorSelection:
    """Turn parsed color names into table entries, drawing random ones."""
    fg_name = names[0]
    bg_name = names[1] if len(names) > 1 else None

    if bg_name is not None:
        pairs = ((Channel.FOREGROUND, fg_name, bg_name), (Channel.BACKGROUND, bg_name, fg_name))
        for channel, name, other in pairs:
            if name == "random" and other in ("none", "default"):
                raise ConfigError(
                    f"{channel.desc} color 'random' cannot be combined with '{other}'"
                )

    if fg_name == "random":
        foreground = pick_random(Channel.FOREGROUND, [exclude_random or "", bg_name or ""], rng)
    else:
        foreground = lookup(fg_name, Channel.FOREGROUND)

    background = None
    if bg_name == "random":
        background = pick_random(Channel.BACKGROUND, [foreground.name], rng)
    elif bg_name is not None:
        background = lookup(bg_name, Channel.BACKGROUND)

    selection = ColorSelection(foreground, background).normalized()
    logger.debug("resolved colors %s/%s", selection.foreground.name,
                 selection.background.name if selection.background else "-")
    return selection


class RunOptions(BaseModel):
    color: Optional[str] = None
    attr: Optional[str] = None
    exclude_random: Optional[str] = None
    clean: bool = False
    clean_all: bool = False
    omit_color_empty: bool = False
    rainbow_fg: bool = False
    rainbow_bg: bool = False
    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, ge=1, le=MAX_BUFFER_SIZE)

    @model_validator(mode="after")
    def check_conflicts(self):
        if self.clean and self.clean_all:
            raise ValueError("--clean and --clean-all switch are mutually exclusive")
        if self.rainbow_fg and self.rainbow_bg:
            raise ValueError("--rainbow-fg and --rainbow-bg switch are mutually exclusive")
        if self.clean or self.clean_all:
            switch = "--clean" if self.clean else "--clean-all"
            for option, used in (
                ("--attr", self.attr),
                ("--exclude-random", self.exclude_random),
                ("--omit-color-empty", self.omit_color_empty),
                ("--rainbow-fg", self.rainbow_fg),
                ("--rainbow-bg", self.rainbow_bg),
            ):
                if used:
                    raise ValueError(f"{switch} and {option} switch are mutually exclusive")
        elif not self.color:
            raise ValueError("color string required")
        if self.exclude_random:
            if self.exclude_random.lower() == "random":
                raise ValueError("--exclude-random switch must be provided a color")
            lookup(self.exclude_random, Channel.FOREGROUND)
        return self

    @property
    def mode(self) -> Mode:
        if self.clean:
            return Mode.CLEAN
        if self.clean_all:
            return Mode.CLEAN_ALL
        if self.rainbow_fg:
            return Mode.RAINBOW_FG
        if self.rainbow_bg:
            return Mode.RAINBOW_BG
        return Mode.PLAIN


def _error_message(exc: ValidationError) -> str:
    error = exc.errors()[0]
    msg = str(error.get("msg", exc))
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    loc = ".".join(str(part) for part in error.get("loc", ()))
    return f"{loc.replace('_', '-')}: {msg}" if loc else msg


def build_options(cli_values: dict[str, Any], file_values: dict[str, Any]) -> RunOptions:
    """Merge config file values with command line values; the latter win.

    Every config file option concerns coloring, so clean modes skip them.
    """
    if cli_values.get("clean") or cli_values.get("clean_all"):
        if file_values:
            logger.debug("ignoring config file options in clean mode")
        file_values = {}
    merged = dict(file_values)
    merged.update({key: value for key, value in cli_values.items() if value is not None})
    try:
        return RunOptions(**merged)
    except ValidationError as exc:
        raise ConfigError(_error_message(exc)) from exc
