#!/usr/bin/env python3
"""Read text from standard input or a file and print it colorized, or cleaned
of existing color escape sequences."""

from __future__ import annotations

import argparse
import logging
import os
import stat
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator

from ansi_colors import FOREGROUND_COLORS
from colorize_config import (
    ATTRIBUTES,
    CONFIG_FILE,
    RunOptions,
    build_options,
    load_config,
    parse_attrs,
    parse_color_string,
    resolve_selection,
)
from colorize_errors import ColorizeError, ConfigError, ReadError
from line_renderer import LineRenderer
from stream_reader import DEFAULT_BUFFER_SIZE, StreamReader

VERSION = "0.66"

logger = logging.getLogger("colorize")


def _color_legend() -> str:
    lines = ["Colors (foreground) (background):"]
    for entry in FOREGROUND_COLORS:
        name = entry.name
        if entry.code:
            sample = f"\033[{entry.code}#\033[0m"
            label = f"[{name[0].upper()}{name[0]}]{name[1:]}"
        else:
            sample = "-"
            label = name
        lines.append(f"  {{{sample}}} {label:<13}{name}")
    lines.append(f"  {{*}} {'[Rr]andom':<13}random [--exclude-random=<foreground color>]")
    lines.append("")
    lines.append("First character of a foreground color name in upper case denotes bold,")
    lines.append("whereas lower case colors are of normal intensity.")
    lines.append("")
    lines.append(f"Attributes: {', '.join(ATTRIBUTES)}")
    lines.append(f"Configuration file: {CONFIG_FILE}")
    return "\n".join(lines)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="colorize",
        usage="%(prog)s [options] (foreground) OR (foreground)/(background) OR --clean[-all] [-|file]",
        description="Colorize text through ANSI escape sequences, or clean them out",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=_color_legend(),
    )
    parser.add_argument("args", nargs="*", metavar="color|file", help="Color string and/or input file")
    parser.add_argument("-a", "--attr", default=None, help="Comma separated attributes")
    parser.add_argument("-c", "--config", default=None, help="Configuration file")
    parser.add_argument("--clean", action="store_true", default=None, help="Clean color and attribute sequences")
    parser.add_argument("--clean-all", action="store_true", default=None, help="Clean all SGR sequences")
    parser.add_argument("--exclude-random", default=None, help="Foreground color never picked by random")
    parser.add_argument(
        "--omit-color-empty", action="store_true", default=None, help="Don't colorize empty lines"
    )
    parser.add_argument("--rainbow-fg", action="store_true", default=None, help="Cycle foreground colors")
    parser.add_argument("--rainbow-bg", action="store_true", default=None, help="Cycle background colors")
    parser.add_argument(
        "--buffer-size", type=int, default=None, help=f"Read buffer size (default {DEFAULT_BUFFER_SIZE})"
    )
    parser.add_argument("-V", "--version", action="store_true", help="Print version and exit")
    return parser.parse_args(argv)


def _split_positionals(args: list[str], clean: bool) -> tuple[str | None, str | None]:
    """Return (color string, file) from the positional arguments."""
    if len(args) > 2:
        raise ConfigError("too many arguments")
    if clean:
        if len(args) == 2:
            logger.warning("color string '%s' ignored in clean mode", args[0])
            return None, args[1]
        return None, args[0] if args else None
    if len(args) == 2:
        return args[0], args[1]
    return (args[0] if args else None), None


@contextmanager
def open_input(path: str | None, stdin: BinaryIO) -> Iterator[BinaryIO]:
    """Yield the input stream; a named file is closed on every exit path."""
    if path is None or path == "-":
        yield stdin
        return
    try:
        mode = os.stat(path).st_mode
    except OSError as exc:
        raise ReadError(f"{path}: {exc.strerror}") from exc
    if not (stat.S_ISREG(mode) or stat.S_ISFIFO(mode)):
        raise ReadError(f"{path}: unrecognized file type")
    try:
        stream = open(path, "rb")
    except OSError as exc:
        raise ReadError(f"{path}: {exc.strerror}") from exc
    with stream:
        yield stream


def build_renderer(options: RunOptions, output: BinaryIO) -> LineRenderer:
    mode = options.mode
    if mode.policy is not None:
        return LineRenderer(output, mode=mode)
    if options.color is None:
        raise ConfigError("color string required")
    names, bold = parse_color_string(options.color)
    selection = resolve_selection(names, options.exclude_random)
    return LineRenderer(
        output,
        selection,
        attrs=parse_attrs(options.attr, bold=bold),
        mode=mode,
        omit_color_empty=options.omit_color_empty,
    )


def run(options: RunOptions, path: str | None, stdin: BinaryIO, stdout: BinaryIO) -> None:
    renderer = build_renderer(options, stdout)
    with open_input(path, stdin) as stream:
        reader = StreamReader(
            stream,
            buffer_size=options.buffer_size,
            complete_escapes=options.mode.policy is not None,
        )
        renderer.render_all(reader)


def _print_version() -> None:
    print(f"colorize v{VERSION} (Python {sys.version.split()[0]})")
    print(f"Buffer size: {DEFAULT_BUFFER_SIZE} bytes")


def main(
    argv: list[str] | None = None,
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
) -> int:
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if os.environ.get("COLORIZE_DEBUG") else logging.WARNING,
        format="%(name)s: %(message)s",
    )
    args = parse_args(argv)
    if args.version:
        _print_version()
        return 0

    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout.buffer
    prog = Path(sys.argv[0]).name or "colorize"

    try:
        if args.config:
            file_values = load_config(Path(args.config).expanduser(), required=True)
        else:
            file_values = load_config(CONFIG_FILE)
        clean = bool(args.clean or args.clean_all)
        color, path = _split_positionals(args.args, clean)
        options = build_options(
            {
                "color": color,
                "attr": args.attr,
                "exclude_random": args.exclude_random,
                "clean": args.clean,
                "clean_all": args.clean_all,
                "omit_color_empty": args.omit_color_empty,
                "rainbow_fg": args.rainbow_fg,
                "rainbow_bg": args.rainbow_bg,
                "buffer_size": args.buffer_size,
            },
            file_values,
        )
        run(options, path, stdin, stdout)
    except ColorizeError as exc:
        print(f"{prog}: {exc}", file=sys.stderr)
        return 1
    except BrokenPipeError:
        # Reader went away; keep interpreter shutdown from flushing into it.
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
