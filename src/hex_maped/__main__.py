"""
Command line entry point for hex_maped.
Usage: python -m hex_maped {check,upgrade} PATH
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .editor.adapter import DanglingPolicy, from_format
from .errors import AdapterError, PersistenceError
from .formats.codec import decode, decode_any
from .formats.models import Map
from .formats.versions import default_resolver
from .persistence.storage import read_bytes
from .persistence.tasks import load_tileset, save_model, tileset_path_of
from .settings import AppSettings, ConfigError
from .utils.logging_config import setup_logging

logger = logging.getLogger(f"{__name__}.main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hex_maped", description="Inspect and upgrade hex map and tileset files."
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--settings", type=Path, help="Use this INI file for settings")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")

    commands = parser.add_subparsers(dest="command", required=True)

    check = commands.add_parser("check", help="Decode and validate a file")
    check.add_argument("path", type=Path)

    upgrade = commands.add_parser("upgrade", help="Rewrite a file at the current format version")
    upgrade.add_argument("path", type=Path)
    upgrade.add_argument("-o", "--output", type=Path, help="Write here instead of in place")

    return parser


def run_check(path: Path) -> int:
    """Print problems found in a map or tileset file. Returns the exit code."""
    model = decode_any(read_bytes(path))
    problems = model.validate()
    warnings: list[str] = []

    if isinstance(model, Map):
        tileset_path = tileset_path_of(path, model)
        tileset = load_tileset(tileset_path)
        try:
            result = from_format(model, tileset, DanglingPolicy.SENTINEL)
            warnings.extend(str(w) for w in result.warnings)
        except AdapterError as e:
            problems.append(str(e))
        placed = sum(len(layer.placements) for layer in model.layers)
        kind = f"map ({placed} placements, {len(model.layers)} layer(s))"
    else:
        kind = f"tileset ({len(model.tiles)} tiles)"

    for problem in problems:
        print(f"{path}: error: {problem}")
    for warning in warnings:
        print(f"{path}: warning: {warning}")

    if problems:
        return 1
    print(f"{path}: ok, {kind}")
    return 0


def run_upgrade(path: Path, output: Optional[Path] = None) -> int:
    """Rewrite a file at the current version. Returns the exit code."""
    data = read_bytes(path)
    version = decode(data).version
    model = decode_any(data)
    target = output or path
    save_model(target, model)
    kind = default_resolver.kind_of(model)
    print(f"{path}: {kind.value} v{version} -> v{model.VERSION}, written to {target}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main command line entry point."""
    args = build_parser().parse_args(argv)

    settings = AppSettings(ini_path=args.settings) if args.settings else AppSettings()
    setup_logging(settings, console_level="DEBUG" if args.verbose else "WARNING")

    # Validate settings on startup
    validation = settings.validate()
    for warning in validation.warnings:
        logger.warning(f"Configuration: {warning}")
    try:
        validation.raise_if_invalid()
    except ConfigError as e:
        print(f"error: configuration in {settings.get_settings_file_path()}: {e}", file=sys.stderr)
        return 1

    if settings.is_first_run:
        logger.info(f"First run, settings stored at {settings.get_settings_file_path()}")
        settings.set_first_run_complete()

    try:
        if args.command == "check":
            return run_check(args.path)
        return run_upgrade(args.path, args.output)
    except PersistenceError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"error: {e.with_path(args.path)}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
