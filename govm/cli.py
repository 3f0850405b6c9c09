"""Command line interface: ``govm list``, ``govm use`` and ``govm remove``."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Callable, Iterable

from govm.fsutil import workspace_dir
from govm.logger import setup
from govm.manager import Manager, ManagerError
from govm.models import normalize_version, semver_sort_key

logger = logging.getLogger(__name__)

DEFAULT_SITE = "https://go.dev/dl"
LOG_FILE = "govm.log"

_GREEN = "32"
_WHITE = "37"

_USE_EPILOG = """examples:
  govm use 1.24.11
  govm use 1.24.11 -s <download site>
  govm use -v 1.24.11 -s <download site>"""


class _CommandError(Exception):
    """Raised when a command's arguments are unusable."""


def _color_enabled() -> bool:
    if "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb":
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _colorize(text: str, code: str) -> str:
    if not _color_enabled():
        return text
    return f"\x1b[{code}m{text}\x1b[0m"


def sorted_display_versions(versions: Iterable[str]) -> list[str]:
    """Order release versions by semantic-version precedence, as given."""
    versions = list(versions)
    display = {normalize_version(version): version for version in versions}
    ordered = sorted((normalize_version(version) for version in versions), key=semver_sort_key)
    return [display[normalized] for normalized in ordered]


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all commands."""
    parser = argparse.ArgumentParser(prog="govm", description="toolchain version management")
    commands = parser.add_subparsers(dest="command", metavar="command")

    list_parser = commands.add_parser(
        "list",
        help="list toolchain versions",
        description="list toolchain versions",
        epilog="example:\n  govm list --stable",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    list_parser.add_argument(
        "-s", "--stable", action="store_true", help="show stable versions"
    )

    use_parser = commands.add_parser(
        "use",
        help="switch to or install a toolchain version",
        description="switch to or install a toolchain version",
        epilog=_USE_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    use_parser.add_argument("args", nargs="*", metavar="version")
    use_parser.add_argument(
        "-v", "--version", default="", help="toolchain version to switch to or install"
    )
    use_parser.add_argument(
        "-s", "--site", default=DEFAULT_SITE, help="site to download releases from"
    )

    remove_parser = commands.add_parser(
        "remove",
        help="remove a toolchain version",
        description="remove a toolchain version",
        epilog="examples:\n  govm remove 1.24.11\n  govm remove -v 1.24.11",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    remove_parser.add_argument("args", nargs="*", metavar="version")
    remove_parser.add_argument("-v", "--version", default="", help="toolchain version to remove")

    return parser


def _requested_version(args: argparse.Namespace) -> str:
    if not args.version and args.args:
        return args.args[0]
    return args.version


def _run_list(manager: Manager, args: argparse.Namespace) -> None:
    manager.init()
    for version in sorted_display_versions(manager.filter_versions(args.stable)):
        code = _GREEN if manager.data.is_installed(version) else _WHITE
        print(_colorize(version, code))


def _run_use(manager: Manager, args: argparse.Namespace) -> None:
    manager.init()
    version = _requested_version(args)
    if not manager.is_valid_version(version):
        raise _CommandError("invalid version: version not found")
    manager.install(version, args.site)


def _run_remove(manager: Manager, args: argparse.Namespace) -> None:
    manager.init()
    version = _requested_version(args)
    if not version:
        raise _CommandError("version is required")
    manager.uninstall(version)


_COMMANDS: dict[str, Callable[[Manager, argparse.Namespace], None]] = {
    "list": _run_list,
    "use": _run_use,
    "remove": _run_remove,
}


def main(argv: list[str] | None = None) -> int:
    """Run the command line; returns the process exit status."""
    cleanup = setup(workspace_dir(), LOG_FILE)
    try:
        args = build_parser().parse_args(argv)
        if args.command is None:
            return 0
        try:
            _COMMANDS[args.command](Manager(), args)
        except (ManagerError, _CommandError, OSError, ValueError) as exc:
            logger.error("execute command failed", extra={"attrs": {"reason": exc}})
            return 1
        return 0
    finally:
        cleanup()


if __name__ == "__main__":
    sys.exit(main())