"""Filesystem helpers: workspace location, directory copying and pattern removal."""

from __future__ import annotations

import os
import re
import shutil
import stat
from collections.abc import Iterator
from pathlib import Path


def home_dir() -> str:
    """Return the user's home directory, or an empty string if it is unknown."""
    try:
        return str(Path.home())
    except RuntimeError:
        return ""


def workspace_dir() -> str:
    """Return the workspace directory (``~/.govm``)."""
    return os.path.join(home_dir(), ".govm")


def _remove_all(path: str | os.PathLike) -> None:
    if not os.path.lexists(path):
        return
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.remove(path)


def copy_dir(src: str | os.PathLike, dest: str | os.PathLike) -> None:
    """Replace ``dest`` with a recursive copy of ``src``, keeping permission bits."""
    _remove_all(dest)

    with os.scandir(src) as scanner:
        entries = sorted(scanner, key=lambda entry: entry.name)

    os.makedirs(dest, 0o755, exist_ok=True)

    for entry in entries:
        src_path = os.path.join(src, entry.name)
        dst_path = os.path.join(dest, entry.name)
        if entry.is_dir(follow_symlinks=False):
            copy_dir(src_path, dst_path)
        else:
            shutil.copyfile(src_path, dst_path)
        os.chmod(dst_path, stat.S_IMODE(os.stat(src_path).st_mode))


def _walk_files(root: str) -> Iterator[str]:
    """Yield every non-directory path under ``root`` in lexical order."""
    info = os.lstat(root)
    if not stat.S_ISDIR(info.st_mode):
        yield root
        return
    with os.scandir(root) as scanner:
        entries = sorted(scanner, key=lambda entry: entry.name)
    for entry in entries:
        path = os.path.normpath(os.path.join(root, entry.name))
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_files(path)
        else:
            yield path


def remove_matching_files(pattern: str) -> None:
    """Delete files whose base name matches the regular expression in ``pattern``.

    The part of ``pattern`` before the last separator is the directory to search,
    recursively; the part after it is the regular expression.
    """
    head, separator, file_pattern = pattern.rpartition(os.sep)
    directory = head if separator else "."

    if not file_pattern:
        return

    try:
        regex = re.compile(file_pattern)
    except re.error as exc:
        raise ValueError(f"cannot compile pattern {pattern}: {exc}") from exc

    removed: list[str] = []
    try:
        for path in _walk_files(directory):
            if not regex.search(os.path.basename(path)):
                continue
            try:
                os.remove(path)
            except OSError as exc:
                raise OSError(f"failed to delete {path}: {exc}") from exc
            removed.append(path)
    except OSError as exc:
        raise OSError(f"failed to traverse directory: {exc}") from exc

    for path in removed:
        print(f"  - {path}")