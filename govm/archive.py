"""Extraction of Go distribution archives (tar.gz and zip)."""

from __future__ import annotations

import os
import shutil
import stat
import tarfile
import zipfile

_CREATOR_MSDOS = 0
_CREATOR_UNIX = 3
_CREATOR_NTFS = 11
_CREATOR_VFAT = 14
_CREATOR_MACOSX = 19

_MSDOS_DIR = 0x10
_MSDOS_READONLY = 0x01


class UnsupportedArchiveError(ValueError):
    """Raised when an archive has neither a .tar.gz nor a .zip suffix."""


def extract(src: str | os.PathLike, dest: str | os.PathLike) -> None:
    """Extract a tar.gz or zip archive into ``dest``, dropping a leading ``go/``."""
    name = os.fspath(src)
    if name.endswith(".tar.gz"):
        _extract_tar_gz(name, dest)
    elif name.endswith(".zip"):
        _extract_zip(name, dest)
    else:
        raise UnsupportedArchiveError(f"unsupported archive format: {name}")


def _strip_root(name: str) -> str | None:
    """Return the member name without the ``go/`` root, or None to skip it."""
    if name.startswith("go/"):
        name = name[len("go/"):]
    elif name == "go":
        return None
    return name or None


def _write_member(path: str, source, flags: int) -> None:
    os.makedirs(os.path.dirname(path), 0o755, exist_ok=True)
    fd = os.open(path, flags, 0o644)
    with os.fdopen(fd, "wb") as out:
        shutil.copyfileobj(source, out)


def _extract_tar_gz(src: str, dest: str | os.PathLike) -> None:
    with tarfile.open(src, "r:gz") as archive:
        for member in archive:
            name = _strip_root(member.name)
            if name is None:
                continue
            path = os.path.join(dest, name)
            mode = member.mode & 0o777
            if member.isdir():
                os.makedirs(path, mode, exist_ok=True)
            elif member.isfile():
                source = archive.extractfile(member)
                with source:
                    _write_member(path, source, os.O_CREAT | os.O_WRONLY)
                os.chmod(path, mode)


def _zip_mode(info: zipfile.ZipInfo) -> tuple[int, bool]:
    """Return the permission bits and directory flag recorded for a zip entry."""
    mode = 0
    is_dir = False
    if info.create_system in (_CREATOR_UNIX, _CREATOR_MACOSX):
        unix_mode = info.external_attr >> 16
        mode = stat.S_IMODE(unix_mode) & 0o777
        is_dir = stat.S_ISDIR(unix_mode)
    elif info.create_system in (_CREATOR_MSDOS, _CREATOR_NTFS, _CREATOR_VFAT):
        attrs = info.external_attr & 0xFF
        if attrs & _MSDOS_DIR:
            mode, is_dir = 0o777, True
        elif attrs & _MSDOS_READONLY:
            mode = 0o444
        else:
            mode = 0o666
    if info.filename.endswith("/"):
        is_dir = True
    return mode, is_dir


def _extract_zip(src: str, dest: str | os.PathLike) -> None:
    with zipfile.ZipFile(src) as archive:
        for info in archive.infolist():
            name = _strip_root(info.filename)
            if name is None:
                continue
            path = os.path.join(dest, name)
            mode, is_dir = _zip_mode(info)

            if is_dir:
                try:
                    os.makedirs(path, mode, exist_ok=True)
                except OSError:
                    pass
                continue

            with archive.open(info) as source:
                _write_member(path, source, os.O_CREAT | os.O_WRONLY | os.O_TRUNC)
            os.chmod(path, mode)