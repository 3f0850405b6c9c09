"""Listing, installing, switching and removing Go releases in a workspace."""

from __future__ import annotations

import json
import logging
import os
import platform
import shutil
import sys
import tarfile
import urllib.error
import urllib.request
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from datetime import datetime, timedelta, timezone
from typing import Any

from govm.archive import extract
from govm.download import ChecksumMismatchError, DownloadError, download_file, verify_sha256
from govm.fsutil import copy_dir, workspace_dir
from govm.models import (
    LocalData,
    Version,
    VersionFile,
    extract_version_from_filename,
    local_data_from_dict,
    versions_from_list,
)

logger = logging.getLogger(__name__)

VERSIONS_URL = "https://go.dev/dl/?mode=json&include=all"
USER_AGENT = "GoClient-govm"
SYNC_INTERVAL = timedelta(hours=1)

_OS_NAMES = {"win32": "windows", "cygwin": "windows", "sunos5": "solaris"}
_ARCH_NAMES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i486": "386",
    "i586": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "arm",
    "armv7l": "arm",
    "arm": "arm",
    "ppc64le": "ppc64le",
    "ppc64": "ppc64",
    "s390x": "s390x",
    "riscv64": "riscv64",
    "loongarch64": "loong64",
    "mips64": "mips64",
    "mips": "mips",
}


class ManagerError(Exception):
    """Raised when a workspace operation fails."""


def _go_os() -> str:
    name = sys.platform
    for prefix in ("freebsd", "openbsd", "netbsd", "dragonfly", "aix"):
        if name.startswith(prefix):
            return prefix
    return _OS_NAMES.get(name, name)


def _go_arch() -> str:
    machine = platform.machine().lower()
    return _ARCH_NAMES.get(machine, machine)


def _remove_all(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    elif os.path.lexists(path):
        os.remove(path)


def _write_json(path: str, value: Any) -> None:
    content = json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as out:
        out.write(content)


@contextmanager
def _log_failure(message: str, **attrs: Any) -> Iterator[None]:
    try:
        yield
    except Exception as exc:
        logger.error(message, extra={"attrs": {**attrs, "reason": exc}})
        raise


class Manager:
    """Keeps Go releases under a workspace with ``versions``, ``downloads`` and ``go``."""

    def __init__(
        self,
        workspace: str | os.PathLike | None = None,
        *,
        os_name: str | None = None,
        arch: str | None = None,
        versions_url: str = VERSIONS_URL,
    ) -> None:
        self.versions: list[Version] = []
        self.data = LocalData()
        self.os = os_name or _go_os()
        self.arch = arch or _go_arch()
        self.workspace = os.fspath(workspace) if workspace is not None else workspace_dir()
        self.versions_url = versions_url

    def _path(self, *parts: str) -> str:
        return os.path.join(self.workspace, *parts)

    def init(self) -> None:
        """Prepare the workspace, refresh the release list if stale, and load state."""
        with _log_failure("could not create workspace directory"):
            os.makedirs(self.workspace, 0o740, exist_ok=True)
        with _log_failure("could not read local data"):
            self._read_local_data()
        for sub in ("versions", "downloads", "go"):
            with _log_failure("could not create directory", dir=sub):
                os.makedirs(self._path(sub), 0o740, exist_ok=True)
        with _log_failure("could not sync go versions"):
            self.sync()
        with _log_failure("could not read local versions"):
            self.versions = self._read_local_versions()
        self._read_local_data()

    def sync(self) -> None:
        """Fetch the release list unless it was fetched within the last hour."""
        now = datetime.now(timezone.utc)
        try:
            if now - self.data.last_checked_at < SYNC_INTERVAL:
                return
        except OverflowError:
            pass

        self.versions = self._fetch_remote_versions()
        self.data.last_checked_at = now
        self._walk_installed_versions()
        self._save_all()

    def _fetch_remote_versions(self) -> list[Version]:
        request = urllib.request.Request(self.versions_url, headers={"User-Agent": USER_AGENT})
        try:
            with urllib.request.urlopen(request) as response:
                status = response.status
                body = response.read()
        except urllib.error.HTTPError as exc:
            raise ManagerError(f"unexpected status code: {exc.code}") from exc
        if status != 200:
            raise ManagerError(f"unexpected status code: {status}")
        return versions_from_list(json.loads(body))

    def filter_versions(self, stable: bool) -> list[str]:
        """Versions with an archive for this OS and architecture, once per matching file."""
        return [
            version.version.removeprefix("go")
            for version in self.versions
            if version.stable or not stable
            for item in version.files
            if item.os == self.os and item.arch == self.arch and item.kind == "archive"
        ]

    def is_valid_version(self, version: str) -> bool:
        return version in self.filter_versions(False)

    def find_version_file(self, version: str) -> VersionFile | None:
        """The archive for ``version`` on this OS and architecture, if any."""
        for candidate in self.versions:
            if candidate.version.removeprefix("go") != version:
                continue
            for item in candidate.files:
                if item.os == self.os and item.arch == self.arch and item.kind == "archive":
                    return item
        return None

    def install(self, version: str, site_url: str) -> None:
        """Download (if needed), unpack and activate ``version``."""
        version_file = self.find_version_file(version)
        if version_file is None:
            raise ManagerError(f"version file not found for {version}")

        downloads_dir = self._path("downloads")
        downloaded = os.path.join(downloads_dir, version_file.filename)

        if not os.path.exists(downloaded):
            try:
                os.makedirs(downloads_dir, 0o755, exist_ok=True)
            except OSError as exc:
                raise ManagerError(f"failed to create downloads directory: {exc}") from exc

            url = site_url.rstrip("/") + "/" + version_file.filename
            try:
                downloaded = download_file(url, downloads_dir)
            except (DownloadError, OSError, ValueError) as exc:
                raise ManagerError(f"failed to download {url}: {exc}") from exc

            try:
                verify_sha256(downloaded, version_file.sha256)
            except (ChecksumMismatchError, OSError) as exc:
                with suppress(OSError):
                    os.remove(downloaded)
                raise ManagerError(f"failed to verify checksum: {exc}") from exc
            logger.info("file downloaded", extra={"attrs": {"file": version_file.filename}})
        else:
            logger.info(
                "file found in downloads, skipping download",
                extra={"attrs": {"file": version_file.filename}},
            )

        version_dir = self._path("versions", version)
        try:
            _remove_all(version_dir)
        except OSError as exc:
            raise ManagerError(f"failed to remove existing version directory: {exc}") from exc
        try:
            os.makedirs(version_dir, 0o755, exist_ok=True)
        except OSError as exc:
            raise ManagerError(f"failed to create version directory: {exc}") from exc

        try:
            extract(downloaded, version_dir)
        except (OSError, ValueError, EOFError, tarfile.TarError, zipfile.BadZipFile) as exc:
            with suppress(OSError):
                _remove_all(version_dir)
            raise ManagerError(f"failed to extract archive: {exc}") from exc

        try:
            copy_dir(version_dir, self._path("go"))
        except OSError as exc:
            raise ManagerError(f"failed to copy to .govm/go directory: {exc}") from exc

        self._walk_installed_versions()
        self.data.current_version = version

        try:
            self._write_local_data()
        except OSError as exc:
            raise ManagerError(f"failed to save local data: {exc}") from exc

        logger.info("version installed and set as current", extra={"attrs": {"version": version}})

    def uninstall(self, version: str) -> None:
        """Remove ``version`` and its cached download; fails if it was not installed."""
        was_installed = self.data.is_installed(version)

        try:
            _remove_all(self._path("versions", version))
        except OSError as exc:
            raise ManagerError(f"failed to remove version directory: {exc}") from exc
        logger.info("removed version directory", extra={"attrs": {"version": version}})

        downloads_dir = self._path("downloads")
        try:
            with os.scandir(downloads_dir) as scanner:
                entries = sorted(scanner, key=lambda entry: entry.name)
        except OSError:
            entries = []

        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                continue
            if extract_version_from_filename(entry.name) != version:
                continue
            try:
                os.remove(entry.path)
            except OSError as exc:
                logger.error(
                    "failed to remove file from downloads",
                    extra={"attrs": {"file": entry.name, "reason": exc}},
                )
            else:
                logger.info("removed file from downloads", extra={"attrs": {"file": entry.name}})
            break

        if self.data.current_version == version:
            self.data.current_version = ""
            current_dir = self._path("go")
            with suppress(OSError):
                _remove_all(current_dir)
            with suppress(OSError):
                os.makedirs(current_dir, 0o755, exist_ok=True)

        self._walk_installed_versions()

        try:
            self._write_local_data()
        except OSError as exc:
            raise ManagerError(f"failed to save local data: {exc}") from exc

        if not was_installed:
            raise ManagerError(f"version {version} not installed")

        logger.info("version removed", extra={"attrs": {"version": version}})

    def _read_local_data(self) -> None:
        try:
            with open(self._path("local.json"), "rb") as source:
                content = source.read()
        except FileNotFoundError:
            content = b"{}"
        self.data = local_data_from_dict(json.loads(content))

    def _write_local_data(self) -> None:
        _write_json(self._path("local.json"), self.data.to_dict())

    def _read_local_versions(self) -> list[Version]:
        with open(self._path("versions.json"), "rb") as source:
            return versions_from_list(json.loads(source.read()))

    def _write_local_versions(self) -> None:
        _write_json(self._path("versions.json"), [v.to_dict() for v in self.versions])

    def _walk_installed_versions(self) -> None:
        try:
            with os.scandir(self._path("versions")) as scanner:
                entries = sorted(scanner, key=lambda entry: entry.name)
        except OSError:
            return
        self.data.installed_versions = [
            entry.name for entry in entries if entry.is_dir(follow_symlinks=False)
        ]

    def _save_all(self) -> None:
        self._write_local_data()
        self._write_local_versions()