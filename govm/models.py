"""Release metadata, local state and version-string helpers."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_FRACTION = re.compile(r"\.([0-9]+)")
_FILENAME_VERSION = re.compile(r"([0-9]+\.[0-9]+(?:\.[0-9]+)?(?:[a-z]+[0-9]+)?)")
_GO_VERSION = re.compile(
    r"([0-9]+)\.([0-9]+)(?:\.([0-9]+))?(?:(a|alpha|b|beta|rc)([0-9]+))?(.*)"
)
_SEMVER = re.compile(
    r"v(0|[1-9][0-9]*)(?:\.(0|[1-9][0-9]*)(?:\.(0|[1-9][0-9]*)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?)?)?"
)


def _format_time(value: datetime) -> str:
    text = value.replace(microsecond=0).isoformat()
    if value.microsecond:
        text = text[:19] + "." + f"{value.microsecond:06d}".rstrip("0") + text[19:]
    return text.replace("+00:00", "Z") if value.utcoffset() is not None else text + "Z"


def _parse_time(text: str) -> datetime:
    normalized = _FRACTION.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"), text.replace("Z", "+00:00"), count=1
    )
    value = datetime.fromisoformat(normalized)
    if value.tzinfo is None or "T" not in text:
        raise ValueError(f"invalid timestamp: {text!r}")
    return value


def _get(data: Any, key: str, kind: type, default: Any) -> Any:
    if not isinstance(data, dict):
        raise ValueError(f"expected an object, got {data!r}")
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ValueError(f"field {key!r}: expected {kind.__name__}, got {value!r}")
    return value


@dataclass
class VersionFile:
    """One downloadable file of a release."""

    filename: str = ""
    os: str = ""
    arch: str = ""
    version: str = ""
    sha256: str = ""
    size: int = 0
    kind: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Version:
    """A release with its downloadable files."""

    version: str = ""
    stable: bool = False
    files: list[VersionFile] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def versions_from_list(data: Any) -> list[Version]:
    """Build the release list from decoded JSON; ``None`` gives an empty list."""
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"versions: expected a list, got {data!r}")
    text_fields = ("filename", "os", "arch", "version", "sha256", "kind")
    return [
        Version(
            version=_get(item, "version", str, ""),
            stable=_get(item, "stable", bool, False),
            files=[
                VersionFile(
                    size=_get(entry, "size", int, 0),
                    **{name: _get(entry, name, str, "") for name in text_fields},
                )
                for entry in _get(item, "files", list, [])
            ],
        )
        for item in data
    ]


@dataclass
class LocalData:
    """State kept between runs."""

    last_checked_at: datetime = _ZERO_TIME
    installed_versions: list[str] = field(default_factory=list)
    current_version: str = ""

    def is_installed(self, version: str) -> bool:
        return version in self.installed_versions

    def to_dict(self) -> dict:
        return {
            "last_checked_at": _format_time(self.last_checked_at),
            "installed_versions": list(self.installed_versions) or None,
            "current_version": self.current_version,
        }


def local_data_from_dict(data: Any) -> LocalData:
    """Build local state from decoded JSON; ``None`` gives the empty state."""
    if data is None:
        return LocalData()
    raw_time = _get(data, "last_checked_at", str, None)
    installed = _get(data, "installed_versions", list, [])
    if not all(isinstance(item, str) for item in installed):
        raise ValueError(f"field 'installed_versions': expected strings, got {installed!r}")
    return LocalData(
        last_checked_at=_ZERO_TIME if raw_time is None else _parse_time(raw_time),
        installed_versions=list(installed),
        current_version=_get(data, "current_version", str, ""),
    )


def extract_version_from_filename(filename: str) -> str:
    """``"go1.25.6.tar.gz"`` gives ``"1.25.6"``; unknown names give ``""``."""
    for suffix in (".tar.gz", ".zip"):
        if filename.endswith(suffix):
            match = _FILENAME_VERSION.match(filename[: -len(suffix)].removeprefix("go"))
            return match.group(1) if match else ""
    return ""


def normalize_version(version: str) -> str:
    """``"1.10beta1"`` gives ``"v1.10.0-beta1"``; ``"1.21"`` gives ``"v1.21.0"``."""
    match = _GO_VERSION.fullmatch(version)
    if match is None:
        return "v" + version
    major, minor, patch, pre_type, pre_num, suffix = match.groups()
    result = f"{major}.{minor}.{patch or '0'}"
    if pre_type:
        result += "-" + {"a": "alpha", "b": "beta"}.get(pre_type, pre_type) + pre_num
    return "v" + result + suffix


def semver_sort_key(version: str) -> tuple:
    """Order semantic versions by precedence; invalid ones sort first."""
    invalid = (0, 0, 0, 0, (), version)
    match = _SEMVER.fullmatch(version)
    if match is None:
        return invalid
    major, minor, patch, prerelease = match.groups()
    if prerelease is None:
        pre_key: tuple = (1,)
    else:
        idents = prerelease.split(".")
        if any(i.isdigit() and len(i) > 1 and i.startswith("0") for i in idents):
            return invalid
        pre_key = (0, *((0, int(i)) if i.isdigit() else (1, i) for i in idents))
    return (1, int(major), int(minor or 0), int(patch or 0), pre_key, version)