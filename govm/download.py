"""HTTP download with a console progress bar, and SHA-256 verification."""

from __future__ import annotations

import hashlib
import logging
import os
import urllib.error
import urllib.request

logger = logging.getLogger(__name__)

_MB = 1024 * 1024
_BAR_WIDTH = 30
_CHUNK_SIZE = 32 * 1024


class DownloadError(Exception):
    """Raised when a download cannot be completed."""


class ChecksumMismatchError(Exception):
    """Raised when a file's SHA-256 digest differs from the expected one."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"SHA256 mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


def format_progress(current: int, total: int) -> str:
    """Render the progress line for ``current`` of ``total`` bytes (total <= 0: unknown)."""
    current_mb = current / _MB
    if total <= 0:
        return f"[===>] Downloaded: {current_mb:.1f} MB"

    percent = current / total * 100
    filled = min(max(int(percent / 100 * _BAR_WIDTH), 0), _BAR_WIDTH)
    bar = "=" * filled + " " * (_BAR_WIDTH - filled)
    total_mb = total / _MB
    return f"[{bar}] {current_mb:.1f} MB / {total_mb:.1f} MB ({percent:.1f}%)"


def download_file(url: str, dest_dir: str | os.PathLike) -> str:
    """Download ``url`` into ``dest_dir`` and return the path of the written file."""
    try:
        response = urllib.request.urlopen(url)
    except urllib.error.HTTPError as exc:
        raise DownloadError(f"download failed with status code: {exc.code}") from exc
    except urllib.error.URLError as exc:
        raise DownloadError(str(exc.reason)) from exc

    with response:
        if response.status != 200:
            raise DownloadError(f"download failed with status code: {response.status}")

        filename = url.split("/")[-1]
        file_path = os.path.join(dest_dir, filename)
        length = response.headers.get("Content-Length")
        total = int(length) if length and length.isdigit() else -1

        logger.info("downloading", extra={"attrs": {"file": filename}})
        try:
            with open(file_path, "wb") as out:
                current = 0
                while True:
                    chunk = response.read(_CHUNK_SIZE)
                    current += len(chunk)
                    print("\r" + format_progress(current, total), end="", flush=True)
                    if not chunk:
                        print()
                        break
                    out.write(chunk)
        except BaseException:
            if os.path.exists(file_path):
                os.remove(file_path)
            raise

    logger.info("download completed", extra={"attrs": {"file": filename}})
    return file_path


def verify_sha256(file_path: str | os.PathLike, expected_sum: str) -> None:
    """Raise ChecksumMismatchError unless the file's SHA-256 equals ``expected_sum``."""
    digest = hashlib.sha256()
    with open(file_path, "rb") as source:
        for chunk in iter(lambda: source.read(_CHUNK_SIZE), b""):
            digest.update(chunk)

    actual = digest.hexdigest()
    filename = os.path.basename(file_path)

    if actual == expected_sum:
        logger.info("SHA256 verification passed", extra={"attrs": {"file": filename}})
        return

    print(f"✗ SHA256 verification FAILED: {filename}")
    print(f"  Expected: {expected_sum}")
    print(f"  Got:      {actual}")
    logger.error(
        "SHA256 verification failed",
        extra={"attrs": {"file": filename, "expected": expected_sum, "actual": actual}},
    )
    raise ChecksumMismatchError(expected_sum, actual)