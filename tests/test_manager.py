import functools
import hashlib
import io
import json
import tarfile
import threading
from datetime import datetime, timedelta, timezone
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from govm.manager import Manager, ManagerError

LINUX_ARCHIVE = "go1.22.0.linux-amd64.tar.gz"


def _make_archive(path, files):
    with tarfile.open(path, "w:gz") as archive:
        for name, body in files.items():
            data = body.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            archive.addfile(info, io.BytesIO(data))
    return hashlib.sha256(path.read_bytes()).hexdigest()


def _versions(sha):
    return [
        {
            "version": "go1.22.0",
            "stable": True,
            "files": [
                {
                    "filename": LINUX_ARCHIVE,
                    "os": "linux",
                    "arch": "amd64",
                    "version": "go1.22.0",
                    "sha256": sha,
                    "size": 10,
                    "kind": "archive",
                },
                {
                    "filename": "go1.22.0.src.tar.gz",
                    "os": "",
                    "arch": "",
                    "version": "go1.22.0",
                    "sha256": sha,
                    "size": 10,
                    "kind": "source",
                },
                {
                    "filename": "go1.22.0.darwin-arm64.tar.gz",
                    "os": "darwin",
                    "arch": "arm64",
                    "version": "go1.22.0",
                    "sha256": sha,
                    "size": 10,
                    "kind": "archive",
                },
            ],
        },
        {
            "version": "go1.23rc1",
            "stable": False,
            "files": [
                {
                    "filename": "go1.23rc1.linux-amd64.tar.gz",
                    "os": "linux",
                    "arch": "amd64",
                    "version": "go1.23rc1",
                    "sha256": sha,
                    "size": 10,
                    "kind": "archive",
                }
            ],
        },
    ]


class _QuietHandler(SimpleHTTPRequestHandler):
    def log_message(self, format, *args):
        pass


@pytest.fixture
def site(tmp_path, monkeypatch):
    for name in ("http_proxy", "HTTP_PROXY", "https_proxy", "HTTPS_PROXY", "all_proxy", "ALL_PROXY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("no_proxy", "127.0.0.1,localhost")
    root = tmp_path / "site"
    root.mkdir()
    handler = functools.partial(_QuietHandler, directory=str(root))
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield root, f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


@pytest.fixture
def archive(tmp_path):
    path = tmp_path / LINUX_ARCHIVE
    sha = _make_archive(path, {"go/bin/go": "go binary", "go/VERSION": "go1.22.0"})
    return path, sha


@pytest.fixture
def workspace(tmp_path, archive):
    ws = tmp_path / "ws"
    ws.mkdir()
    _, sha = archive
    fresh = {"last_checked_at": datetime.now(timezone.utc).isoformat()}
    (ws / "local.json").write_text(json.dumps(fresh))
    (ws / "versions.json").write_text(json.dumps(_versions(sha)))
    return ws


@pytest.fixture
def manager(workspace):
    mgr = Manager(workspace, os_name="linux", arch="amd64")
    mgr.init()
    return mgr


def test_init_loads_cached_versions(manager):
    assert [v.version for v in manager.versions] == ["go1.22.0", "go1.23rc1"]
    assert manager.data.current_version == ""
    subdirs = sorted(p.name for p in Path(manager.workspace).iterdir() if p.is_dir())
    assert subdirs == ["downloads", "go", "versions"]


def test_filter_versions(manager):
    assert manager.filter_versions(False) == ["1.22.0", "1.23rc1"]
    assert manager.filter_versions(True) == ["1.22.0"]


def test_filter_versions_other_platform(workspace):
    mgr = Manager(workspace, os_name="darwin", arch="arm64")
    mgr.init()
    assert mgr.filter_versions(False) == ["1.22.0"]


def test_is_valid_version(manager):
    assert manager.is_valid_version("1.23rc1")
    assert not manager.is_valid_version("go1.22.0")
    assert not manager.is_valid_version("1.99.0")


def test_find_version_file(manager):
    found = manager.find_version_file("1.22.0")
    assert found.filename == LINUX_ARCHIVE
    assert manager.find_version_file("1.99.0") is None


def test_install_from_download_cache(manager, workspace, archive):
    path, _ = archive
    (workspace / "downloads" / LINUX_ARCHIVE).write_bytes(path.read_bytes())

    manager.install("1.22.0", "http://127.0.0.1:9/unused")

    assert (workspace / "versions" / "1.22.0" / "bin" / "go").read_text() == "go binary"
    assert (workspace / "go" / "VERSION").read_text() == "go1.22.0"
    assert manager.data.current_version == "1.22.0"
    assert manager.data.installed_versions == ["1.22.0"]
    saved = json.loads((workspace / "local.json").read_text())
    assert saved["current_version"] == "1.22.0"
    assert saved["installed_versions"] == ["1.22.0"]


def test_install_downloads_from_site(manager, workspace, archive, site):
    root, url = site
    path, _ = archive
    (root / LINUX_ARCHIVE).write_bytes(path.read_bytes())

    manager.install("1.22.0", url + "/")

    assert (workspace / "downloads" / LINUX_ARCHIVE).read_bytes() == path.read_bytes()
    assert (workspace / "go" / "bin" / "go").read_text() == "go binary"
    assert manager.data.current_version == "1.22.0"


def test_install_checksum_mismatch_removes_download(manager, workspace, site):
    root, url = site
    _make_archive(root / LINUX_ARCHIVE, {"go/bin/go": "tampered"})

    with pytest.raises(ManagerError, match="failed to verify checksum"):
        manager.install("1.22.0", url)

    assert not (workspace / "downloads" / LINUX_ARCHIVE).exists()
    assert manager.data.current_version == ""


def test_install_missing_on_site(manager, site):
    _, url = site
    with pytest.raises(ManagerError, match="failed to download"):
        manager.install("1.22.0", url)


def test_install_unknown_version(manager):
    with pytest.raises(ManagerError, match="version file not found for 1.99.0"):
        manager.install("1.99.0", "http://127.0.0.1:9")


def test_uninstall_removes_everything(manager, workspace, archive):
    path, _ = archive
    (workspace / "downloads" / LINUX_ARCHIVE).write_bytes(path.read_bytes())
    manager.install("1.22.0", "http://127.0.0.1:9")

    manager.uninstall("1.22.0")

    assert not (workspace / "versions" / "1.22.0").exists()
    assert not (workspace / "downloads" / LINUX_ARCHIVE).exists()
    assert list((workspace / "go").iterdir()) == []
    assert manager.data.current_version == ""
    assert manager.data.installed_versions == []
    saved = json.loads((workspace / "local.json").read_text())
    assert saved["current_version"] == ""


def test_uninstall_not_installed(manager, workspace):
    other = workspace / "downloads" / "go1.23rc1.linux-amd64.tar.gz"
    other.write_bytes(b"data")
    with pytest.raises(ManagerError, match="version 1.22.0 not installed"):
        manager.uninstall("1.22.0")
    assert other.exists()


def test_init_syncs_when_stale(tmp_path, archive, site):
    root, url = site
    _, sha = archive
    (root / "versions.json").write_text(json.dumps(_versions(sha)))
    ws = tmp_path / "fresh"

    before = datetime.now(timezone.utc)
    mgr = Manager(ws, os_name="linux", arch="amd64", versions_url=url + "/versions.json")
    mgr.init()

    assert mgr.filter_versions(False) == ["1.22.0", "1.23rc1"]
    stored = json.loads((ws / "versions.json").read_text())
    assert [v["version"] for v in stored] == ["go1.22.0", "go1.23rc1"]
    assert mgr.data.last_checked_at >= before - timedelta(seconds=1)


def test_sync_reports_bad_status(tmp_path, site):
    _, url = site
    mgr = Manager(tmp_path / "ws", os_name="linux", arch="amd64", versions_url=url + "/missing.json")
    with pytest.raises(ManagerError, match="unexpected status code: 404"):
        mgr.init()


def test_init_without_cached_versions_fails(tmp_path):
    ws = tmp_path / "ws"
    ws.mkdir()
    fresh = {"last_checked_at": datetime.now(timezone.utc).isoformat()}
    (ws / "local.json").write_text(json.dumps(fresh))
    mgr = Manager(ws, os_name="linux", arch="amd64")
    with pytest.raises(FileNotFoundError):
        mgr.init()