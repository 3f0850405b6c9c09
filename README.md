# govm

`govm` manages Go toolchain versions. It downloads Go release archives, checks their
SHA-256 checksums, unpacks them and keeps a copy of the version you have chosen as the
active toolchain.

Everything is kept under `~/.govm`:

- `versions/<version>/` holds each installed release
- `downloads/` caches the archives that were downloaded
- `go/` holds a copy of the version currently in use
- `local.json` holds the installed and current versions and when the release index was
  last fetched
- `versions.json` holds the cached release index
- `govm.log` is the log file

The release index is fetched again only when the last fetch is more than an hour old.

## Installation

```
pip install .
```

## Usage

Put `~/.govm/go/bin` on your `PATH`. After that, whichever version you choose with
`govm use` is the `go` on your path.

List the versions that have an archive for your operating system and architecture,
ordered by version. Versions already installed are shown in green when the output is a
terminal.

```
govm list
govm list --stable
```

Install a version, or reinstall and switch to it if it is already installed. The version
may be given as an argument or with `-v` / `--version`:

```
govm use 1.24.11
govm use -v 1.24.11 -s <download site>
```

`--site` / `-s` sets the base address that archives are downloaded from; the archive's
file name is appended to it. The default is the official Go download page. An archive
already present in `~/.govm/downloads` is used without downloading it again.

Remove an installed version, together with its cached archive:

```
govm remove 1.24.11
govm remove -v 1.24.11
```

If you remove the version currently in use, `~/.govm/go` is emptied. Removing a version
that is not installed still cleans up its directory and archive, but the command fails.

## Output

Each message is printed with `✓` for information and `✗` for warnings and errors. Extra
details follow as `[key]="value"` pairs. The same messages are appended to
`~/.govm/govm.log` as `key=value` lines. If a command fails, `govm` exits with status 1.

## Library use

The pieces can also be used from Python:

- `govm.manager.Manager` with `init()`, `sync()`, `filter_versions(stable)`,
  `is_valid_version(version)`, `find_version_file(version)`, `install(version, site_url)`
  and `uninstall(version)`; failures raise `govm.manager.ManagerError`
- `govm.archive.extract(src, dest)` unpacks `.tar.gz` and `.zip` archives, dropping a
  leading `go/` directory
- `govm.download.download_file(url, dest_dir)` and `govm.download.verify_sha256(path, expected)`
- `govm.models.normalize_version` and `govm.models.extract_version_from_filename`
- `govm.fsutil.copy_dir(src, dest)` copies a directory tree, keeping permission bits

## Limitations

- There is no command to show which version is current; it is recorded in
  `~/.govm/local.json`.
- `govm` does not change your `PATH` or shell configuration.
- Listing and installing need network access whenever the cached release index is more
  than an hour old.

## Development

```
pip install -e ".[test]"
pytest
```