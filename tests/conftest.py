"""Shared test fixtures for Formulary."""

from __future__ import annotations

import io
import tarfile
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from formulary.config import InstallerSettings
from formulary.core.fetcher import ArtifactFetcher
from formulary.core.hasher import sha256_hex
from formulary.core.installer import Installer
from formulary.models.manifest import InstallManifest

NETFETCH_525_URL = (
    "https://github.com/deggja/netfetch/releases/download/v5.2.5/"
    "netfetch_5.2.5_linux_amd64.tar.gz"
)


def fake_binary(subcommand: str = "version", version: str = "5.2.5", exit_code: int = 0) -> bytes:
    """A shell script standing in for the netfetch binary.

    Answers ``subcommand`` with a version line and ``exit_code``; any
    other invocation exits 2.
    """
    return (
        "#!/bin/sh\n"
        f'if [ "$1" = "{subcommand}" ]; then\n'
        f'  echo "Netfetch Version: {version}"\n'
        f"  exit {exit_code}\n"
        "fi\n"
        'echo "unknown command: $1" >&2\n'
        "exit 2\n"
    ).encode()


def make_tar_gz(members: dict[str, tuple[bytes, int]]) -> bytes:
    """Build a gzipped tarball from ``{name: (content, mode)}``."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, (content, mode) in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = mode
            archive.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def make_manifest(
    archives: dict[tuple[str, str, str], bytes],
    *,
    current: str = "5.2.5",
    smoke_test_args: list[str] | None = None,
    revision_smoke_args: dict[str, list[str]] | None = None,
) -> InstallManifest:
    """Build a manifest whose hashes match ``{(version, os, arch): archive}``."""
    by_version: dict[str, list[dict]] = {}
    for (version, os_name, arch), data in archives.items():
        by_version.setdefault(version, []).append({
            "os": os_name,
            "arch": arch,
            "url": (
                f"https://github.com/deggja/netfetch/releases/download/v{version}/"
                f"netfetch_{version}_{os_name}_{arch}.tar.gz"
            ),
            "sha256": sha256_hex(data),
        })
    revision_smoke_args = revision_smoke_args or {}
    revisions = [
        {
            "version": version,
            "platforms": platforms,
            **({"smokeTestArgs": revision_smoke_args[version]} if version in revision_smoke_args else {}),
        }
        for version, platforms in by_version.items()
        if version != current
    ]
    return InstallManifest.model_validate({
        "name": "netfetch",
        "description": "CLI tool to scan for network policies in Kubernetes clusters",
        "homepage": "https://github.com/deggja/netfetch",
        "version": current,
        "platforms": by_version[current],
        "installedBinaryName": "netfetch",
        "smokeTestArgs": smoke_test_args or ["version"],
        "revisions": revisions,
    })


class ArchiveServer:
    """In-memory release host for ``httpx.MockTransport``.

    ``responses`` maps a URL to bytes, or to a list of responses/exceptions
    served in order (the last one repeats).
    """

    def __init__(self) -> None:
        self.responses: dict[str, object] = {}
        self.requests: list[str] = []

    def serve(self, url: str, *responses: object) -> None:
        self.responses[url] = list(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        queue = self.responses.get(url)
        if not queue:
            return httpx.Response(404, content=b"not found")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, content=item)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def netfetch_binary() -> bytes:
    return fake_binary()


@pytest.fixture
def netfetch_archive(netfetch_binary: bytes) -> bytes:
    """A release archive laid out like the real one: binary plus docs."""
    return make_tar_gz({
        "netfetch": (netfetch_binary, 0o755),
        "README.md": (b"# netfetch\n", 0o644),
        "LICENSE": (b"MIT\n", 0o644),
    })


@pytest.fixture
def manifest(netfetch_archive: bytes) -> InstallManifest:
    return make_manifest({("5.2.5", "linux", "amd64"): netfetch_archive})


@pytest.fixture
def settings(tmp_dir: Path) -> InstallerSettings:
    """Settings isolated from the environment, with no backoff sleeps."""
    return InstallerSettings(
        _env_file=None,
        bin_dir=tmp_dir / "bin",
        cache_dir=tmp_dir / "cache",
        use_cache=False,
        fetch_timeout_seconds=5.0,
        fetch_max_attempts=3,
        fetch_backoff_max_seconds=0.0,
        smoke_test_timeout_seconds=10.0,
        lock_timeout_seconds=5.0,
    )


@pytest.fixture
def archive_server(netfetch_archive: bytes) -> ArchiveServer:
    server = ArchiveServer()
    server.serve(NETFETCH_525_URL, netfetch_archive)
    return server


@pytest.fixture
def make_fetcher(archive_server: ArchiveServer) -> Callable[..., ArtifactFetcher]:
    """Factory fixture: an ArtifactFetcher backed by the archive server."""

    def _factory(**overrides) -> ArtifactFetcher:
        options = {"max_attempts": 3, "backoff_max_seconds": 0.0, "timeout": 5.0}
        options.update(overrides)
        return ArtifactFetcher(transport=archive_server.transport, **options)

    return _factory


@pytest.fixture
def installer(
    manifest: InstallManifest,
    settings: InstallerSettings,
    make_fetcher: Callable[..., ArtifactFetcher],
) -> Installer:
    """An Installer wired to the mock release host and a temp bin dir."""
    return Installer(manifest, settings=settings, fetcher=make_fetcher())


# ---------------------------------------------------------------------------
# Factory fixtures shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def binary_factory() -> Callable[..., bytes]:
    """Factory fixture: see ``fake_binary``."""
    return fake_binary


@pytest.fixture
def tar_gz_factory() -> Callable[[dict[str, tuple[bytes, int]]], bytes]:
    """Factory fixture: see ``make_tar_gz``."""
    return make_tar_gz


@pytest.fixture
def manifest_factory() -> Callable[..., InstallManifest]:
    """Factory fixture: see ``make_manifest``."""
    return make_manifest


@pytest.fixture
def release_url() -> str:
    """Download URL of the 5.2.5 linux/amd64 archive."""
    return NETFETCH_525_URL
