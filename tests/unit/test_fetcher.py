"""Tests for ArtifactFetcher — download, retry policy, integrity, cancellation."""

from __future__ import annotations

import httpx
import pytest

from formulary.core.cancellation import CancellationToken
from formulary.core.errors import DownloadFailed, IntegrityMismatch, OperationCancelled
from formulary.core.fetcher import ArtifactFetcher, verify_integrity
from formulary.models.manifest import InstallManifest


@pytest.fixture
def descriptor(manifest: InstallManifest):
    from formulary.core.catalog import DescriptorCatalog

    return DescriptorCatalog.from_manifest(manifest).resolve(
        "5.2.5", manifest.platforms[0].platform
    )


class TestFetch:
    def test_fetch_returns_verified_bytes(self, make_fetcher, descriptor, netfetch_archive):
        with make_fetcher() as fetcher:
            assert fetcher.fetch(descriptor) == netfetch_archive

    def test_follows_redirects(self, archive_server, make_fetcher, descriptor, netfetch_archive):
        cdn = "https://objects.githubusercontent.com/netfetch_5.2.5_linux_amd64.tar.gz"
        archive_server.serve(
            descriptor.url, httpx.Response(302, headers={"Location": cdn})
        )
        archive_server.serve(cdn, netfetch_archive)
        with make_fetcher() as fetcher:
            assert fetcher.fetch(descriptor) == netfetch_archive
        assert archive_server.requests == [descriptor.url, cdn]

    def test_integrity_mismatch(self, archive_server, make_fetcher, descriptor, netfetch_archive):
        archive_server.serve(descriptor.url, netfetch_archive + b"\x00")
        with make_fetcher() as fetcher, pytest.raises(IntegrityMismatch) as excinfo:
            fetcher.fetch(descriptor)
        assert excinfo.value.expected == descriptor.content_hash
        assert excinfo.value.actual != descriptor.content_hash
        assert excinfo.value.version == "5.2.5"

    def test_download_does_not_verify(self, archive_server, make_fetcher, descriptor):
        archive_server.serve(descriptor.url, b"not the archive")
        with make_fetcher() as fetcher:
            assert fetcher.download(descriptor) == b"not the archive"


class TestRetryPolicy:
    def test_retries_server_errors(self, archive_server, make_fetcher, descriptor, netfetch_archive):
        archive_server.serve(
            descriptor.url,
            httpx.Response(503),
            httpx.Response(502),
            netfetch_archive,
        )
        with make_fetcher(max_attempts=3) as fetcher:
            assert fetcher.fetch(descriptor) == netfetch_archive
        assert len(archive_server.requests) == 3

    def test_retries_connection_errors(self, archive_server, make_fetcher, descriptor, netfetch_archive):
        archive_server.serve(
            descriptor.url,
            httpx.ConnectError("connection refused"),
            netfetch_archive,
        )
        with make_fetcher() as fetcher:
            assert fetcher.fetch(descriptor) == netfetch_archive
        assert len(archive_server.requests) == 2

    def test_gives_up_after_max_attempts(self, archive_server, make_fetcher, descriptor):
        archive_server.serve(descriptor.url, httpx.ReadTimeout("slow"))
        with make_fetcher(max_attempts=2) as fetcher, pytest.raises(DownloadFailed) as excinfo:
            fetcher.fetch(descriptor)
        assert len(archive_server.requests) == 2
        assert "2 attempt(s)" in str(excinfo.value)
        assert isinstance(excinfo.value.cause, httpx.ReadTimeout)
        assert excinfo.value.platform == descriptor.platform

    def test_not_found_is_not_retried(self, archive_server, make_fetcher, descriptor):
        archive_server.serve(descriptor.url, httpx.Response(404))
        with make_fetcher() as fetcher, pytest.raises(DownloadFailed, match="HTTP 404"):
            fetcher.fetch(descriptor)
        assert len(archive_server.requests) == 1

    def test_rate_limit_is_retried(self, archive_server, make_fetcher, descriptor, netfetch_archive):
        archive_server.serve(descriptor.url, httpx.Response(429), netfetch_archive)
        with make_fetcher() as fetcher:
            assert fetcher.fetch(descriptor) == netfetch_archive


class TestCancellation:
    def test_cancelled_before_request(self, archive_server, make_fetcher, descriptor):
        token = CancellationToken()
        token.cancel()
        with make_fetcher() as fetcher, pytest.raises(OperationCancelled):
            fetcher.fetch(descriptor, token)
        assert archive_server.requests == []


class TestClientOwnership:
    def test_external_client_left_open(self, archive_server, descriptor, netfetch_archive):
        client = httpx.Client(transport=archive_server.transport)
        with ArtifactFetcher(client=client, backoff_max_seconds=0.0) as fetcher:
            assert fetcher.fetch(descriptor) == netfetch_archive
        assert not client.is_closed
        client.close()


class TestVerifyIntegrity:
    def test_accepts_matching_bytes(self, descriptor, netfetch_archive):
        verify_integrity(descriptor, netfetch_archive)

    def test_rejects_empty_body(self, descriptor):
        with pytest.raises(IntegrityMismatch):
            verify_integrity(descriptor, b"")
