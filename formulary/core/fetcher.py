"""Archive fetcher — HTTP download with retry, then SHA-256 verification.

Transient failures (connection errors, timeouts, HTTP 429 and 5xx) are
retried with full-jitter exponential backoff via Tenacity.  Anything else
fails at once.  The body is buffered in memory and only handed back after
its digest matches the descriptor, so nothing downstream ever sees
unverified bytes.
"""

from __future__ import annotations

import logging

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from formulary.core.cancellation import CancellationToken
from formulary.core.errors import DownloadFailed, IntegrityMismatch
from formulary.core.hasher import digests_match
from formulary.models.manifest import ArtifactDescriptor

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

_USER_AGENT = "formulary (+https://github.com/deggja/netfetch)"


class _TransientDownloadError(RuntimeError):
    """Internal marker for failures worth another attempt."""


def verify_integrity(descriptor: ArtifactDescriptor, data: bytes) -> None:
    """Raise ``IntegrityMismatch`` unless ``data`` hashes to the descriptor's digest."""
    matches, actual = digests_match(descriptor.content_hash, data)
    if not matches:
        raise IntegrityMismatch(
            f"SHA-256 mismatch for {descriptor.archive_name}: "
            f"expected {descriptor.content_hash}, got {actual}",
            expected=descriptor.content_hash,
            actual=actual,
            version=descriptor.version,
            platform=descriptor.platform,
        )


class ArtifactFetcher:
    """Downloads release archives.

    Parameters
    ----------
    timeout:
        Per-request timeout in seconds (connect, read, write and pool).
    max_attempts:
        Total attempts for transient failures, including the first.
    backoff_max_seconds:
        Upper bound on a single backoff sleep.
    client:
        An existing ``httpx.Client`` to use.  The fetcher does not close
        clients it did not create.
    transport:
        Transport for the client the fetcher creates (tests pass an
        ``httpx.MockTransport``).  Ignored when ``client`` is given.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        max_attempts: int = 4,
        backoff_max_seconds: float = 10.0,
        client: httpx.Client | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._max_attempts = max(1, max_attempts)
        self._backoff_max = backoff_max_seconds
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={"User-Agent": _USER_AGENT},
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fetch(
        self,
        descriptor: ArtifactDescriptor,
        cancel: CancellationToken | None = None,
    ) -> bytes:
        """Download the descriptor's archive and verify it.

        Raises ``DownloadFailed``, ``IntegrityMismatch`` or
        ``OperationCancelled``.
        """
        data = self.download(descriptor, cancel)
        verify_integrity(descriptor, data)
        return data

    def download(
        self,
        descriptor: ArtifactDescriptor,
        cancel: CancellationToken | None = None,
    ) -> bytes:
        """Download the archive bytes without verifying them."""
        retrying = Retrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_random_exponential(multiplier=0.5, max=self._backoff_max),
            retry=retry_if_exception_type(_TransientDownloadError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        logger.info("Downloading %s", descriptor.url)
        try:
            for attempt in retrying:
                with attempt:
                    data = self._download_once(descriptor, cancel)
        except _TransientDownloadError as exc:
            raise DownloadFailed(
                f"Download of {descriptor.archive_name} failed after "
                f"{self._max_attempts} attempt(s): {exc}",
                version=descriptor.version,
                platform=descriptor.platform,
                cause=exc.__cause__ or exc,
            ) from exc

        logger.info("Downloaded %s (%d bytes).", descriptor.archive_name, len(data))
        return data

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> ArtifactFetcher:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _download_once(
        self,
        descriptor: ArtifactDescriptor,
        cancel: CancellationToken | None,
    ) -> bytes:
        context = {"version": descriptor.version, "platform": descriptor.platform}
        if cancel is not None:
            cancel.raise_if_cancelled("fetch", **context)

        try:
            with self._client.stream("GET", descriptor.url) as response:
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise _TransientDownloadError(
                        f"HTTP {response.status_code} from {descriptor.url}"
                    )
                if response.is_error:
                    raise DownloadFailed(
                        f"HTTP {response.status_code} from {descriptor.url}",
                        **context,
                    )
                buffer = bytearray()
                for chunk in response.iter_bytes():
                    if cancel is not None:
                        cancel.raise_if_cancelled("fetch", **context)
                    buffer.extend(chunk)
        except (httpx.UnsupportedProtocol, httpx.InvalidURL) as exc:
            raise DownloadFailed(
                f"Cannot download {descriptor.url}: {exc}", cause=exc, **context
            ) from exc
        except httpx.TransportError as exc:
            raise _TransientDownloadError(f"{type(exc).__name__}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise DownloadFailed(
                f"Download of {descriptor.url} failed: {exc}", cause=exc, **context
            ) from exc

        return bytes(buffer)
