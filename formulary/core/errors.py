"""Error taxonomy for install operations.

Every failure is terminal for the operation that raised it.  Only
``DownloadFailed`` is retried, and only inside the fetcher for transient
network causes.  Each error carries the version, platform and underlying
cause so a failure can be diagnosed without re-running.
"""

from __future__ import annotations

from formulary.models.platforms import Platform

__all__ = [
    "InstallerError",
    "ManifestError",
    "UnknownVersion",
    "UnsupportedPlatform",
    "DownloadFailed",
    "IntegrityMismatch",
    "MalformedArchive",
    "InstallFailed",
    "SmokeTestFailed",
    "OperationCancelled",
]


class InstallerError(RuntimeError):
    """Base class for all install failures.

    Parameters
    ----------
    message:
        Human-readable description.
    version, platform:
        The requested release, when known at the point of failure.
    cause:
        The underlying exception, if any.  Also chained via ``raise ... from``.
    """

    reason: str = "error"

    def __init__(
        self,
        message: str,
        *,
        version: str | None = None,
        platform: Platform | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.version = version
        self.platform = platform
        self.cause = cause

    def context(self) -> dict[str, str]:
        """Diagnostic context as plain strings, for logs and the CLI."""
        ctx: dict[str, str] = {"reason": self.reason}
        if self.version is not None:
            ctx["version"] = self.version
        if self.platform is not None:
            ctx["platform"] = str(self.platform)
        if self.cause is not None:
            ctx["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return ctx

    def __str__(self) -> str:
        extras = [f"{k}={v}" for k, v in self.context().items() if k != "reason"]
        if not extras:
            return self.message
        return f"{self.message} ({', '.join(extras)})"


class ManifestError(InstallerError):
    """Raised when a manifest file cannot be read or does not validate."""

    reason = "invalid_manifest"


class UnknownVersion(InstallerError):
    """Raised when the requested version is not published."""

    reason = "unknown_version"


class UnsupportedPlatform(InstallerError):
    """Raised when a published version has no archive for the platform."""

    reason = "unsupported_platform"


class DownloadFailed(InstallerError):
    """Raised on any I/O error retrieving an archive, after retries."""

    reason = "download_failed"


class IntegrityMismatch(InstallerError):
    """Raised when downloaded bytes do not hash to the descriptor's SHA-256."""

    reason = "integrity_mismatch"

    def __init__(self, message: str, *, expected: str, actual: str, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.expected = expected
        self.actual = actual


class MalformedArchive(InstallerError):
    """Raised when an archive does not hold exactly one target executable."""

    reason = "malformed_archive"


class InstallFailed(InstallerError):
    """Raised on filesystem errors while placing the binary."""

    reason = "install_failed"


class SmokeTestFailed(InstallerError):
    """Raised when the installed binary does not run its version command cleanly."""

    reason = "smoke_test_failed"

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        output: str = "",
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.exit_code = exit_code
        self.output = output


class OperationCancelled(InstallerError):
    """Raised when cancellation is requested before the binary write begins."""

    reason = "cancelled"
