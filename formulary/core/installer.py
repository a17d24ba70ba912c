"""Installer — resolves, fetches, verifies, extracts, installs and smoke-tests.

The Installer wires together the DescriptorCatalog, ArtifactFetcher,
ArchiveCache, BinaryInstaller and the smoke test into one strictly
sequential operation, tracked by an InstallJournal:

    requested -> resolved -> fetched -> verified -> extracted
              -> installed -> smoke_tested -> done

Any stage may end the operation in ``failed(reason)``.  Cancellation is
honoured until the archive has been fetched; from the binary write
onwards the operation completes or rolls back.  An installed binary that
fails its smoke test is rolled back, so callers never see a partial
success.
"""

from __future__ import annotations

import logging
from pathlib import Path

from formulary.config import InstallerSettings
from formulary.core.archive_cache import ArchiveCache
from formulary.core.binary_installer import BinaryInstaller, target_lock
from formulary.core.cancellation import CancellationToken
from formulary.core.catalog import DescriptorCatalog
from formulary.core.errors import InstallerError
from formulary.core.extractor import extract_executable
from formulary.core.fetcher import ArtifactFetcher, verify_integrity
from formulary.core.install_journal import InstallJournal
from formulary.core.manifest_loader import load_manifest
from formulary.core.smoke import verify_install
from formulary.models.install import (
    InstalledBinary,
    InstallReport,
    InstallStage,
    SmokeTestResult,
)
from formulary.models.manifest import ArtifactDescriptor, InstallManifest
from formulary.models.platforms import Platform

logger = logging.getLogger(__name__)


class Installer:
    """Installs one tool from its manifest.

    Parameters
    ----------
    manifest:
        The install manifest.  Loaded from ``settings.manifest_path`` (or
        the bundled netfetch manifest) if not provided.
    settings:
        Installer settings.  Uses env-driven defaults if not provided.
    fetcher:
        Archive fetcher.  Built from the settings if not provided.
    cache:
        Archive cache.  Built from the settings when ``use_cache`` is on.
    """

    def __init__(
        self,
        manifest: InstallManifest | None = None,
        *,
        settings: InstallerSettings | None = None,
        fetcher: ArtifactFetcher | None = None,
        cache: ArchiveCache | None = None,
    ) -> None:
        self.settings = settings or InstallerSettings()
        self.manifest = manifest or load_manifest(self.settings.manifest_path)
        self.catalog = DescriptorCatalog.from_manifest(self.manifest)
        self.fetcher = fetcher or ArtifactFetcher(
            timeout=self.settings.fetch_timeout_seconds,
            max_attempts=self.settings.fetch_max_attempts,
            backoff_max_seconds=self.settings.fetch_backoff_max_seconds,
        )
        if cache is None and self.settings.use_cache:
            cache = ArchiveCache(self.settings.cache_dir)
        self.cache = cache
        self.binary_installer = BinaryInstaller()

        # Journal of the most recent install(), kept for failure reporting
        self.last_journal: InstallJournal | None = None

    @property
    def default_target(self) -> Path:
        return Path(self.settings.bin_dir).expanduser() / self.manifest.installed_binary_name

    # ------------------------------------------------------------------
    # Individual stages
    # ------------------------------------------------------------------

    def resolve(
        self, version: str | None = None, platform: Platform | None = None
    ) -> ArtifactDescriptor:
        """See ``DescriptorCatalog.resolve``."""
        return self.catalog.resolve(version, platform)

    def fetch(
        self,
        descriptor: ArtifactDescriptor,
        cancel: CancellationToken | None = None,
    ) -> bytes:
        """Return verified archive bytes, from the cache when possible."""
        data, _ = self._obtain_archive(descriptor, cancel)
        verify_integrity(descriptor, data)
        return data

    def extract(self, data: bytes) -> bytes:
        return extract_executable(data, self.manifest.installed_binary_name)

    def verify_install(
        self,
        target_path: Path | None = None,
        version: str | None = None,
    ) -> SmokeTestResult:
        """Smoke-test an installed binary with its version's arguments."""
        target = Path(target_path) if target_path else self.default_target
        args = self.catalog.smoke_test_args_for(version or self.manifest.version)
        return verify_install(
            target, args, timeout=self.settings.smoke_test_timeout_seconds
        )

    # ------------------------------------------------------------------
    # Full operation
    # ------------------------------------------------------------------

    def install(
        self,
        version: str | None = None,
        platform: Platform | None = None,
        *,
        target_path: Path | None = None,
        cancel: CancellationToken | None = None,
    ) -> InstallReport:
        """Run the whole pipeline and return a report of the DONE operation.

        Raises the ``InstallerError`` subclass for the stage that failed;
        ``self.last_journal`` then ends in ``failed(reason)``.
        """
        journal = InstallJournal()
        self.last_journal = journal
        target = Path(target_path) if target_path else self.default_target

        try:
            if cancel is not None:
                cancel.raise_if_cancelled("resolve", version=version, platform=platform)
            descriptor = self.resolve(version, platform)
            journal.advance(
                InstallStage.RESOLVED, f"{descriptor.version} {descriptor.platform}"
            )
            logger.info(
                "Installing %s %s for %s into %s",
                self.manifest.name,
                descriptor.version,
                descriptor.platform,
                target,
            )

            data, from_cache = self._obtain_archive(descriptor, cancel)
            journal.advance(
                InstallStage.FETCHED,
                f"{len(data)} bytes{' (cache)' if from_cache else ''}",
            )

            verify_integrity(descriptor, data)
            journal.advance(InstallStage.VERIFIED, f"sha256:{descriptor.content_hash[:16]}")
            if self.cache is not None and not from_cache:
                self.cache.store(data)

            executable = self.extract(data)
            journal.advance(InstallStage.EXTRACTED, f"{len(executable)} bytes")

            smoke_args = self.catalog.smoke_test_args_for(descriptor.version)
            with target_lock(target, timeout=self.settings.lock_timeout_seconds):
                installed = self.binary_installer.install(executable, target)
                try:
                    journal.advance(InstallStage.INSTALLED, str(target))
                    smoke = verify_install(
                        target,
                        smoke_args,
                        timeout=self.settings.smoke_test_timeout_seconds,
                    )
                    journal.advance(InstallStage.SMOKE_TESTED, " ".join(smoke.command))
                except BaseException:
                    self._rollback(installed)
                    raise
                self.binary_installer.commit(installed)

            journal.advance(InstallStage.DONE)
        except InstallerError as exc:
            if exc.version is None and version is not None:
                exc.version = version
            journal.fail(exc.reason, str(exc))
            logger.error("Install of %s failed: %s", self.manifest.name, exc)
            raise
        except Exception as exc:
            journal.fail("internal_error", f"{type(exc).__name__}: {exc}")
            raise

        logger.info("Installed %s %s at %s", self.manifest.name, descriptor.version, target)
        return InstallReport(
            manifest_name=self.manifest.name,
            descriptor=descriptor,
            target_path=target,
            binary_sha256=installed.sha256,
            smoke_test=smoke,
            from_cache=from_cache,
            transitions=journal.transitions,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _obtain_archive(
        self,
        descriptor: ArtifactDescriptor,
        cancel: CancellationToken | None,
    ) -> tuple[bytes, bool]:
        """Return (archive bytes, came_from_cache).  Bytes are not yet verified."""
        if self.cache is not None:
            cached = self.cache.retrieve(descriptor.content_hash)
            if cached is not None:
                logger.info("Using cached archive %s", descriptor.archive_name)
                return cached, True
        return self.fetcher.download(descriptor, cancel), False

    def _rollback(self, installed: InstalledBinary) -> None:
        try:
            self.binary_installer.rollback(installed)
        except OSError as exc:
            logger.error(
                "Rollback of %s failed; the binary may be unusable: %s",
                installed.target_path,
                exc,
            )
