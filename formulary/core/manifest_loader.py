"""Manifest loading — JSON formula files and the bundled netfetch manifest."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from formulary.core.errors import ManifestError
from formulary.models.manifest import InstallManifest

logger = logging.getLogger(__name__)

BUNDLED_MANIFEST_PATH = Path(__file__).resolve().parent.parent / "data" / "netfetch.json"


def parse_manifest(raw: str | bytes, *, source: str = "<string>") -> InstallManifest:
    """Validate manifest JSON text into an ``InstallManifest``."""
    try:
        return InstallManifest.model_validate_json(raw)
    except ValidationError as exc:
        if any(error["type"] == "json_invalid" for error in exc.errors()):
            raise ManifestError(
                f"Manifest {source} is not valid JSON", cause=exc
            ) from exc
        raise ManifestError(
            f"Manifest {source} failed validation: {exc.error_count()} error(s)",
            cause=exc,
        ) from exc


def load_manifest(path: Path | None = None) -> InstallManifest:
    """Load a manifest from ``path``, or the bundled netfetch manifest.

    Raises ``ManifestError`` if the file is missing, unreadable, not JSON,
    or does not validate.
    """
    manifest_path = Path(path) if path is not None else BUNDLED_MANIFEST_PATH
    try:
        raw = manifest_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(
            f"Cannot read manifest {manifest_path}", cause=exc
        ) from exc
    except UnicodeDecodeError as exc:
        raise ManifestError(
            f"Manifest {manifest_path} is not UTF-8 text", cause=exc
        ) from exc

    manifest = parse_manifest(raw, source=str(manifest_path))
    logger.debug(
        "Loaded manifest '%s' v%s from %s (%d earlier revision(s)).",
        manifest.name,
        manifest.version,
        manifest_path,
        len(manifest.revisions),
    )
    return manifest
