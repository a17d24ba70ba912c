"""Post-install smoke test — run the binary's version command."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from formulary.core.errors import SmokeTestFailed
from formulary.models.install import SmokeTestResult

logger = logging.getLogger(__name__)


def verify_install(
    target: Path,
    args: Sequence[str],
    *,
    timeout: float = 30.0,
) -> SmokeTestResult:
    """Invoke ``target`` with ``args`` and require exit status 0.

    The arguments come from the manifest: the tool answered to
    ``--version`` in early releases and to ``version`` later.

    Raises ``SmokeTestFailed`` on a non-zero exit, a timeout, or when the
    binary cannot be executed at all.
    """
    command = [str(target), *args]
    logger.info("Smoke testing: %s", " ".join(command))
    try:
        completed = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise SmokeTestFailed(
            f"'{' '.join(command)}' did not exit within {timeout}s", cause=exc
        ) from exc
    except OSError as exc:
        raise SmokeTestFailed(f"Cannot execute {target}: {exc}", cause=exc) from exc

    output = (completed.stdout or "") + (completed.stderr or "")
    if completed.returncode != 0:
        raise SmokeTestFailed(
            f"'{' '.join(command)}' exited with status {completed.returncode}",
            exit_code=completed.returncode,
            output=output.strip(),
        )

    return SmokeTestResult(
        command=command,
        exit_code=completed.returncode,
        stdout=(completed.stdout or "").strip(),
    )
