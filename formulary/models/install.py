"""Install operation models — stage state machine and results."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from formulary.models.manifest import ArtifactDescriptor


class InstallStage(str, Enum):
    """Stages of a single install operation, in pipeline order."""

    REQUESTED = "requested"
    RESOLVED = "resolved"
    FETCHED = "fetched"
    VERIFIED = "verified"
    EXTRACTED = "extracted"
    INSTALLED = "installed"
    SMOKE_TESTED = "smoke_tested"
    DONE = "done"
    FAILED = "failed"


# Strictly linear; every non-terminal stage may fail.
# Terminal stages (DONE, FAILED) have no outgoing transitions.  A retry is
# a new operation starting again from REQUESTED.
VALID_TRANSITIONS: dict[InstallStage, set[InstallStage]] = {
    InstallStage.REQUESTED: {InstallStage.RESOLVED, InstallStage.FAILED},
    InstallStage.RESOLVED: {InstallStage.FETCHED, InstallStage.FAILED},
    InstallStage.FETCHED: {InstallStage.VERIFIED, InstallStage.FAILED},
    InstallStage.VERIFIED: {InstallStage.EXTRACTED, InstallStage.FAILED},
    InstallStage.EXTRACTED: {InstallStage.INSTALLED, InstallStage.FAILED},
    InstallStage.INSTALLED: {InstallStage.SMOKE_TESTED, InstallStage.FAILED},
    InstallStage.SMOKE_TESTED: {InstallStage.DONE, InstallStage.FAILED},
    InstallStage.DONE: set(),  # terminal
    InstallStage.FAILED: set(),  # terminal
}

TERMINAL_STAGES: frozenset[InstallStage] = frozenset(
    {InstallStage.DONE, InstallStage.FAILED}
)


class InstallTransition(BaseModel):
    """Records a single stage transition for the operation journal."""

    model_config = ConfigDict(frozen=True)

    from_stage: InstallStage
    to_stage: InstallStage
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    detail: str = ""
    reason: str | None = None  # populated when entering FAILED

    @property
    def label(self) -> str:
        if self.to_stage == InstallStage.FAILED and self.reason:
            return f"{self.from_stage.value}->failed({self.reason})"
        return f"{self.from_stage.value}->{self.to_stage.value}"


class SmokeTestResult(BaseModel):
    """Outcome of a passing post-install smoke test."""

    model_config = ConfigDict(frozen=True)

    command: list[str]
    exit_code: int
    stdout: str = ""


class InstalledBinary(BaseModel):
    """A binary written to its target path, pending commit or rollback."""

    model_config = ConfigDict(frozen=True)

    target_path: Path
    sha256: str
    size_bytes: int
    backup_path: Path | None = None  # previous binary, kept until commit


class InstallReport(BaseModel):
    """Summary of a completed (DONE) install operation."""

    model_config = ConfigDict(frozen=True)

    manifest_name: str
    descriptor: ArtifactDescriptor
    target_path: Path
    binary_sha256: str
    smoke_test: SmokeTestResult
    from_cache: bool = False
    transitions: list[InstallTransition] = Field(default_factory=list)

    @property
    def final_stage(self) -> InstallStage:
        if not self.transitions:
            return InstallStage.REQUESTED
        return self.transitions[-1].to_stage
