"""Per-operation install state machine.

Enforces:
- Valid stage transitions only (VALID_TRANSITIONS table)
- Terminal DONE / FAILED stages
- Every transition recorded, in order, with an optional failure reason
"""

from __future__ import annotations

import logging

from formulary.models.install import (
    TERMINAL_STAGES,
    VALID_TRANSITIONS,
    InstallStage,
    InstallTransition,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested stage transition is not valid."""


class InstallJournal:
    """Tracks one install operation from REQUESTED to DONE or FAILED.

    A journal is single-use.  Retrying an install means starting a new
    journal, and so a new operation, from REQUESTED.
    """

    def __init__(self) -> None:
        self._stage = InstallStage.REQUESTED
        self._transitions: list[InstallTransition] = []

    @property
    def stage(self) -> InstallStage:
        return self._stage

    @property
    def transitions(self) -> list[InstallTransition]:
        return list(self._transitions)

    @property
    def is_terminal(self) -> bool:
        return self._stage in TERMINAL_STAGES

    @property
    def failure_reason(self) -> str | None:
        if self._stage != InstallStage.FAILED:
            return None
        return self._transitions[-1].reason

    def advance(self, target: InstallStage, detail: str = "") -> InstallTransition:
        """Move to ``target``, which must be the next stage in the pipeline."""
        if target == InstallStage.FAILED:
            raise InvalidTransitionError("Use fail() to enter the failed stage")
        return self._record(target, detail=detail)

    def fail(self, reason: str, detail: str = "") -> InstallTransition:
        """Move to FAILED from any non-terminal stage."""
        transition = self._record(InstallStage.FAILED, detail=detail, reason=reason)
        logger.debug("Install failed at %s: %s", transition.from_stage.value, reason)
        return transition

    def get_available_transitions(self) -> set[InstallStage]:
        return set(VALID_TRANSITIONS.get(self._stage, set()))

    def _record(
        self,
        target: InstallStage,
        *,
        detail: str,
        reason: str | None = None,
    ) -> InstallTransition:
        allowed = VALID_TRANSITIONS.get(self._stage, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition from {self._stage.value} to {target.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )
        transition = InstallTransition(
            from_stage=self._stage,
            to_stage=target,
            detail=detail,
            reason=reason,
        )
        self._transitions.append(transition)
        self._stage = target
        return transition
