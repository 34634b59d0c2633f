"""Errors raised by the pull request merge workflow."""

from __future__ import annotations

from typing import TYPE_CHECKING

from openwrt_maint.types import ExitCode, MergeStage

if TYPE_CHECKING:
    from openwrt_maint.merge.workflow import MergeOutcome


class MergeError(Exception):
    """Raised when a merge workflow stage fails.

    Every failure maps to a dedicated process exit code; the workflow never
    retries or rolls back earlier stages.
    """

    def __init__(
        self,
        message: str,
        stage: MergeStage,
        exit_code: ExitCode,
        outcome: MergeOutcome | None = None,
    ) -> None:
        """Initialize MergeError.

        Args:
            message: Human-readable error message.
            stage: Stage that failed.
            exit_code: Process exit code for this failure.
            outcome: Partial outcome when the failure happened after the merge.
        """
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.exit_code = exit_code
        self.outcome = outcome

    @property
    def code(self) -> str:
        return self.exit_code.name.lower()


__all__ = ["MergeError"]
