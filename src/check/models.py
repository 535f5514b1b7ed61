"""Task and outcome types for package checks."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class OutcomeStatus(Enum):
    """Final state of a check task."""
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class CheckOutcome:
    """Result of checking one package; ``reason`` is set for failures and skips."""
    status: OutcomeStatus
    reason: Optional[str] = None

    @classmethod
    def passed(cls) -> "CheckOutcome":
        return cls(OutcomeStatus.PASSED)

    @classmethod
    def failed(cls, reason: str) -> "CheckOutcome":
        return cls(OutcomeStatus.FAILED, reason)

    @classmethod
    def skipped(cls, reason: str) -> "CheckOutcome":
        return cls(OutcomeStatus.SKIPPED, reason)

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.PASSED


NO_SOURCE_REASON = "no source"


@dataclass
class CheckTask:
    """One target package scheduled for checking.

    ``index`` is the 1-based position in the target list. Times come from the
    monotonic clock, so elapsed time is never negative.
    """
    index: int
    name: str
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    outcome: Optional[CheckOutcome] = None
    check_path: Optional[str] = None

    @property
    def elapsed(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return max(0.0, self.end_time - self.start_time)

    @property
    def finished(self) -> bool:
        return self.outcome is not None


@dataclass
class CheckRun:
    """All tasks of one scheduler run, in target order."""
    check_dir: str
    tasks: List[CheckTask] = field(default_factory=list)

    def with_status(self, status: OutcomeStatus) -> List[CheckTask]:
        return [t for t in self.tasks if t.outcome is not None and t.outcome.status is status]

    @property
    def has_failures(self) -> bool:
        return bool(self.with_status(OutcomeStatus.FAILED))
