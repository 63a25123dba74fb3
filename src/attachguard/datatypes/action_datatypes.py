"""
Outcome records for enforcement side effects.

Each side effect (delete, timeout, notify) reports an ActionOutcome instead
of raising; the pipeline collects them into an EnforcementResult that is
logged once per blocked message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ActionStep(Enum):
    """Enforcement side effects in the order they run."""

    DELETE = "delete"
    TIMEOUT = "timeout"
    NOTIFY = "notify"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True, frozen=True)
class ActionOutcome:
    step: ActionStep
    succeeded: bool
    error: Optional[str] = None
    skipped: bool = False

    @classmethod
    def ok(cls, step: ActionStep) -> "ActionOutcome":
        return cls(step=step, succeeded=True)

    @classmethod
    def failed(cls, step: ActionStep, error: str) -> "ActionOutcome":
        return cls(step=step, succeeded=False, error=error)

    @classmethod
    def skip(cls, step: ActionStep, why: str) -> "ActionOutcome":
        return cls(step=step, succeeded=False, error=why, skipped=True)


@dataclass(slots=True)
class EnforcementResult:
    """What happened to one flagged message.

    Attributes:
        reasons: Block reasons; the first is a sentence, later ones bare tokens.
        outcomes: Side effect outcomes in execution order.
    """

    reasons: List[str] = field(default_factory=list)
    outcomes: List[ActionOutcome] = field(default_factory=list)

    def record(self, outcome: ActionOutcome) -> ActionOutcome:
        self.outcomes.append(outcome)
        return outcome

    def outcome_for(self, step: ActionStep) -> Optional[ActionOutcome]:
        for outcome in self.outcomes:
            if outcome.step is step:
                return outcome
        return None

    @property
    def blocked(self) -> bool:
        """True once the message has actually been deleted."""
        deleted = self.outcome_for(ActionStep.DELETE)
        return deleted is not None and deleted.succeeded

    @property
    def reason_text(self) -> str:
        return ", ".join(self.reasons)

    def summary(self) -> str:
        parts = []
        for outcome in self.outcomes:
            if outcome.succeeded:
                parts.append(f"{outcome.step}=ok")
            elif outcome.skipped:
                parts.append(f"{outcome.step}=skipped")
            else:
                parts.append(f"{outcome.step}=failed({outcome.error})")
        return " ".join(parts)
