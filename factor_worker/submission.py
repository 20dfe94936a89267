#!/usr/bin/env python3
"""
Factor submission pipeline.

Each factor is validated locally, admitted through the shared SubmissionGate,
posted with retries by the RegistryClient, classified from the response body
and journaled exactly once:

- Accepted / AlreadyKnown -> success journal
- Rejected                -> failure journal (for manual resubmission)

An AlreadyKnown outcome carries Control.STOP_EARLY: the registry already knows
this number's factorization beyond this point, so the remaining factors of the
same number are not submitted.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .journal import Journal, SubmissionRecord
from .locking import SubmissionGate
from .registry_client import RegistryClient

logger = logging.getLogger(__name__)


class OutcomeKind(Enum):
    ACCEPTED = "accepted"
    ALREADY_KNOWN = "already_known"
    REJECTED = "rejected"


class Control(Enum):
    """What the caller should do after a submission."""
    CONTINUE = "continue"
    STOP_EARLY = "stop_early"


@dataclass(frozen=True)
class SubmissionOutcome:
    """Classified result of submitting one factor."""
    kind: OutcomeKind
    reason: Optional[str] = None
    response_text: str = ""

    @classmethod
    def accepted(cls, response_text: str = "") -> 'SubmissionOutcome':
        return cls(OutcomeKind.ACCEPTED, response_text=response_text)

    @classmethod
    def already_known(cls, response_text: str = "") -> 'SubmissionOutcome':
        return cls(OutcomeKind.ALREADY_KNOWN, response_text=response_text)

    @classmethod
    def rejected(cls, reason: str, response_text: str = "") -> 'SubmissionOutcome':
        return cls(OutcomeKind.REJECTED, reason=reason, response_text=response_text)

    @property
    def is_failure(self) -> bool:
        return self.kind is OutcomeKind.REJECTED

    @property
    def control(self) -> Control:
        if self.kind is OutcomeKind.ALREADY_KNOWN:
            return Control.STOP_EARLY
        return Control.CONTINUE


@dataclass
class ResponseTokens:
    """Substrings of the registry's response body that drive classification."""
    submitted: str = "submitted"
    already_known: str = "Already"
    does_not_divide: str = "Does not divide"
    error: str = "Error"


def classify_response(text: str, tokens: Optional[ResponseTokens] = None) -> SubmissionOutcome:
    """
    Classify a registry response body.

    The already-known token only counts alongside the acknowledgment token and
    takes precedence over it. Without an acknowledgment the outcome is
    Rejected, with the most specific reason the body allows.
    """
    tokens = tokens or ResponseTokens()

    if tokens.submitted in text:
        if tokens.already_known in text:
            return SubmissionOutcome.already_known(text)
        return SubmissionOutcome.accepted(text)

    if tokens.does_not_divide in text:
        return SubmissionOutcome.rejected("does not divide", text)
    if tokens.error in text:
        return SubmissionOutcome.rejected("registry error", text)
    return SubmissionOutcome.rejected("no acknowledgment", text)


def validate_factor(number: str, factor: str) -> Optional[str]:
    """Return a rejection reason if ``factor`` cannot be a proper divisor of ``number``."""
    if not factor.isdigit():
        return "invalid factor"
    try:
        n, f = int(number), int(factor)
    except ValueError:
        # Past the interpreter's int/str conversion limit; the registry decides
        return None
    if f <= 1 or f >= n:
        return "invalid factor"
    if n % f != 0:
        return "does not divide"
    return None


@dataclass
class SubmissionSummary:
    """Outcomes of submitting one number's factors, in submission order."""
    number: str
    outcomes: List[Tuple[str, SubmissionOutcome]] = field(default_factory=list)
    stopped_early: bool = False

    def count(self, kind: OutcomeKind) -> int:
        return sum(1 for _, outcome in self.outcomes if outcome.kind is kind)


class SubmissionPipeline:
    """Submit factors to the registry and journal every terminal outcome."""

    def __init__(self, client: RegistryClient, gate: SubmissionGate,
                 success_journal: Journal, failure_journal: Journal,
                 tokens: Optional[ResponseTokens] = None):
        self.client = client
        self.gate = gate
        self.success_journal = success_journal
        self.failure_journal = failure_journal
        self.tokens = tokens or ResponseTokens()
        self.logger = logging.getLogger(f"{__name__}.SubmissionPipeline")

    def _send(self, number: str, factor: str) -> SubmissionOutcome:
        invalid = validate_factor(number, factor)
        if invalid:
            return SubmissionOutcome.rejected(invalid)

        with self.gate.admit():
            result = self.client.report_factor(number, factor)

        if not result.succeeded:
            return SubmissionOutcome.rejected(f"transport failure: {result.error}")
        return classify_response(result.value.text, self.tokens)

    def submit(self, number: str, factor: str) -> SubmissionOutcome:
        """
        Submit one factor and journal its outcome.

        Args:
            number: Decimal string of the composite
            factor: Decimal string of the factor

        Returns:
            SubmissionOutcome; check ``.control`` for early termination
        """
        self.logger.info(f"Found factor {factor} of {number}")
        outcome = self._send(number, factor)
        record = SubmissionRecord(number=number, factor=factor, outcome=outcome.kind.value)

        if outcome.is_failure:
            self.logger.error(
                f"Error submitting factor {factor} of {number}: {outcome.reason}"
                + (f": {outcome.response_text}" if outcome.response_text else "")
            )
            self.failure_journal.append(record)
        else:
            self.success_journal.append(record)
            if outcome.kind is OutcomeKind.ALREADY_KNOWN:
                self.logger.info(f"Factor {factor} of {number} already known!")
            else:
                self.logger.info(f"Factor {factor} of {number} accepted: {outcome.response_text}")

        return outcome

    def submit_all(self, number: str, factors: List[str]) -> SubmissionSummary:
        """
        Submit factors in discovery order, stopping at the first AlreadyKnown.
        """
        summary = SubmissionSummary(number=number)

        for index, factor in enumerate(factors):
            outcome = self.submit(number, factor)
            summary.outcomes.append((factor, outcome))

            if outcome.control is Control.STOP_EARLY:
                summary.stopped_early = True
                remaining = len(factors) - index - 1
                if remaining:
                    self.logger.info(
                        f"Skipping {remaining} remaining factor(s) of {number}"
                    )
                break

        return summary
