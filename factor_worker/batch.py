#!/usr/bin/env python3
"""
Batch driver: claim, factor and report an unbounded stream of composites.

Items are processed strictly one after another. Parallelism comes from
running several worker processes against the same lock directory, never from
threads inside one driver.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .errors import EngineNotFoundError
from .fallback import FallbackController, FallbackResult
from .locking import LockManager, is_decimal
from .submission import OutcomeKind, SubmissionPipeline, SubmissionSummary

logger = logging.getLogger(__name__)


@dataclass
class ItemReport:
    """What happened to one work item."""
    item: str
    skipped: bool = False
    fallback: Optional[FallbackResult] = None
    submission: Optional[SubmissionSummary] = None
    error: Optional[str] = None


@dataclass
class BatchStats:
    """Running totals for a batch."""
    processed: int = 0
    skipped: int = 0
    invalid: int = 0
    failed: int = 0
    fully_factored: int = 0
    factors_found: int = 0
    accepted: int = 0
    already_known: int = 0
    rejected: int = 0
    stopped_early: int = 0
    reports: list = field(default_factory=list)

    def record(self, report: ItemReport) -> None:
        if report.skipped:
            self.skipped += 1
            return
        self.processed += 1
        if report.error:
            self.failed += 1
        if report.fallback:
            self.factors_found += len(report.fallback.factors)
            if report.fallback.proved_prime_cofactor:
                self.fully_factored += 1
        if report.submission:
            self.accepted += report.submission.count(OutcomeKind.ACCEPTED)
            self.already_known += report.submission.count(OutcomeKind.ALREADY_KNOWN)
            self.rejected += report.submission.count(OutcomeKind.REJECTED)
            if report.submission.stopped_early:
                self.stopped_early += 1

    def summary_line(self) -> str:
        return (
            f"processed {self.processed}, skipped {self.skipped}, invalid {self.invalid}, "
            f"failed {self.failed}, fully factored {self.fully_factored}, "
            f"factors found {self.factors_found}, accepted {self.accepted}, "
            f"already known {self.already_known}, rejected {self.rejected}, "
            f"stopped early {self.stopped_early}"
        )


class BatchDriver:
    """Run the lock -> fallback -> submission pipeline over a stream of items."""

    def __init__(self, locks: LockManager, controller: FallbackController,
                 pipeline: Optional[SubmissionPipeline] = None,
                 max_items: Optional[int] = None, keep_reports: bool = False):
        """
        Args:
            locks: Work item lock manager
            controller: Tiered engine controller
            pipeline: Submission pipeline; None logs factors without submitting
            max_items: Stop after this many items were processed (None = unlimited)
            keep_reports: Keep every ItemReport in the returned stats
        """
        self.locks = locks
        self.controller = controller
        self.pipeline = pipeline
        self.max_items = max_items
        self.keep_reports = keep_reports
        self.stop_requested = False
        self.logger = logging.getLogger(f"{__name__}.BatchDriver")

    def request_stop(self) -> None:
        """Finish the current item, then stop reading input."""
        self.stop_requested = True

    def process_item(self, item: str) -> ItemReport:
        """
        Claim and process one item.

        Raises:
            EngineNotFoundError: If an engine executable is missing
        """
        try:
            token = self.locks.try_acquire(item)
        except OSError as e:
            self.logger.error(f"Cannot lock {item[:60]}: {e}")
            return ItemReport(item=item, error=str(e))
        if token is None:
            return ItemReport(item=item, skipped=True)

        report = ItemReport(item=item)
        with token:
            try:
                report.fallback = self.controller.factor_all(item)
                factors = report.fallback.factors

                if not factors:
                    self.logger.info(f"No factors found for {item}")
                elif self.pipeline is None:
                    self.logger.info(f"Not submitting {len(factors)} factor(s) of {item}: {', '.join(factors)}")
                else:
                    report.submission = self.pipeline.submit_all(item, factors)

            except EngineNotFoundError:
                raise
            except Exception as e:
                self.logger.exception(f"Error processing {item}: {e}")
                report.error = str(e)

        return report

    def run(self, lines: Iterable[str]) -> BatchStats:
        """
        Process items until the input ends, a stop is requested, or the limit is hit.

        Args:
            lines: Input lines, one decimal number each (may be infinite)

        Returns:
            BatchStats for the run

        Raises:
            EngineNotFoundError: If an engine executable is missing
        """
        stats = BatchStats()

        for line in lines:
            if self.stop_requested:
                self.logger.info("Stop requested, not reading further input")
                break

            item = line.strip()
            if not item:
                continue
            if not is_decimal(item):
                self.logger.warning(f"Ignoring input line that is not a decimal number: {item[:60]!r}")
                stats.invalid += 1
                continue

            report = self.process_item(item)
            stats.record(report)
            if self.keep_reports:
                stats.reports.append(report)

            if self.max_items and stats.processed >= self.max_items:
                self.logger.info(f"Reached item limit ({self.max_items}), stopping")
                break
            if self.stop_requested:
                self.logger.info(f"Stop requested, exiting after {item}")
                break

        self.logger.info(f"Batch finished: {stats.summary_line()}")
        return stats
