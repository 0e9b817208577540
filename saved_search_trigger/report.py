from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from saved_search_trigger.dispatcher import DispatchOutcome, OutcomeStatus

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    total: int = 0
    triggered: List[Tuple[str, str]] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def triggered_count(self) -> int:
        return len(self.triggered)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


def build_summary(outcomes: Iterable[DispatchOutcome]) -> RunSummary:
    summary = RunSummary()
    for outcome in outcomes:
        summary.total += 1
        if outcome.status is OutcomeStatus.SUCCESS:
            summary.triggered.append((outcome.alert, outcome.sid or ""))
        elif outcome.status is OutcomeStatus.SKIPPED:
            summary.skipped.append((outcome.alert, outcome.reason or ""))
        else:
            summary.failed.append((outcome.alert, outcome.reason or ""))
    return summary


def log_summary(summary: RunSummary) -> None:
    if summary.skipped:
        logger.warning("SUMMARY: %d alerts were skipped due to safety checks:", summary.skipped_count)
        for alert, reason in summary.skipped:
            logger.warning("  - %s (%s)", alert, reason)
        logger.warning("Please review these alerts' trigger actions to ensure they don't cause infinite loops.")
    if summary.triggered:
        logger.info("Triggered searches (alert -> SID):")
        for alert, sid in summary.triggered:
            logger.info("  - %s -> %s", alert, sid)
    if summary.failed:
        logger.error("SUMMARY: %d alerts failed to trigger:", summary.failed_count)
        for alert, reason in summary.failed:
            logger.error("  - %s (%s)", alert, reason)
    logger.info(
        "Script execution completed. Total: %d alerts, Triggered: %d alerts, Skipped: %d alerts, Failed: %d alerts",
        summary.total,
        summary.triggered_count,
        summary.skipped_count,
        summary.failed_count,
    )
