from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from saved_search_trigger.config import TriggerConfig
from saved_search_trigger.safety import SafetyAnalyzer, SafetyVerdict, VerdictKind
from saved_search_trigger.splunk_client import WILDCARD, SplunkClient, TransportResult

logger = logging.getLogger(__name__)

SID_RE = re.compile(r"<sid>([^<]*)</sid>")
RESPONSE_EXCERPT_CHARS = 500
SEPARATOR = "-----------------------------"


class AlertState(str, Enum):
    PENDING = "pending"
    SAFETY_CHECK = "safety_check"
    SKIPPED = "skipped"
    DISPATCHING = "dispatching"
    RETRYING_WILDCARD = "retrying_wildcard"
    SUCCESS = "success"
    FAILED = "failed"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class DispatchOutcome:
    alert: str
    status: OutcomeStatus
    sid: Optional[str] = None
    reason: Optional[str] = None
    verdict: Optional[SafetyVerdict] = None
    wildcard: bool = False
    response_excerpt: str = ""


def parse_sid(body: str) -> Optional[str]:
    match = SID_RE.search(body or "")
    return match.group(1) if match else None


def _excerpt(result: TransportResult) -> str:
    return (result.body or "")[:RESPONSE_EXCERPT_CHARS]


class AlertRun:
    """State machine for a single alert: safety check, dispatch, optional wildcard retry."""

    def __init__(self, alert: str, client: SplunkClient, analyzer: SafetyAnalyzer, config: TriggerConfig) -> None:
        self.alert = alert
        self.client = client
        self.analyzer = analyzer
        self.config = config
        self.state = AlertState.PENDING
        self.verdict: Optional[SafetyVerdict] = None

    def _move(self, state: AlertState) -> None:
        logger.debug("alert state change", extra={"alert": self.alert, "from": self.state.value, "to": state.value})
        self.state = state

    def run(self) -> DispatchOutcome:
        logger.info("Processing alert: %s", self.alert)
        self._move(AlertState.SAFETY_CHECK)
        self.verdict = self.analyzer.check(self.alert)
        if not self.verdict.allows_dispatch:
            return self._skip(f"dangerous trigger action pattern: {self.verdict.reason}")
        if self.verdict.kind is VerdictKind.UNKNOWN:
            logger.warning("UNVERIFIED: Triggering alert '%s' without a safety check (%s)", self.alert, self.verdict.reason)

        self._move(AlertState.DISPATCHING)
        logger.info("Triggering alert: %s", self.alert)
        result = self.client.dispatch_saved_search(self.alert, self.config.owner, self.config.app)
        sid = parse_sid(result.body) if result.ok else None
        if sid is not None:
            logger.info("SUCCESS: Successfully triggered: %s (SID: %s)", self.alert, sid)
            return self._finish(OutcomeStatus.SUCCESS, sid=sid)

        if result.http_error:
            self._move(AlertState.RETRYING_WILDCARD)
            logger.info("Retrying with wildcard namespace...")
            result = self.client.dispatch_saved_search(self.alert, WILDCARD, WILDCARD)
            sid = parse_sid(result.body) if result.ok else None
            if sid is not None:
                logger.info("SUCCESS: Successfully triggered with wildcard namespace: %s (SID: %s)", self.alert, sid)
                return self._finish(OutcomeStatus.SUCCESS, sid=sid, wildcard=True)
            logger.error("FAILED: Search not found or permission denied: %s", self.alert)
            return self._fail("search not found or permission denied", result, wildcard=True)

        if result.ok:
            reason = "no search id in dispatch response"
        elif result.status_code is None:
            reason = f"request failed: {result.error or 'no response'}"
        else:
            reason = f"HTTP {result.status_code}"
        logger.error("FAILED: Failed to trigger: %s (%s)", self.alert, reason)
        return self._fail(reason, result)

    def _skip(self, reason: str) -> DispatchOutcome:
        self._move(AlertState.SKIPPED)
        logger.warning("SKIPPED: Alert '%s' was skipped due to safety check", self.alert)
        return DispatchOutcome(alert=self.alert, status=OutcomeStatus.SKIPPED, reason=reason, verdict=self.verdict)

    def _fail(self, reason: str, result: TransportResult, wildcard: bool = False) -> DispatchOutcome:
        excerpt = _excerpt(result)
        logger.info("Response: %s", excerpt)
        return self._finish(OutcomeStatus.FAILED, reason=reason, wildcard=wildcard, response_excerpt=excerpt)

    def _finish(self, status: OutcomeStatus, **fields) -> DispatchOutcome:
        self._move(AlertState.SUCCESS if status is OutcomeStatus.SUCCESS else AlertState.FAILED)
        return DispatchOutcome(alert=self.alert, status=status, verdict=self.verdict, **fields)


class AlertTrigger:
    """Runs every configured alert in order, isolating failures per alert."""

    def __init__(self, client: SplunkClient, config: TriggerConfig, analyzer: Optional[SafetyAnalyzer] = None) -> None:
        self.client = client
        self.config = config
        self.analyzer = analyzer or SafetyAnalyzer(client, config)

    def trigger(self, alert: str) -> DispatchOutcome:
        try:
            return AlertRun(alert, self.client, self.analyzer, self.config).run()
        except Exception as exc:
            logger.exception("FAILED: Unexpected error while processing alert: %s", alert)
            return DispatchOutcome(alert=alert, status=OutcomeStatus.FAILED, reason=f"unexpected error: {exc}")
        finally:
            logger.info(SEPARATOR)

    def trigger_all(self, alerts: Iterable[str]) -> List[DispatchOutcome]:
        alerts = list(alerts)
        logger.info("Starting to trigger %d alerts", len(alerts))
        return [self.trigger(alert) for alert in alerts]
