"""Loop prevention: decide whether dispatching a saved search could re-run this script.

The check is a case-insensitive pattern scan of the raw saved search configuration
against this script's own identity. An alert that reaches the script through an
intermediary (another script, a webhook receiver) is not detected.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from saved_search_trigger.config import TriggerConfig
from saved_search_trigger.splunk_client import WILDCARD, SplunkClient

logger = logging.getLogger(__name__)

INTERPRETERS = ("bash", "sh", "/bin/bash", "/bin/sh", "python", "python3")
ACTION_MARKERS = ("action.script", "action.webhook", "action.custom")
UNKNOWN_REASON = "could not retrieve configuration"


class VerdictKind(str, Enum):
    SAFE = "safe"
    DANGEROUS = "dangerous"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SafetyVerdict:
    kind: VerdictKind
    reason: Optional[str] = None
    action_markers: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def allows_dispatch(self) -> bool:
        # Unknown proceeds: an unreadable configuration does not block the alert.
        return self.kind is not VerdictKind.DANGEROUS

    @classmethod
    def safe(cls, action_markers: Tuple[str, ...] = ()) -> "SafetyVerdict":
        return cls(VerdictKind.SAFE, None, tuple(action_markers))

    @classmethod
    def dangerous(cls, pattern: str) -> "SafetyVerdict":
        return cls(VerdictKind.DANGEROUS, pattern)

    @classmethod
    def unknown(cls, reason: str = UNKNOWN_REASON) -> "SafetyVerdict":
        return cls(VerdictKind.UNKNOWN, reason)


def dangerous_patterns(script_name: str) -> List[str]:
    """Patterns that identify this script inside a trigger action, in match order."""
    stem, dot, _ = script_name.rpartition(".")
    patterns = [script_name]
    if dot and stem:
        patterns.append(stem)
    patterns.extend(f"{interpreter}.*{script_name}" for interpreter in INTERPRETERS)
    return patterns


def _compile(pattern: str) -> "re.Pattern[str]":
    literal_parts = pattern.split(".*")
    return re.compile(".*".join(re.escape(part) for part in literal_parts), re.IGNORECASE)


def classify_configuration(text: str, script_name: str) -> SafetyVerdict:
    """Classify raw configuration text; a pure function of its inputs."""
    for pattern in dangerous_patterns(script_name):
        if _compile(pattern).search(text):
            return SafetyVerdict.dangerous(pattern)
    lowered = text.lower()
    markers = tuple(marker for marker in ACTION_MARKERS if marker in lowered)
    return SafetyVerdict.safe(markers)


class SafetyAnalyzer:
    def __init__(self, client: SplunkClient, config: TriggerConfig) -> None:
        self.client = client
        self.config = config

    def fetch_configuration(self, alert_name: str) -> Optional[str]:
        result = self.client.get_saved_search(alert_name, self.config.owner, self.config.app)
        if not result.ok:
            logger.info("Retrying with wildcard namespace for configuration check...")
            result = self.client.get_saved_search(alert_name, WILDCARD, WILDCARD)
        if not result.ok:
            return None
        return result.body

    def check(self, alert_name: str) -> SafetyVerdict:
        logger.info("Checking trigger actions for alert: %s", alert_name)
        text = self.fetch_configuration(alert_name)
        if text is None:
            logger.warning(
                "WARNING: Could not retrieve configuration for alert: %s. Proceeding with caution.",
                alert_name,
            )
            return SafetyVerdict.unknown()

        verdict = classify_configuration(text, self.config.script_name)
        if verdict.kind is VerdictKind.DANGEROUS:
            logger.error("DANGER: Alert '%s' contains trigger action that may execute this script!", alert_name)
            logger.error("DANGER: Pattern detected: %s", verdict.reason)
            logger.error("DANGER: Skipping this alert to prevent infinite loop")
            return verdict

        if verdict.action_markers:
            logger.warning(
                "WARNING: Alert '%s' has script/webhook actions (%s). Please verify they don't trigger this script.",
                alert_name,
                ", ".join(verdict.action_markers),
            )
        logger.info("SAFE: Alert '%s' appears safe to trigger", alert_name)
        return verdict
