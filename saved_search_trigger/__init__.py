"""Safety-gated triggering of Splunk saved searches."""

from saved_search_trigger.config import ConfigError, TriggerConfig, load_config
from saved_search_trigger.dispatcher import AlertTrigger, DispatchOutcome, OutcomeStatus
from saved_search_trigger.encoding import url_encode
from saved_search_trigger.report import RunSummary, build_summary
from saved_search_trigger.safety import SafetyAnalyzer, SafetyVerdict, VerdictKind, classify_configuration
from saved_search_trigger.splunk_client import SplunkClient, TransportResult

__all__ = [
    "AlertTrigger",
    "ConfigError",
    "DispatchOutcome",
    "OutcomeStatus",
    "RunSummary",
    "SafetyAnalyzer",
    "SafetyVerdict",
    "SplunkClient",
    "TransportResult",
    "TriggerConfig",
    "VerdictKind",
    "build_summary",
    "classify_configuration",
    "load_config",
    "url_encode",
]
