"""Scripted Splunk client and transport result builders shared by the tests."""

from __future__ import annotations

from typing import List, Optional, Tuple

from saved_search_trigger.splunk_client import TransportResult

TOKEN = "a" * 40


def ok(body: str = "") -> TransportResult:
    return TransportResult(ok=True, status_code=200, body=body)


def http_error(status: int = 400, body: str = "") -> TransportResult:
    return TransportResult(ok=False, status_code=status, body=body)


def connection_error() -> TransportResult:
    return TransportResult(ok=False, status_code=None, body="", error="connection refused")


class FakeSplunkClient:
    """Scripted stand-in for SplunkClient recording every call."""

    def __init__(self, configs: Optional[List[TransportResult]] = None, dispatches: Optional[List[TransportResult]] = None) -> None:
        self.configs = list(configs or [])
        self.dispatches = list(dispatches or [])
        self.config_calls: List[Tuple[str, str, str]] = []
        self.dispatch_calls: List[Tuple[str, str, str]] = []

    def get_saved_search(self, name: str, owner: str, app: str) -> TransportResult:
        self.config_calls.append((name, owner, app))
        return self.configs.pop(0) if self.configs else http_error(404)

    def dispatch_saved_search(self, name: str, owner: str, app: str) -> TransportResult:
        self.dispatch_calls.append((name, owner, app))
        return self.dispatches.pop(0) if self.dispatches else http_error(404)

    def close(self) -> None:
        pass
