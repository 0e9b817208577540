"""Splunk REST client for saved search configuration and dispatch."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from saved_search_trigger.config import TriggerConfig
from saved_search_trigger.encoding import url_encode

logger = logging.getLogger(__name__)

WILDCARD = "-"
CONFIG_FETCH_RETRIES = 2
DISPATCH_RETRIES = 3
RETRY_STATUSES = [408, 429, 500, 502, 503, 504]


@dataclass(frozen=True)
class TransportResult:
    ok: bool
    status_code: Optional[int]
    body: str
    error: Optional[str] = None

    @property
    def http_error(self) -> bool:
        """True when the server answered with an error status."""
        return self.status_code is not None and self.status_code >= 400


class SplunkClient:
    """Bearer-token client for the Splunk management port.

    TLS verification is off unless ``verify_tls`` is set: Splunk management ports
    commonly serve self-signed certificates. Treat this as a deliberate trade-off.
    """

    def __init__(self, config: TriggerConfig) -> None:
        self.config = config
        self._sessions: Dict[int, requests.Session] = {}
        if not config.verify_tls:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.config.token}"}

    def _session(self, retries: int) -> requests.Session:
        session = self._sessions.get(retries)
        if session is None:
            session = requests.Session()
            policy = Retry(
                total=retries,
                backoff_factor=0,
                status_forcelist=RETRY_STATUSES,
                allowed_methods=["GET", "POST"],
                raise_on_status=False,
            )
            session.mount("https://", HTTPAdapter(max_retries=policy))
            session.mount("http://", HTTPAdapter(max_retries=policy))
            self._sessions[retries] = session
        return session

    def request(self, method: str, path: str, data: Optional[dict] = None, retries: int = 0) -> TransportResult:
        url = f"{self.config.management_endpoint}{path}"
        try:
            response = self._session(retries).request(
                method,
                url,
                headers=self._headers(),
                data=data,
                timeout=self.config.timeout_sec,
                verify=self.config.verify_tls,
            )
        except requests.RequestException as exc:
            logger.debug("request failed", extra={"method": method, "url": url, "error": str(exc)})
            return TransportResult(ok=False, status_code=None, body="", error=str(exc))
        ok = 200 <= response.status_code < 300
        return TransportResult(ok=ok, status_code=response.status_code, body=response.text or "")

    def get_saved_search(self, name: str, owner: str, app: str) -> TransportResult:
        return self.request("GET", saved_search_path(name, owner, app), retries=CONFIG_FETCH_RETRIES)

    def dispatch_saved_search(self, name: str, owner: str, app: str) -> TransportResult:
        return self.request(
            "POST",
            f"{saved_search_path(name, owner, app)}/dispatch",
            data={"trigger_actions": "1"},
            retries=DISPATCH_RETRIES,
        )

    def close(self) -> None:
        for session in self._sessions.values():
            session.close()
        self._sessions.clear()


def saved_search_path(name: str, owner: str, app: str) -> str:
    return f"/servicesNS/{owner}/{app}/saved/searches/{url_encode(name)}"
