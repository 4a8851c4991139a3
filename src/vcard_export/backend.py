from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import requests

from .errors import FallbackError

logger = logging.getLogger(__name__)


class BackendClient:
    """Thin client for the two REST endpoints the export path talks to."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        http: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()

    def vcard_url(self, profile_id: str) -> str:
        return f"{self.base_url}/api/public/profiles/{quote(profile_id, safe='')}/vcard"

    def fetch_vcard(self, profile_id: str) -> bytes:
        """Fetch the server-rendered card for `profile_id`.

        Timeouts, connection errors and non-2xx responses raise FallbackError.
        """
        url = self.vcard_url(profile_id)
        try:
            resp = self.http.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.Timeout as exc:
            raise FallbackError(f"vCard request timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise FallbackError(f"vCard request failed: {exc}") from exc
        if not resp.content:
            raise FallbackError("vCard response was empty")
        logger.debug("Fetched %d byte vCard from %s", len(resp.content), url)
        return resp.content

    def record_event(self, payload: dict[str, Any]) -> None:
        resp = self.http.post(f"{self.base_url}/api/analytics", json=payload, timeout=self.timeout)
        resp.raise_for_status()
