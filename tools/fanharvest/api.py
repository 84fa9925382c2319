"""Platform HTTP client – authenticated, throttled, single-attempt JSON fetcher."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Mapping
from typing import Any

import httpx

from .config import RequestConfig, SiteConfig
from .errors import ConnectError, JSONError, ResponseError

logger = logging.getLogger("fanharvest.api")


class PlatformClient:
    """Thin wrapper around one platform's JSON API.

    The client is shared by every worker thread of a run. Session cookies are
    set once at construction and only read afterwards.
    """

    def __init__(
        self,
        site: SiteConfig,
        cfg: RequestConfig | None = None,
        cookies: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.site = site
        self.cfg = cfg or RequestConfig()
        self._last_request: float = 0.0
        self._throttle_lock = threading.Lock()
        self._client = httpx.Client(
            timeout=self.cfg.timeout,
            headers={
                "User-Agent": self.cfg.user_agent,
                "Accept": site.accept,
                "Origin": site.origin,
                "Referer": site.origin + "/",
            },
            follow_redirects=True,
            transport=transport,
        )
        for name, value in (cookies or {}).items():
            self._client.cookies.set(name, value, domain=site.cookie_domain)

    # ── rate limiting ────────────────────────────────────────────
    def _throttle(self) -> None:
        if self.cfg.request_delay <= 0:
            return
        with self._throttle_lock:
            elapsed = time.monotonic() - self._last_request
            if elapsed < self.cfg.request_delay:
                time.sleep(self.cfg.request_delay - elapsed)
            self._last_request = time.monotonic()

    # ── public API ───────────────────────────────────────────────

    def get_json(self, url: str, params: Mapping[str, str] | None = None) -> Any:
        """GET ``url`` once and decode the JSON body.

        Raises :class:`ConnectError`, :class:`ResponseError` or
        :class:`JSONError`; never retries.
        """
        self._throttle()
        try:
            resp = self._client.get(url, params=dict(params) if params else None)
        except httpx.TransportError as exc:
            logger.warning("Request to %s failed: %s", url, exc)
            raise ConnectError(f"{self.site.title}: request to {url} failed: {exc}") from exc

        if resp.status_code != 200:
            logger.warning("%d response from %s", resp.status_code, resp.url)
            raise ResponseError(
                f"{self.site.title}: {resp.status_code} {resp.reason_phrase} from {resp.url}",
                resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise JSONError(f"{self.site.title}: invalid JSON from {resp.url}: {exc}") from exc

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> PlatformClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
