"""HTTP client for the flyout REST endpoints.

Talks to a WordPress site's ``wp-flyout/v1`` namespace: loads panel
markup, submits forms, runs searches and actions. Transient failures
(429/5xx, transport errors) are retried with exponential backoff.

Example:
    with FlyoutClient("https://shop.test/wp-json", "shop", nonce=nonce) as client:
        html = client.load("edit_product", 42)["html"]
        client.save("edit_product", 42, {"name": "Blue Mug"})
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx
import requests_toolbelt
import tenacity
from requests_toolbelt.utils.user_agent import user_agent
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from flyouts.lib.errors import RemoteError

logger = logging.getLogger(__name__)

__all__ = ["FlyoutClient", "RETRYABLE_STATUS_CODES"]

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
DEFAULT_NAMESPACE = "wp-flyout/v1"

_USER_AGENT = user_agent(
    "register-flyouts",
    "dev",
    extras=[
        ("httpx", getattr(httpx, "__version__", "unknown")),
        ("tenacity", getattr(tenacity, "__version__", "unknown")),
        ("requests-toolbelt", getattr(requests_toolbelt, "__version__", "unknown")),
    ],
)


class FlyoutClient:
    """Client for one manager's flyout endpoints.

    Args:
        base_url: REST root, e.g. ``https://shop.test/wp-json``
        manager: Manager prefix sent with every request
        nonce: REST nonce sent as ``X-WP-Nonce``
        timeout: Request timeout in seconds
        max_retries: Attempts per request, including the first
        backoff_factor: Multiplier for the exponential backoff
        namespace: REST namespace of the endpoints
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
    """

    def __init__(
        self,
        base_url: str,
        manager: str,
        *,
        nonce: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        namespace: str = DEFAULT_NAMESPACE,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.manager = manager
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor

        headers = {"User-Agent": _USER_AGENT, "Accept": "application/json"}
        if nonce:
            headers["X-WP-Nonce"] = nonce

        self._client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/{namespace.strip('/')}",
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    def __enter__(self) -> "FlyoutClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # -- transport -----------------------------------------------------------

    def _should_retry(self, exc: BaseException) -> bool:
        if isinstance(exc, httpx.HTTPStatusError):
            return exc.response.status_code in RETRYABLE_STATUS_CODES
        return isinstance(exc, httpx.RequestError)

    def _respect_retry_after(self, response: httpx.Response) -> None:
        retry_after = response.headers.get("Retry-After")
        if not retry_after:
            return
        try:
            wait_seconds = float(retry_after)
        except (TypeError, ValueError):
            return
        if wait_seconds > 0:
            logger.warning("Rate limited; sleeping %.1f seconds before retrying", wait_seconds)
            time.sleep(wait_seconds)

    def _send(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        @retry(
            stop=stop_after_attempt(max(self.max_retries, 1)),
            wait=wait_exponential(multiplier=self.backoff_factor, max=30),
            retry=retry_if_exception(self._should_retry),
            reraise=True,
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        def do_request() -> httpx.Response:
            logger.debug("%s %s", method, endpoint)
            response = self._client.request(method, endpoint, **kwargs)
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code == 429:
                    self._respect_retry_after(exc.response)
                raise
            return response

        return do_request()

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Dict[str, Any]:
        """Send a request and return the decoded JSON body.

        Raises:
            RemoteError: On a non-2xx response (after retries) or transport failure
        """
        try:
            response = self._send(method, endpoint, **kwargs)
        except httpx.HTTPStatusError as exc:
            raise self._remote_error(exc.response) from exc
        except httpx.RequestError as exc:
            raise RemoteError(
                f"Request to {endpoint} failed: {exc}",
                manager=self.manager,
                suggestion="Check the site URL and network connectivity",
            ) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(
                f"Invalid JSON from {endpoint}",
                status=response.status_code,
                manager=self.manager,
            ) from exc

    def _remote_error(self, response: httpx.Response) -> RemoteError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        return RemoteError(
            str(body.get("message") or f"HTTP {response.status_code}"),
            status=response.status_code,
            code=body.get("code"),
            manager=self.manager,
        )

    def _params(self, flyout: str, item_id: Any = 0, **extra: Any) -> Dict[str, Any]:
        return {"manager": self.manager, "flyout": flyout, "item_id": item_id, **extra}

    # -- endpoints -----------------------------------------------------------

    def load(self, flyout: str, item_id: Any = 0) -> Dict[str, Any]:
        return self._request("POST", "/load", json=self._params(flyout, item_id))

    def save(self, flyout: str, item_id: Any, form_data: Mapping[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/save", json=self._params(flyout, item_id, form_data=dict(form_data)))

    def delete(self, flyout: str, item_id: Any) -> Dict[str, Any]:
        return self._request("POST", "/delete", json=self._params(flyout, item_id))

    def search(
        self,
        flyout: str,
        field_key: str,
        term: str = "",
        include: Union[str, List[Any], None] = None,
    ) -> List[Dict[str, str]]:
        """Search an ajax_select field; ``include`` hydrates by ids instead."""
        params = self._params(flyout, field_key=field_key, term=term)
        if include:
            params["include"] = include if isinstance(include, str) else ",".join(str(i) for i in include)
        return self._request("GET", "/search", params=params).get("results", [])

    def action(
        self,
        flyout: str,
        action_key: str,
        item_id: Any = 0,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload = self._params(flyout, item_id, action_key=action_key, **dict(params or {}))
        return self._request("POST", "/action", json=payload)
