"""HTTP transport against a coordinator base endpoint."""

import logging
from typing import Any, Protocol

import httpx

from peerclient.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "peerclient/0.5.0"

# Keys of JSON bodies that carry a domain answer whatever the HTTP status
DOMAIN_ANSWER_KEYS = ("bad_request", "not_found")


class Transport(Protocol):
    def request(
        self,
        method: str,
        url: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> Any: ...


class HttpTransport:
    """httpx-backed transport.

    Onion endpoints are reached through an optional proxy supplied by the
    host (e.g. a local Tor SOCKS port).
    """

    def __init__(
        self,
        timeout: float = 30.0,
        proxy: str | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.timeout = timeout
        self.proxy = proxy
        self._client = httpx.Client(
            timeout=timeout,
            proxy=proxy,
            headers={"User-Agent": user_agent},
        )

    def request(
        self,
        method: str,
        url: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Bodies carrying `bad_request` or `not_found` are domain answers and
        are returned whatever the HTTP status; every other failure raises
        TransportError.
        """
        try:
            resp = self._client.request(method, url, params=params, json=json)
        except httpx.RequestError as e:
            logger.error("Coordinator request failed: %s %s -> %s", method, url, e)
            raise TransportError(f"Request failed: {e}") from e

        data = _decode(resp)
        if isinstance(data, dict) and any(k in data for k in DOMAIN_ANSWER_KEYS):
            return data
        if resp.status_code >= 400:
            logger.error("Coordinator HTTP %d: %s %s -> %s", resp.status_code, method, url, resp.text)
            raise TransportError(f"HTTP {resp.status_code}: {resp.text}", resp.status_code)
        return data

    def close(self) -> None:
        self._client.close()


def _decode(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        if resp.status_code < 400:
            raise TransportError(
                f"Invalid JSON from coordinator: {resp.text[:200]}", resp.status_code
            ) from None
        return None
