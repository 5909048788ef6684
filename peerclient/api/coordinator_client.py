"""Coordinator API client: the endpoints the client consumes."""

import logging
from typing import Any

from peerclient.api.transport import Transport
from peerclient.errors import TransportError

logger = logging.getLogger(__name__)


class CoordinatorClient:
    """Endpoint methods for one coordinator base URL.

    Domain soft failures come back as `{"bad_request": reason}` dicts;
    transport failures raise TransportError from the transport.
    """

    def __init__(self, transport: Transport, base_url: str):
        self.transport = transport
        self.base_url = base_url.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    # --- Market ---

    def get_book(self) -> list[dict]:
        """Open orders; empty when the coordinator reports none."""
        data = self.transport.request("GET", self._url("/api/book/"))
        if isinstance(data, dict) and "not_found" in data:
            return []
        return data if isinstance(data, list) else []

    def get_limits(self) -> dict:
        """Per-currency trading limits."""
        data = self.transport.request("GET", self._url("/api/limits/"))
        return data if isinstance(data, dict) else {}

    def get_info(self) -> dict:
        data = self.transport.request("GET", self._url("/api/info/"))
        return data if isinstance(data, dict) else {}

    # --- Robot ---

    def post_user(
        self,
        token_sha256: str,
        pub_key: str | None = None,
        enc_priv_key: str | None = None,
    ) -> dict:
        """Look up (and with keys, register) the robot behind a token digest."""
        body: dict[str, Any] = {"token_sha256": token_sha256}
        if pub_key is not None and enc_priv_key is not None:
            body["pub_key"] = pub_key
            body["enc_priv_key"] = enc_priv_key
        data = self.transport.request("POST", self._url("/api/user/"), json=body)
        return data if isinstance(data, dict) else {}

    # --- Orders ---

    def get_order(self, order_id: int) -> dict:
        """One order. A body that is not a JSON object raises TransportError."""
        data = self.transport.request(
            "GET", self._url("/api/order/"), params={"order_id": order_id}
        )
        if not isinstance(data, dict):
            raise TransportError(f"Unexpected order body: {data!r}"[:200])
        return data

    def make_order(self, body: dict) -> dict:
        data = self.transport.request("POST", self._url("/api/make/"), json=body)
        return data if isinstance(data, dict) else {}
