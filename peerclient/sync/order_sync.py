"""Order lifecycle synchronization: status-driven polling and renewal."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from peerclient.api.coordinator_client import CoordinatorClient
from peerclient.errors import TransportError
from peerclient.models.common import FailureKind, backoff_delay_ms
from peerclient.models.order import (
    UNBOUNDED_INTERVAL_MS,
    Order,
    build_renewal_request,
    refresh_interval_ms,
)
from peerclient.sync.cancel_eligibility import CancelOptions, cancel_options
from peerclient.sync.scheduler import TimerHandle, TimerQueue

logger = logging.getLogger(__name__)

DEFAULT_DELAY_MS = 60000


@dataclass
class OrderView:
    """What the presentation layer gets to see of the tracked order."""

    order_id: int | None = None
    order: Order | None = None
    message: str | None = None
    failure: FailureKind | None = None
    next_delay_ms: int | None = None

    @property
    def has_active_data(self) -> bool:
        return self.order is not None

    @property
    def read_only(self) -> bool:
        return self.order is not None and not self.order.is_participant

    @property
    def cancel_options(self) -> CancelOptions | None:
        if self.order is None:
            return None
        return cancel_options(self.order.status, self.order.is_maker, self.order.is_taker)

    def to_dict(self) -> dict:
        options = self.cancel_options
        return {
            "order_id": self.order_id,
            "has_active_data": self.has_active_data,
            "read_only": self.read_only,
            "message": self.message,
            "failure": self.failure.value if self.failure else None,
            "next_delay_ms": self.next_delay_ms,
            "status": self.order.raw_status if self.order else None,
            "status_name": (
                self.order.status.name
                if self.order is not None and self.order.status is not None
                else None
            ),
            "cancel": (
                {
                    "action": options.action.value,
                    "requires_confirmation": options.requires_confirmation,
                }
                if options
                else None
            ),
            "order": self.order.payload if self.order else None,
        }


class OrderSyncEngine:
    """Polls one order at a time, at a cadence chosen by its last status.

    At most one timer is pending for the tracked order. Every request carries
    a sequence number; a response is applied only if no newer request was
    issued and the order and coordinator are still the tracked ones.
    """

    def __init__(
        self,
        scheduler: TimerQueue,
        client: CoordinatorClient | None = None,
        default_delay_ms: int = DEFAULT_DELAY_MS,
        backoff_base_ms: int = 5000,
        backoff_max_ms: int = 300000,
        on_current_order: Callable[[int], None] | None = None,
    ):
        self.scheduler = scheduler
        self.client = client
        self.default_delay_ms = default_delay_ms
        self.backoff_base_ms = backoff_base_ms
        self.backoff_max_ms = backoff_max_ms
        self.on_current_order = on_current_order
        self.view = OrderView()
        self._delay_ms = default_delay_ms
        self._timer: TimerHandle | None = None
        self._seq = 0
        self._failures = 0

    @property
    def order_id(self) -> int | None:
        return self.view.order_id

    @property
    def timer(self) -> TimerHandle | None:
        return self._timer if self._timer is not None and self._timer.active else None

    def set_client(self, client: CoordinatorClient | None) -> None:
        """Point at another coordinator. The tracked order belonged to the old one."""
        self.clear()
        self.client = client

    def clear(self) -> None:
        """Stop polling and forget the tracked order."""
        self.stop()
        self.view = OrderView()
        self._delay_ms = self.default_delay_ms
        self._failures = 0

    def track(self, order_id: int) -> None:
        """Follow order_id, fetching it immediately."""
        if order_id != self.view.order_id:
            logger.info("Tracking order %s (was %s)", order_id, self.view.order_id)
            self.stop()
            self.view = OrderView(order_id=order_id)
            self._delay_ms = self.default_delay_ms
            self._failures = 0
        self.fetch()

    def stop(self) -> None:
        """Retire the subscription: no timer, and in-flight responses are dropped."""
        self._cancel_timer()
        self._seq += 1

    def fetch(self) -> bool:
        """Fetch the tracked order now. Returns True when an order was applied."""
        order_id = self.view.order_id
        client = self.client
        if order_id is None or client is None:
            return False

        self._seq += 1
        seq = self._seq
        try:
            data = client.get_order(order_id)
        except TransportError as e:
            if not self._is_current(seq, order_id, client):
                logger.debug("Dropping stale failure for order %s", order_id)
                return False
            self._transport_failed(str(e))
            return False

        if not self._is_current(seq, order_id, client):
            logger.debug("Dropping stale response for order %s (seq %d < %d)", order_id, seq, self._seq)
            return False

        if "bad_request" in data:
            reason = str(data["bad_request"])
            logger.warning("Order %s: %s", order_id, reason)
            self.view.order = None
            self.view.message = reason
            self.view.failure = FailureKind.BAD_REQUEST
            self._failures = 0
            self._arm(self._delay_ms)
            return False

        order = Order.from_payload(data, fallback_id=order_id)
        if order.status is None:
            logger.warning("Order %s has unknown status %r, polling stops", order_id, order.raw_status)
        self.view.order = order
        self.view.message = None
        self.view.failure = None
        self._failures = 0
        self._delay_ms = refresh_interval_ms(order.status)
        self._arm(self._delay_ms)
        return True

    def renew(self) -> int | None:
        """Re-submit the tracked order as a fresh one and follow it.

        Returns the new order id, or None when nothing was renewed.
        """
        order = self.view.order
        client = self.client
        if order is None or client is None:
            logger.warning("Nothing to renew")
            return None

        order_id = self.view.order_id
        body = build_renewal_request(order)
        try:
            data = client.make_order(body)
        except TransportError as e:
            if order_id == self.view.order_id and client is self.client:
                self.view.message = str(e)
                self.view.failure = FailureKind.TRANSPORT
            return None

        if order_id != self.view.order_id or client is not self.client:
            logger.debug("Dropping renewal response for retired order %s", order_id)
            return None

        if "bad_request" in data:
            logger.warning("Renewal of order %s rejected: %s", order_id, data["bad_request"])
            self.view.message = str(data["bad_request"])
            self.view.failure = FailureKind.BAD_REQUEST
            return None

        new_id = data.get("id")
        if not new_id:
            self.view.message = "Coordinator returned no order id"
            self.view.failure = FailureKind.BAD_REQUEST
            return None

        new_id = int(new_id)
        logger.info("Order %s renewed as %s", order_id, new_id)
        self.track(new_id)
        if self.on_current_order is not None:
            self.on_current_order(new_id)
        return new_id

    def _is_current(self, seq: int, order_id: int, client: CoordinatorClient) -> bool:
        return seq == self._seq and order_id == self.view.order_id and client is self.client

    def _transport_failed(self, message: str) -> None:
        self._failures += 1
        delay = backoff_delay_ms(self._failures, self.backoff_base_ms, self.backoff_max_ms)
        logger.warning(
            "Order %s fetch failed (%d consecutive), retrying in %dms: %s",
            self.view.order_id, self._failures, delay, message,
        )
        self.view.message = message
        self.view.failure = FailureKind.TRANSPORT
        self._arm(delay)

    def _arm(self, delay_ms: int) -> None:
        self._cancel_timer()
        if delay_ms >= UNBOUNDED_INTERVAL_MS:
            self.view.next_delay_ms = None
            return
        self.view.next_delay_ms = delay_ms
        self._timer = self.scheduler.call_later(
            delay_ms / 1000, self._on_timer, label=f"order:{self.view.order_id}"
        )

    def _on_timer(self) -> None:
        self._timer = None
        self.fetch()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.view.next_delay_ms = None
