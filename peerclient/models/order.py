"""Order models: the status enumeration, its refresh table and the order record."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class OrderStatus(IntEnum):
    WAITING_FOR_MAKER_BOND = 0
    PUBLIC = 1
    PAUSED = 2
    WAITING_FOR_TAKER_BOND = 3
    CANCELLED = 4
    EXPIRED = 5
    WAITING_FOR_COLLATERAL_AND_INVOICE = 6
    WAITING_ONLY_FOR_SELLER_COLLATERAL = 7
    WAITING_ONLY_FOR_BUYER_INVOICE = 8
    FIAT_SENDING_IN_CHAT = 9
    FIAT_SENT_IN_CHAT = 10
    IN_DISPUTE = 11
    COLLABORATIVELY_CANCELLED = 12
    SENDING_SATOSHIS_TO_BUYER = 13
    SUCCESSFUL_TRADE = 14
    FAILED_ROUTING = 15
    AWAITING_DISPUTE_RESOLUTION = 16
    MAKER_LOST_DISPUTE = 17
    TAKER_LOST_DISPUTE = 18

    @classmethod
    def parse(cls, value: Any) -> "OrderStatus | None":
        """Map a raw status value to a member, or None when unknown."""
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


# Polling delay for unknown statuses; large enough that nothing is ever armed.
UNBOUNDED_INTERVAL_MS = 99_999_999

REFRESH_INTERVAL_MS: dict[OrderStatus, int] = {
    OrderStatus.WAITING_FOR_MAKER_BOND: 3000,
    OrderStatus.PUBLIC: 35000,
    OrderStatus.PAUSED: 180000,
    OrderStatus.WAITING_FOR_TAKER_BOND: 3000,
    OrderStatus.CANCELLED: 999999,
    OrderStatus.EXPIRED: 999999,
    OrderStatus.WAITING_FOR_COLLATERAL_AND_INVOICE: 8000,
    OrderStatus.WAITING_ONLY_FOR_SELLER_COLLATERAL: 8000,
    OrderStatus.WAITING_ONLY_FOR_BUYER_INVOICE: 8000,
    OrderStatus.FIAT_SENDING_IN_CHAT: 10000,
    OrderStatus.FIAT_SENT_IN_CHAT: 10000,
    OrderStatus.IN_DISPUTE: 100000,
    OrderStatus.COLLABORATIVELY_CANCELLED: 999999,
    OrderStatus.SENDING_SATOSHIS_TO_BUYER: 10000,
    OrderStatus.SUCCESSFUL_TRADE: 999999,
    OrderStatus.FAILED_ROUTING: 30000,
    OrderStatus.AWAITING_DISPUTE_RESOLUTION: 300000,
    OrderStatus.MAKER_LOST_DISPUTE: 300000,
    OrderStatus.TAKER_LOST_DISPUTE: 300000,
}


def refresh_interval_ms(status: OrderStatus | None) -> int:
    if status is None:
        return UNBOUNDED_INTERVAL_MS
    return REFRESH_INTERVAL_MS[status]


@dataclass(frozen=True)
class Order:
    id: int | None
    status: OrderStatus | None
    raw_status: Any
    is_maker: bool
    is_taker: bool
    is_participant: bool
    type: int | None
    currency: int | None
    amount: float | None
    has_range: bool
    min_amount: float | None
    max_amount: float | None
    payment_method: str
    is_explicit: bool
    premium: float | None
    satoshis: int | None
    bond_size: float | None
    escrow_duration: int | None
    public_duration: int | None
    bondless_taker: bool
    payload: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_payload(cls, data: dict, fallback_id: int | None = None) -> "Order":
        """Build an order from a /api/order/ body.

        A missing or non-numeric id is replaced by fallback_id, the id the
        body was requested for.
        """
        raw_status = data.get("status")
        order_id = _optional_int(data.get("id"))
        return cls(
            id=fallback_id if order_id is None else order_id,
            status=OrderStatus.parse(raw_status),
            raw_status=raw_status,
            is_maker=bool(data.get("is_maker", False)),
            is_taker=bool(data.get("is_taker", False)),
            is_participant=bool(data.get("is_participant", False)),
            type=data.get("type"),
            currency=data.get("currency"),
            amount=_optional_float(data.get("amount")),
            has_range=bool(data.get("has_range", False)),
            min_amount=_optional_float(data.get("min_amount")),
            max_amount=_optional_float(data.get("max_amount")),
            payment_method=data.get("payment_method", ""),
            is_explicit=bool(data.get("is_explicit", False)),
            premium=_optional_float(data.get("premium")),
            satoshis=data.get("satoshis"),
            bond_size=_optional_float(data.get("bond_size")),
            escrow_duration=data.get("escrow_duration"),
            public_duration=data.get("public_duration"),
            bondless_taker=bool(data.get("bondless_taker", False)),
            payload=dict(data),
        )


def build_renewal_request(order: Order) -> dict:
    """Body for POST /api/make/ that re-submits an equivalent order.

    Only one of premium/satoshis is forwarded, depending on the pricing mode,
    so the coordinator recomputes the other.
    """
    return {
        "type": order.type,
        "currency": order.currency,
        "amount": None if order.has_range else order.amount,
        "has_range": order.has_range,
        "min_amount": order.min_amount,
        "max_amount": order.max_amount,
        "payment_method": order.payment_method,
        "is_explicit": order.is_explicit,
        "premium": None if order.is_explicit else order.premium,
        "satoshis": order.satoshis if order.is_explicit else None,
        "public_duration": order.public_duration,
        "escrow_duration": order.escrow_duration,
        "bond_size": order.bond_size,
        "bondless_taker": order.bondless_taker,
    }


def _optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_float(value: Any) -> float | None:
    # Coordinators serialize decimals as strings
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
