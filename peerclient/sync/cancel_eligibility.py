"""Which cancel affordances an order offers to the caller."""

from dataclasses import dataclass
from enum import StrEnum

from peerclient.models.order import OrderStatus


class CancelAction(StrEnum):
    NONE = "none"
    DIRECT = "direct"
    COLLABORATIVE = "collaborative"


@dataclass(frozen=True)
class CancelOptions:
    action: CancelAction
    requires_confirmation: bool


# Only the maker may walk away before a taker shows up
MAKER_DIRECT_CANCEL = frozenset({
    OrderStatus.WAITING_FOR_MAKER_BOND,
    OrderStatus.PUBLIC,
    OrderStatus.PAUSED,
})
ANY_PARTY_DIRECT_CANCEL = frozenset({
    OrderStatus.WAITING_FOR_TAKER_BOND,
    OrderStatus.WAITING_FOR_COLLATERAL_AND_INVOICE,
    OrderStatus.WAITING_ONLY_FOR_SELLER_COLLATERAL,
})
COLLABORATIVE_CANCEL = frozenset({
    OrderStatus.WAITING_ONLY_FOR_BUYER_INVOICE,
    OrderStatus.FIAT_SENDING_IN_CHAT,
})


def cancel_options(status: OrderStatus | None, is_maker: bool, is_taker: bool) -> CancelOptions:
    maker_early = is_maker and status in MAKER_DIRECT_CANCEL
    no_confirmation = maker_early or (
        is_taker and status == OrderStatus.WAITING_FOR_TAKER_BOND
    )

    if maker_early or status in ANY_PARTY_DIRECT_CANCEL:
        action = CancelAction.DIRECT
    elif status in COLLABORATIVE_CANCEL:
        action = CancelAction.COLLABORATIVE
    else:
        action = CancelAction.NONE
    return CancelOptions(action=action, requires_confirmation=not no_confirmation)
