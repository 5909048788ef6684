"""Output formatters for the CLI."""

import json

from peerclient.config.schema import Network
from peerclient.federation.registry import CoordinatorRegistry
from peerclient.models.robot import Robot
from peerclient.sync.order_sync import OrderView


def format_order_text(view: OrderView) -> str:
    """Plain text view of the tracked order."""
    lines = [f"=== Order {view.order_id} ==="]
    if view.message:
        lines.append(f"Message: {view.message}")
    order = view.order
    if order is None:
        lines.append("No order data")
        return "\n".join(lines)

    status = order.status.name.lower().replace("_", " ") if order.status else f"unknown ({order.raw_status})"
    role = "maker" if order.is_maker else "taker" if order.is_taker else "observer"
    lines.append(f"Status: {status} | Role: {role}")
    if order.has_range:
        lines.append(f"Amount: {order.min_amount}-{order.max_amount} (currency {order.currency})")
    else:
        lines.append(f"Amount: {order.amount} (currency {order.currency})")
    lines.append(f"Payment method: {order.payment_method}")
    if order.is_explicit:
        lines.append(f"Price: {order.satoshis} sats")
    else:
        lines.append(f"Premium: {order.premium}%")
    if view.read_only:
        lines.append("View: read-only")
    options = view.cancel_options
    if options is not None and options.action.value != "none":
        confirm = " (confirmation required)" if options.requires_confirmation else ""
        lines.append(f"Cancel: {options.action.value}{confirm}")
    if view.next_delay_ms is not None:
        lines.append(f"Next refresh: {view.next_delay_ms / 1000:.0f}s")
    return "\n".join(lines)


def format_order_json(view: OrderView) -> str:
    return json.dumps(view.to_dict(), indent=2, default=str)


def format_robot_text(robot: Robot, message: str | None = None) -> str:
    lines = [f"=== Robot {robot.nickname or '(unknown)'} ==="]
    if message:
        lines.append(f"Message: {message}")
    if robot.stale:
        lines.append("Identity not confirmed by the active coordinator")
        return "\n".join(lines)
    lines.append(
        f"Active order: {robot.active_order_id or '-'} | Last order: {robot.last_order_id or '-'}"
    )
    lines.append(f"Referral code: {robot.referral_code or '-'} | Rewards: {robot.earned_rewards} sats")
    if robot.bits_entropy is not None:
        lines.append(
            f"Token entropy: {robot.bits_entropy} bits, Shannon {robot.shannon_entropy}"
        )
    if robot.tg_enabled:
        lines.append(f"Telegram: enabled ({robot.tg_bot_name})")
    return "\n".join(lines)


def format_coordinators_text(
    registry: CoordinatorRegistry, network: Network, active_index: int
) -> str:
    lines = []
    for i, c in enumerate(registry):
        marker = "*" if i == active_index else " "
        onion = c.onion(network) or "-"
        clearnet = c.clearnet(network) or "-"
        nodes = len(c.node_pubkeys(network))
        lines.append(
            f"{marker} [{i}] {c.alias}: onion={onion} clearnet={clearnet} nodes={nodes}"
        )
    return "\n".join(lines)
