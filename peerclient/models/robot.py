"""Robot identity model and token helpers."""

import hashlib
import secrets
import string
from dataclasses import dataclass

TOKEN_LENGTH = 36
TOKEN_ALPHABET = string.ascii_letters + string.digits


def generate_token(length: int = TOKEN_LENGTH) -> str:
    """Generate a fresh secret robot token."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def token_sha256(token: str) -> str:
    """One-way digest of the token; the only form ever sent to a coordinator."""
    return hashlib.sha256(token.encode()).hexdigest()


@dataclass
class Robot:
    token: str | None = None
    pub_key: str | None = None
    enc_priv_key: str | None = None
    nickname: str | None = None
    active_order_id: int | None = None
    last_order_id: int | None = None
    referral_code: str | None = None
    earned_rewards: int = 0
    stealth_invoices: bool | None = None
    tg_enabled: bool | None = None
    tg_bot_name: str | None = None
    tg_token: str | None = None
    bits_entropy: float | None = None
    shannon_entropy: float | None = None
    copied_token: bool = False
    found: bool = False
    stale: bool = True

    @property
    def has_keys(self) -> bool:
        return bool(self.token and self.pub_key and self.enc_priv_key)

    @property
    def current_order_id(self) -> int | None:
        return self.active_order_id or self.last_order_id or None

    def apply_user_payload(self, data: dict) -> None:
        """Update coordinator-scoped attributes from a /api/user/ response."""
        self.nickname = data.get("nickname")
        self.active_order_id = data.get("active_order_id") or None
        self.last_order_id = data.get("last_order_id") or None
        self.referral_code = data.get("referral_code")
        self.earned_rewards = data.get("earned_rewards") or 0
        self.stealth_invoices = data.get("wants_stealth")
        self.tg_enabled = data.get("tg_enabled")
        self.tg_bot_name = data.get("tg_bot_name")
        self.tg_token = data.get("tg_token")
        self.bits_entropy = data.get("token_bits_entropy")
        self.shannon_entropy = data.get("token_shannon_entropy")
        # A null key in the response never erases the local keypair
        self.pub_key = data.get("public_key") or self.pub_key
        self.enc_priv_key = data.get("encrypted_private_key") or self.enc_priv_key
        self.found = bool(data.get("found", False))
        if self.found:
            self.copied_token = True
        self.stale = False

    def clear_coordinator_scoped(self) -> None:
        """Forget everything the previous coordinator told us.

        The token and local keypair are kept; they are what gets registered
        with the next coordinator.
        """
        self.nickname = None
        self.active_order_id = None
        self.last_order_id = None
        self.referral_code = None
        self.earned_rewards = 0
        self.stealth_invoices = None
        self.tg_enabled = None
        self.tg_bot_name = None
        self.tg_token = None
        self.bits_entropy = None
        self.shannon_entropy = None
        self.found = False
        self.stale = True

    def to_dict(self) -> dict:
        """Public view; the token itself is never included."""
        return {
            "nickname": None if self.stale else self.nickname,
            "active_order_id": None if self.stale else self.active_order_id,
            "last_order_id": None if self.stale else self.last_order_id,
            "referral_code": None if self.stale else self.referral_code,
            "earned_rewards": 0 if self.stale else self.earned_rewards,
            "stealth_invoices": self.stealth_invoices,
            "tg_enabled": self.tg_enabled,
            "tg_bot_name": self.tg_bot_name,
            "bits_entropy": self.bits_entropy,
            "shannon_entropy": self.shannon_entropy,
            "has_token": self.token is not None,
            "has_keys": self.has_keys,
            "copied_token": self.copied_token,
            "stale": self.stale,
        }
