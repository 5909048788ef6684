"""Common types and helpers shared across models."""

from datetime import UTC, datetime
from enum import StrEnum


class FailureKind(StrEnum):
    BAD_REQUEST = "bad_request"
    TRANSPORT = "transport"


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def backoff_delay_ms(failures: int, base_ms: int, max_ms: int) -> int:
    """Bounded exponential backoff for the n-th consecutive failure (n >= 1)."""
    if failures < 1:
        return base_ms
    return min(base_ms * (2 ** (failures - 1)), max_ms)
