"""Robot identity bootstrap against the active coordinator."""

import logging
from collections.abc import Callable
from enum import StrEnum

from peerclient.api.coordinator_client import CoordinatorClient
from peerclient.errors import TransportError
from peerclient.models.common import FailureKind, backoff_delay_ms
from peerclient.models.robot import Robot, token_sha256
from peerclient.sync.scheduler import TimerHandle, TimerQueue

logger = logging.getLogger(__name__)


class BootstrapMode(StrEnum):
    LOOKUP = "lookup"
    LOOKUP_OR_REGISTER = "lookup-or-register"


def select_mode(
    robot: Robot, profile_open: bool = False, endpoint_changed: bool = False
) -> BootstrapMode | None:
    """Decide whether (and how) the robot must be synchronized.

    A fresh endpoint with a complete local keypair re-registers the keys with
    the new coordinator. Otherwise an opened profile or a token without a
    known nickname triggers a plain lookup.
    """
    if not robot.token:
        return None
    if endpoint_changed and robot.has_keys:
        return BootstrapMode.LOOKUP_OR_REGISTER
    if profile_open or robot.nickname is None:
        return BootstrapMode.LOOKUP
    return None


class RobotIdentityBootstrap:
    def __init__(
        self,
        robot: Robot,
        scheduler: TimerQueue,
        client: CoordinatorClient | None = None,
        backoff_base_ms: int = 5000,
        backoff_max_ms: int = 300000,
        on_current_order: Callable[[int | None], None] | None = None,
        on_synced: Callable[[Robot], None] | None = None,
    ):
        self.robot = robot
        self.scheduler = scheduler
        self.client = client
        self.backoff_base_ms = backoff_base_ms
        self.backoff_max_ms = backoff_max_ms
        self.on_current_order = on_current_order
        self.on_synced = on_synced
        self.loading = False
        self.message: str | None = None
        self.failure: FailureKind | None = None
        self._seq = 0
        self._failures = 0
        self._retry: TimerHandle | None = None

    @property
    def has_active_data(self) -> bool:
        return not self.robot.stale

    def set_client(self, client: CoordinatorClient | None) -> None:
        self.invalidate()
        self.client = client

    def invalidate(self) -> None:
        """Treat everything the coordinator told us as stale."""
        self._seq += 1
        self._cancel_retry()
        self._failures = 0
        self.loading = False
        self.message = None
        self.failure = None
        self.robot.clear_coordinator_scoped()

    def bootstrap(self, profile_open: bool = False, endpoint_changed: bool = False) -> BootstrapMode | None:
        """Synchronize the robot if a trigger applies. Returns the mode used."""
        if self.client is None:
            return None
        mode = select_mode(self.robot, profile_open, endpoint_changed)
        if mode is not None:
            self.request(mode)
        return mode

    def request(self, mode: BootstrapMode) -> bool:
        """Issue one /api/user/ request. Returns True when the robot was updated."""
        client = self.client
        token = self.robot.token
        if client is None or not token:
            return False

        self._cancel_retry()
        self._seq += 1
        seq = self._seq
        digest = token_sha256(token)
        self.loading = True
        logger.info("Robot %s against %s", mode.value, client.base_url)
        try:
            if mode == BootstrapMode.LOOKUP_OR_REGISTER:
                data = client.post_user(digest, self.robot.pub_key, self.robot.enc_priv_key)
            else:
                data = client.post_user(digest)
        except TransportError as e:
            if seq != self._seq or client is not self.client:
                logger.debug("Dropping stale robot failure (seq %d)", seq)
                return False
            self.loading = False
            self._transport_failed(mode, str(e))
            return False

        if seq != self._seq or client is not self.client:
            logger.debug("Dropping stale robot response (seq %d < %d)", seq, self._seq)
            return False
        self.loading = False

        if "bad_request" in data:
            logger.warning("Robot %s rejected: %s", mode.value, data["bad_request"])
            self.robot.clear_coordinator_scoped()
            self.message = str(data["bad_request"])
            self.failure = FailureKind.BAD_REQUEST
            self._failures = 0
            return False

        self.robot.apply_user_payload(data)
        self.message = None
        self.failure = None
        self._failures = 0
        logger.info(
            "Robot %s synced (active order %s, last order %s)",
            self.robot.nickname, self.robot.active_order_id, self.robot.last_order_id,
        )
        if self.on_synced is not None:
            self.on_synced(self.robot)
        if self.on_current_order is not None:
            self.on_current_order(self.robot.current_order_id)
        return True

    def close(self) -> None:
        self._cancel_retry()
        self._seq += 1

    def _transport_failed(self, mode: BootstrapMode, message: str) -> None:
        self._failures += 1
        delay = backoff_delay_ms(self._failures, self.backoff_base_ms, self.backoff_max_ms)
        logger.warning(
            "Robot %s failed (%d consecutive), retrying in %dms: %s",
            mode.value, self._failures, delay, message,
        )
        self.message = message
        self.failure = FailureKind.TRANSPORT
        self._retry = self.scheduler.call_later(
            delay / 1000, lambda: self._retry_request(mode), label="robot"
        )

    def _retry_request(self, mode: BootstrapMode) -> None:
        self._retry = None
        self.request(mode)

    def _cancel_retry(self) -> None:
        if self._retry is not None:
            self._retry.cancel()
            self._retry = None
