"""Client session: one robot, one active coordinator, one tracked order."""

import logging

from peerclient.api.coordinator_client import CoordinatorClient
from peerclient.config.schema import ClientConfig, Network
from peerclient.federation.registry import CoordinatorRegistry
from peerclient.host import HostCapabilities
from peerclient.models.robot import Robot, generate_token
from peerclient.sync.cancel_eligibility import CancelOptions
from peerclient.sync.market_data import MarketDataService
from peerclient.sync.order_sync import OrderSyncEngine
from peerclient.sync.robot_bootstrap import BootstrapMode, RobotIdentityBootstrap
from peerclient.sync.scheduler import TimerQueue

logger = logging.getLogger(__name__)

KEY_TOKEN = "robot_token"
KEY_PUB_KEY = "robot_pub_key"
KEY_ENC_PRIV_KEY = "robot_enc_priv_key"
KEY_NETWORK = "network"
KEY_COORDINATOR = "coordinator"


class ClientSession:
    """Wires the registry, identity bootstrap, order sync and market data.

    The resolved base URL is the scope of every coordinator-derived piece of
    state: whenever it changes, the tracked order and the robot's attributes
    are dropped and the robot is bootstrapped again against the new endpoint.
    """

    def __init__(
        self,
        config: ClientConfig,
        host: HostCapabilities,
        registry: CoordinatorRegistry | None = None,
        scheduler: TimerQueue | None = None,
    ):
        self.config = config
        self.host = host
        self.registry = registry or CoordinatorRegistry(config.federation)
        self.scheduler = scheduler or TimerQueue()

        stored_network = host.store.get(KEY_NETWORK)
        self.network = Network(stored_network) if stored_network else config.network
        stored_coordinator = host.store.get(KEY_COORDINATOR)
        self.active_coordinator = (
            int(stored_coordinator) if stored_coordinator is not None else config.active_coordinator
        )

        self.robot = Robot(
            token=host.store.get(KEY_TOKEN),
            pub_key=host.store.get(KEY_PUB_KEY),
            enc_priv_key=host.store.get(KEY_ENC_PRIV_KEY),
        )
        self.base_url: str | None = None
        self.current_order_id: int | None = None

        polling = config.polling
        self.orders = OrderSyncEngine(
            self.scheduler,
            default_delay_ms=polling.default_delay_ms,
            backoff_base_ms=polling.backoff_base_ms,
            backoff_max_ms=polling.backoff_max_ms,
            on_current_order=self._set_current_order,
        )
        self.identity = RobotIdentityBootstrap(
            self.robot,
            self.scheduler,
            backoff_base_ms=polling.backoff_base_ms,
            backoff_max_ms=polling.backoff_max_ms,
            on_current_order=self._on_robot_order,
            on_synced=self._persist_keys,
        )
        self.market = MarketDataService(config.client_version)

    # --- Lifecycle ---

    def start(
        self,
        order_id: int | None = None,
        load_market: bool = True,
        bootstrap: bool = True,
    ) -> None:
        self.ensure_token()
        self._switch_endpoint(load_market=load_market, bootstrap=bootstrap)
        if order_id is not None:
            self.track_order(order_id)

    def close(self) -> None:
        self.orders.stop()
        self.identity.close()
        self.scheduler.cancel_all()

    # --- Robot ---

    def ensure_token(self) -> str:
        """Generate and persist a token when none is held yet."""
        if not self.robot.token:
            self.robot.token = generate_token()
            self.host.store.set(KEY_TOKEN, self.robot.token)
            logger.info("Generated a new robot token")
        return self.robot.token

    def new_robot(self) -> BootstrapMode | None:
        """Replace the held identity with a freshly generated one."""
        for key in (KEY_TOKEN, KEY_PUB_KEY, KEY_ENC_PRIV_KEY):
            self.host.store.delete(key)
        self.robot.token = None
        self.robot.pub_key = None
        self.robot.enc_priv_key = None
        self.robot.copied_token = False
        self.identity.invalidate()
        self.orders.clear()
        self.current_order_id = None
        self.ensure_token()
        return self.identity.bootstrap()

    def open_profile(self) -> BootstrapMode | None:
        return self.identity.bootstrap(profile_open=True)

    def copy_token(self) -> None:
        if not self.robot.token:
            return
        self.host.clipboard.copy(self.robot.token)
        self.robot.copied_token = True

    # --- Federation ---

    def set_network(self, network: Network | str) -> bool:
        """Switch network. Returns True when the base URL changed."""
        network = Network(network)
        base_url = self._resolve(network, self.active_coordinator)
        self.network = network
        self.host.store.set(KEY_NETWORK, network.value)
        return self._switch_endpoint(base_url)

    def select_coordinator(self, coordinator: int | str) -> bool:
        """Switch coordinator by index or alias. Returns True when the base URL changed."""
        index = coordinator if isinstance(coordinator, int) else self.registry.find(coordinator)
        base_url = self._resolve(self.network, index)
        self.active_coordinator = index
        self.host.store.set(KEY_COORDINATOR, str(index))
        return self._switch_endpoint(base_url)

    # --- Orders ---

    def track_order(self, order_id: int) -> None:
        self.orders.track(order_id)

    def renew_order(self) -> int | None:
        return self.orders.renew()

    def cancel_options(self) -> CancelOptions | None:
        return self.orders.view.cancel_options

    def snapshot(self) -> dict:
        coordinator = self.registry.get(self.active_coordinator)
        return {
            "network": self.network.value,
            "coordinator": coordinator.alias,
            "base_url": self.base_url,
            "current_order_id": self.current_order_id,
            "robot": self.robot.to_dict(),
            "robot_message": self.identity.message,
            "order": self.orders.view.to_dict(),
            "book_size": len(self.market.book),
            "market_message": self.market.message,
        }

    # --- Internals ---

    def _resolve(self, network: Network, index: int) -> str:
        return self.registry.resolve_base_url(
            network, index, self.host.onion_capable, self.host.origin
        )

    def _switch_endpoint(
        self,
        base_url: str | None = None,
        load_market: bool = True,
        bootstrap: bool = True,
    ) -> bool:
        if base_url is None:
            base_url = self._resolve(self.network, self.active_coordinator)
        if base_url == self.base_url:
            return False

        logger.info("Base endpoint %s -> %s", self.base_url, base_url)
        self.base_url = base_url
        self.current_order_id = None
        client = CoordinatorClient(self.host.transport, base_url)
        self.orders.set_client(client)
        self.identity.set_client(client)
        self.market.set_client(client)
        if load_market:
            self.market.load_all()
        if bootstrap:
            self.identity.bootstrap(endpoint_changed=True)
        return True

    def _set_current_order(self, order_id: int | None) -> None:
        self.current_order_id = order_id

    def _on_robot_order(self, order_id: int | None) -> None:
        self.current_order_id = order_id
        if order_id is not None and self.orders.order_id is None:
            self.orders.track(order_id)

    def _persist_keys(self, robot: Robot) -> None:
        if robot.pub_key and robot.enc_priv_key:
            self.host.store.set(KEY_PUB_KEY, robot.pub_key)
            self.host.store.set(KEY_ENC_PRIV_KEY, robot.enc_priv_key)
