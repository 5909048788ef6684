"""Tests for the client session wiring."""

import pytest

from peerclient.errors import FederationError, TransportError
from peerclient.host import HostCapabilities, MemoryStore
from peerclient.models.robot import token_sha256
from peerclient.session import (
    KEY_COORDINATOR,
    KEY_ENC_PRIV_KEY,
    KEY_NETWORK,
    KEY_PUB_KEY,
    KEY_TOKEN,
    ClientSession,
)
from peerclient.sync.robot_bootstrap import BootstrapMode

ALPHA = "https://alpha.example.com"
BETA = "https://beta.example.com"
ALPHA_TESTNET = "https://test.alpha.example.com"


def _serve(transport, base, user, order):
    transport.add("GET", f"{base}/api/book/", [{"id": 1}])
    transport.add("GET", f"{base}/api/limits/", {"1": {"code": "USD"}})
    transport.add("POST", f"{base}/api/user/", user)
    transport.add(
        "GET", f"{base}/api/order/",
        lambda params, body: {**order, "id": params["order_id"]},
    )


@pytest.fixture
def session(config, host, scheduler):
    return ClientSession(config, host, scheduler=scheduler)


@pytest.fixture
def started(session, transport, user_payload, order_payload):
    _serve(transport, ALPHA, user_payload, order_payload)
    session.start()
    return session


class TestStart:
    def test_resolves_clearnet_for_plain_host(self, started):
        assert started.base_url == ALPHA

    def test_generates_and_persists_token(self, started, host):
        token = host.store.get(KEY_TOKEN)
        assert token is not None
        assert started.robot.token == token

    def test_bootstraps_and_follows_current_order(self, started, transport):
        assert started.robot.nickname == "HonestRobot42"
        assert started.current_order_id == 42
        assert started.orders.order_id == 42
        assert started.orders.view.has_active_data

        user_call = transport.calls_to("POST", f"{ALPHA}/api/user/")[0]
        assert user_call[3] == {"token_sha256": token_sha256(started.robot.token)}

    def test_persists_returned_keys(self, started, host, user_payload):
        assert host.store.get(KEY_PUB_KEY) == user_payload["public_key"]
        assert host.store.get(KEY_ENC_PRIV_KEY) == user_payload["encrypted_private_key"]

    def test_loads_market(self, started):
        assert started.market.book == [{"id": 1}]
        assert started.market.limits["1"]["code"] == "USD"

    def test_existing_token_reused(self, config, clipboard, transport, scheduler, user_payload, order_payload):
        store = MemoryStore({KEY_TOKEN: "x" * 36})
        host = HostCapabilities(transport=transport, store=store, clipboard=clipboard)
        _serve(transport, ALPHA, user_payload, order_payload)

        session = ClientSession(config, host, scheduler=scheduler)
        session.start()

        assert session.robot.token == "x" * 36
        assert transport.calls_to("POST", f"{ALPHA}/api/user/")[0][3]["token_sha256"] == token_sha256("x" * 36)

    def test_stored_coordinator_preferred(self, config, clipboard, transport, scheduler, user_payload, order_payload):
        store = MemoryStore({KEY_COORDINATOR: "1"})
        host = HostCapabilities(transport=transport, store=store, clipboard=clipboard)
        _serve(transport, BETA, user_payload, order_payload)

        session = ClientSession(config, host, scheduler=scheduler)
        session.start()

        assert session.base_url == BETA

    def test_onion_capable_host(self, config, clipboard, transport, scheduler):
        host = HostCapabilities(transport=transport, clipboard=clipboard, onion_capable=True)
        session = ClientSession(config, host, scheduler=scheduler)
        session.start(load_market=False, bootstrap=False)
        assert session.base_url == "http://alphamain.onion"

    def test_start_with_order(self, session, transport, order_payload):
        transport.add("GET", f"{ALPHA}/api/order/", order_payload)
        session.start(order_id=42, load_market=False, bootstrap=False)
        assert session.orders.order_id == 42
        assert transport.calls_to("POST", f"{ALPHA}/api/user/") == []


class TestCoordinatorSwitch:
    def test_identity_cleared_until_rebootstrap(self, started, transport, user_payload, order_payload):
        observed = {}

        def beta_user(params, body):
            observed["nickname"] = started.robot.nickname
            observed["stale"] = started.robot.stale
            observed["order_id"] = started.orders.order_id
            observed["current_order_id"] = started.current_order_id
            observed["body"] = body
            return {**user_payload, "nickname": "BetaRobot", "active_order_id": 7}

        _serve(transport, BETA, beta_user, order_payload)

        changed = started.select_coordinator("beta")

        assert changed is True
        assert started.base_url == BETA
        assert observed["nickname"] is None
        assert observed["stale"] is True
        assert observed["order_id"] is None
        assert observed["current_order_id"] is None
        # the local keypair is registered with the new coordinator
        assert observed["body"]["pub_key"] == user_payload["public_key"]
        assert started.robot.nickname == "BetaRobot"
        assert started.current_order_id == 7
        assert started.orders.order_id == 7

    def test_failed_rebootstrap_leaves_identity_cleared(self, started, transport, order_payload):
        _serve(transport, BETA, TransportError("Request failed: timeout"), order_payload)

        started.select_coordinator(1)

        assert started.robot.nickname is None
        assert started.identity.has_active_data is False
        assert started.orders.order_id is None
        assert started.robot.token is not None

    def test_old_order_timer_retired(self, started, transport, scheduler, user_payload, order_payload):
        _serve(transport, BETA, {**user_payload, "active_order_id": None, "last_order_id": None}, order_payload)

        started.select_coordinator(1)

        assert scheduler.pending("order:42") == []
        assert started.orders.order_id is None

    def test_selection_persisted(self, started, host, transport, user_payload, order_payload):
        _serve(transport, BETA, user_payload, order_payload)
        started.select_coordinator("Beta")
        assert host.store.get(KEY_COORDINATOR) == "1"

    def test_same_coordinator_is_noop(self, started, transport):
        calls = len(transport.calls)
        assert started.select_coordinator(0) is False
        assert len(transport.calls) == calls
        assert started.robot.nickname == "HonestRobot42"

    def test_unknown_alias(self, started):
        with pytest.raises(FederationError):
            started.select_coordinator("Gamma")
        assert started.base_url == ALPHA


class TestNetworkSwitch:
    def test_switch_to_testnet(self, started, host, transport, user_payload, order_payload):
        _serve(transport, ALPHA_TESTNET, user_payload, order_payload)

        assert started.set_network("testnet") is True

        assert started.base_url == ALPHA_TESTNET
        assert host.store.get(KEY_NETWORK) == "testnet"

    def test_unresolvable_switch_changes_nothing(self, started, host, transport, user_payload, order_payload):
        _serve(transport, BETA, user_payload, order_payload)
        started.select_coordinator(1)

        with pytest.raises(FederationError):
            started.set_network("testnet")

        assert started.network.value == "mainnet"
        assert started.base_url == BETA
        assert host.store.get(KEY_NETWORK) is None


class TestRobotActions:
    def test_new_robot(self, started, host, transport, user_payload):
        old_token = started.robot.token

        mode = started.new_robot()

        assert mode == BootstrapMode.LOOKUP
        assert started.robot.token != old_token
        assert host.store.get(KEY_TOKEN) == started.robot.token
        last_user_call = transport.calls_to("POST", f"{ALPHA}/api/user/")[-1]
        assert last_user_call[3] == {"token_sha256": token_sha256(started.robot.token)}

    def test_new_robot_drops_old_keys(self, session, host, transport, order_payload):
        transport.add("POST", f"{ALPHA}/api/user/", TransportError("down"))
        host.store.set(KEY_PUB_KEY, "PUB")
        host.store.set(KEY_ENC_PRIV_KEY, "ENC")
        session.robot.pub_key = "PUB"
        session.robot.enc_priv_key = "ENC"
        session.start(load_market=False, bootstrap=False)

        session.new_robot()

        assert host.store.get(KEY_PUB_KEY) is None
        assert session.robot.has_keys is False

    def test_open_profile(self, started, transport):
        before = len(transport.calls_to("POST", f"{ALPHA}/api/user/"))
        assert started.open_profile() == BootstrapMode.LOOKUP
        assert len(transport.calls_to("POST", f"{ALPHA}/api/user/")) == before + 1

    def test_copy_token(self, started, clipboard):
        started.robot.copied_token = False
        started.copy_token()
        assert clipboard.values == [started.robot.token]
        assert started.robot.copied_token is True


class TestOrders:
    def test_renew_updates_current_order(self, started, transport, order_payload):
        transport.routes[("GET", f"{ALPHA}/api/order/")] = [
            lambda params, body: {**order_payload, "id": params["order_id"], "status": 5},
        ]
        transport.add("POST", f"{ALPHA}/api/make/", {"id": 43})
        started.track_order(42)

        assert started.renew_order() == 43
        assert started.current_order_id == 43
        assert started.orders.order_id == 43

    def test_cancel_options(self, started):
        options = started.cancel_options()
        assert options.action.value == "direct"

    def test_snapshot(self, started):
        snap = started.snapshot()
        assert snap["network"] == "mainnet"
        assert snap["coordinator"] == "Alpha"
        assert snap["base_url"] == ALPHA
        assert snap["current_order_id"] == 42
        assert snap["robot"]["nickname"] == "HonestRobot42"
        assert snap["order"]["order_id"] == 42
        assert snap["book_size"] == 1
        assert started.robot.token not in str(snap)

    def test_close_stops_timers(self, started, scheduler):
        started.close()
        assert scheduler.pending() == []
