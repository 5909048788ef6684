"""Tests for HttpTransport and CoordinatorClient."""

import json

import httpx
import pytest
import respx
from httpx import Response

from peerclient.api.coordinator_client import CoordinatorClient
from peerclient.api.transport import HttpTransport
from peerclient.errors import TransportError

BASE = "http://coordinator.onion"


@pytest.fixture
def http():
    transport = HttpTransport(timeout=5.0)
    yield transport
    transport.close()


@pytest.fixture
def client(http):
    return CoordinatorClient(http, BASE + "/")


class TestHttpTransport:
    @respx.mock
    def test_json_body(self, http):
        respx.get(f"{BASE}/api/limits/").mock(return_value=Response(200, json={"1": {"code": "USD"}}))
        assert http.request("GET", f"{BASE}/api/limits/") == {"1": {"code": "USD"}}

    @pytest.mark.parametrize("status", [200, 400, 404])
    @respx.mock
    def test_bad_request_is_returned(self, http, status):
        respx.get(f"{BASE}/api/order/").mock(
            return_value=Response(status, json={"bad_request": "Invalid order id"})
        )
        data = http.request("GET", f"{BASE}/api/order/", params={"order_id": 7})
        assert data == {"bad_request": "Invalid order id"}

    @respx.mock
    def test_server_error_raises(self, http):
        respx.get(f"{BASE}/api/info/").mock(return_value=Response(500, text="Internal Server Error"))
        with pytest.raises(TransportError, match="500") as exc_info:
            http.request("GET", f"{BASE}/api/info/")
        assert exc_info.value.status_code == 500

    @respx.mock
    def test_connection_error_raises(self, http):
        respx.get(f"{BASE}/api/info/").mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(TransportError, match="Request failed") as exc_info:
            http.request("GET", f"{BASE}/api/info/")
        assert exc_info.value.status_code is None

    @respx.mock
    def test_invalid_json_raises(self, http):
        respx.get(f"{BASE}/api/info/").mock(return_value=Response(200, text="<html>"))
        with pytest.raises(TransportError, match="Invalid JSON"):
            http.request("GET", f"{BASE}/api/info/")

    @respx.mock
    def test_user_agent(self, http):
        route = respx.get(f"{BASE}/api/info/").mock(return_value=Response(200, json={}))
        http.request("GET", f"{BASE}/api/info/")
        assert route.calls[0].request.headers["User-Agent"].startswith("peerclient/")


class TestCoordinatorClient:
    def test_base_url_trailing_slash_stripped(self, client):
        assert client.base_url == BASE

    @respx.mock
    def test_get_book(self, client):
        respx.get(f"{BASE}/api/book/").mock(
            return_value=Response(200, json=[{"id": 1, "type": 0}, {"id": 2, "type": 1}])
        )
        assert [o["id"] for o in client.get_book()] == [1, 2]

    @respx.mock
    def test_get_book_not_found(self, client):
        respx.get(f"{BASE}/api/book/").mock(
            return_value=Response(404, json={"not_found": "No orders found, be the first to make one"})
        )
        assert client.get_book() == []

    @respx.mock
    def test_get_order(self, client, order_payload):
        route = respx.get(f"{BASE}/api/order/", params={"order_id": "42"}).mock(
            return_value=Response(200, json=order_payload)
        )
        data = client.get_order(42)
        assert data["id"] == 42
        assert route.called

    @respx.mock
    def test_get_order_empty_body_raises(self, client):
        respx.get(f"{BASE}/api/order/").mock(return_value=Response(200))
        with pytest.raises(TransportError, match="Unexpected order body"):
            client.get_order(42)

    @respx.mock
    def test_get_order_list_body_raises(self, client):
        respx.get(f"{BASE}/api/order/").mock(return_value=Response(200, json=[]))
        with pytest.raises(TransportError, match="Unexpected order body"):
            client.get_order(42)

    @respx.mock
    def test_post_user_lookup(self, client):
        route = respx.post(f"{BASE}/api/user/").mock(
            return_value=Response(200, json={"nickname": "HonestRobot42"})
        )
        data = client.post_user("ab" * 32)
        assert data["nickname"] == "HonestRobot42"
        assert json.loads(route.calls[0].request.content) == {"token_sha256": "ab" * 32}

    @respx.mock
    def test_post_user_register(self, client):
        route = respx.post(f"{BASE}/api/user/").mock(return_value=Response(200, json={}))
        client.post_user("ab" * 32, "PUB", "ENC")
        body = json.loads(route.calls[0].request.content)
        assert body == {"token_sha256": "ab" * 32, "pub_key": "PUB", "enc_priv_key": "ENC"}

    @respx.mock
    def test_post_user_partial_keys_not_sent(self, client):
        route = respx.post(f"{BASE}/api/user/").mock(return_value=Response(200, json={}))
        client.post_user("ab" * 32, "PUB", None)
        assert "pub_key" not in json.loads(route.calls[0].request.content)

    @respx.mock
    def test_make_order(self, client):
        route = respx.post(f"{BASE}/api/make/").mock(return_value=Response(201, json={"id": 43}))
        assert client.make_order({"type": 0, "currency": 1})["id"] == 43
        assert json.loads(route.calls[0].request.content)["currency"] == 1

    @respx.mock
    def test_make_order_rejected(self, client):
        respx.post(f"{BASE}/api/make/").mock(
            return_value=Response(400, json={"bad_request": "Your order amount is too big"})
        )
        assert client.make_order({})["bad_request"] == "Your order amount is too big"

    @respx.mock
    def test_get_info_and_limits(self, client):
        respx.get(f"{BASE}/api/info/").mock(
            return_value=Response(200, json={"version": {"major": 0, "minor": 5, "patch": 0}})
        )
        respx.get(f"{BASE}/api/limits/").mock(return_value=Response(200, json={"1": {}}))
        assert client.get_info()["version"]["minor"] == 5
        assert client.get_limits() == {"1": {}}
