import pytest
from starlette.websockets import WebSocketDisconnect

from trotropay.src.notifier import registry
from trotropay.src.urls import URL_COMMISSION, URL_NOTIFICATION_SOCKET
from conftest import DRIVER_PHONE, OWNER_PHONE, accountId, login

API = "/api"


def test_fetch_commission(client, owner_headers):
    response = client.get(API + URL_COMMISSION, headers=owner_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["ownerId"] == accountId(OWNER_PHONE)
    assert data["driverCommission"] == "15.00"
    assert data["mateCommission"] == "10.00"
    assert data["platformFee"] == "5.00"


def test_update_commission(client, owner_headers):
    response = client.put(
        API + URL_COMMISSION, headers=owner_headers, json={"driverCommission": "20.00"}
    )
    assert response.status_code == 200
    assert response.json()["driverCommission"] == "20.00"
    assert response.json()["platformFee"] == "5.00"


def test_commission_out_of_range(client, owner_headers):
    response = client.put(
        API + URL_COMMISSION, headers=owner_headers, json={"mateCommission": "120"}
    )
    assert response.status_code == 422


def test_commission_needs_owner(client, seed):
    headers = login(client, DRIVER_PHONE)
    assert client.get(API + URL_COMMISSION, headers=headers).status_code == 403


def test_notification_socket_rejects_bad_token(client, seed):
    with pytest.raises(WebSocketDisconnect) as e:
        with client.websocket_connect(API + URL_NOTIFICATION_SOCKET + "?token=bad"):
            pass
    assert e.value.code == 1008


def test_notification_socket_deregisters_on_close(client, seed):
    headers = login(client, OWNER_PHONE)
    token = headers["Authorization"].removeprefix("Bearer ")
    with client.websocket_connect(f"{API}{URL_NOTIFICATION_SOCKET}?token={token}"):
        pass
    assert accountId(OWNER_PHONE) not in registry.connections
