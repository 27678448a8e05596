from trotropay.src.urls import (
    URL_ACCOUNT_WALLET,
    URL_PAYMENT_PROCESS,
    URL_TRANSACTION,
)
from conftest import CIRCLE_VEHICLE, DRIVER_PHONE, accountId, login

API = "/api"


def pay(client, headers, **fields):
    fields.setdefault("vehicleId", CIRCLE_VEHICLE)
    return client.post(API + URL_PAYMENT_PROCESS, headers=headers, json=fields)


def balance(client, headers) -> str:
    return client.get(API + URL_ACCOUNT_WALLET, headers=headers).json()["balance"]


def test_payment_then_insufficient_group_payment(client, passenger_headers, mock_notifier):
    response = pay(client, passenger_headers, destination="Lapaz", amount="3.50")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Payment successful"
    assert data["newBalance"] == "21.90"
    assert data["transaction"]["amount"] == "3.50"
    assert data["transaction"]["status"] == "completed"
    assert data["transaction"]["isGroupPayment"] is False
    assert balance(client, passenger_headers) == "21.90"
    mock_notifier.publish.assert_called_once()

    response = pay(
        client,
        passenger_headers,
        destination="Lapaz",
        amount="30.00",
        passengerCount=3,
    )
    assert response.status_code == 400
    assert response.headers["X-Error"] == "InsufficientBalance"
    assert response.json()["message"] == "Insufficient balance"
    assert balance(client, passenger_headers) == "21.90"

    transactions = client.get(API + URL_TRANSACTION, headers=passenger_headers).json()
    assert len(transactions) == 1
    mock_notifier.publish.assert_called_once()


def test_stop_priced_group_payment(client, passenger_headers):
    response = pay(
        client,
        passenger_headers,
        boardingStop="37 Station",
        destination="Lapaz",
        passengerCount=2,
    )
    assert response.status_code == 200
    transaction = response.json()["transaction"]
    assert transaction["amount"] == "3.00"
    assert transaction["individualFare"] == "1.50"
    assert transaction["isGroupPayment"] is True
    assert transaction["route"] == "Circle - Lapaz"
    assert response.json()["newBalance"] == "22.40"


def test_payment_records_crew(client, passenger_headers):
    transaction = pay(
        client, passenger_headers, destination="Lapaz", amount="2.00"
    ).json()["transaction"]
    assert transaction["driverId"] == accountId(DRIVER_PHONE)
    assert transaction["paymentMethod"] == "momo"


def test_payment_audit_event_carries_shares(client, passenger_headers, mock_openobserve):
    pay(client, passenger_headers, destination="Lapaz", amount="10.00")
    event = mock_openobserve.call_args.args[0]
    assert event["_path"] == API + URL_PAYMENT_PROCESS
    assert event["shares"] == {
        "driver_share": "1.50",
        "mate_share": "1.00",
        "platform_fee": "0.50",
        "owner_net": "7.00",
    }


def test_only_passengers_pay(client, seed):
    headers = login(client, DRIVER_PHONE)
    response = pay(client, headers, destination="Lapaz", amount="1.00")
    assert response.status_code == 403
    assert response.headers["X-Error"] == "NoPermission"


def test_payment_needs_token(client, seed):
    response = pay(client, {}, destination="Lapaz", amount="1.00")
    assert response.status_code == 401


def test_payment_unknown_vehicle(client, passenger_headers):
    response = pay(
        client, passenger_headers, vehicleId="GT-0000-00", destination="Lapaz", amount="1.00"
    )
    assert response.status_code == 404
    assert response.headers["X-Error"] == "VehicleNotFound"


def test_payment_without_fare_input(client, passenger_headers):
    response = pay(client, passenger_headers, destination="Lapaz")
    assert response.status_code == 400
    assert response.headers["X-Error"] == "MissingFareInput"


def test_payment_invalid_amount(client, passenger_headers):
    response = pay(client, passenger_headers, destination="Lapaz", amount="-3.50")
    assert response.status_code == 400
    assert response.headers["X-Error"] == "InvalidAmount"
    assert balance(client, passenger_headers) == "25.40"


def test_payment_malformed_body(client, passenger_headers):
    response = pay(client, passenger_headers, destination="", amount="1.00")
    assert response.status_code == 422


def test_transaction_history_is_paginated(client, passenger_headers):
    for amount in ("1.00", "2.00", "3.00"):
        pay(client, passenger_headers, destination="Lapaz", amount=amount)
    response = client.get(
        API + URL_TRANSACTION, headers=passenger_headers, params={"limit": 2}
    )
    assert [t["amount"] for t in response.json()] == ["3.00", "2.00"]
    response = client.get(
        API + URL_TRANSACTION, headers=passenger_headers, params={"offset": 2}
    )
    assert [t["amount"] for t in response.json()] == ["1.00"]
