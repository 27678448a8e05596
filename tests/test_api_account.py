from datetime import datetime, timedelta, timezone

from trotropay.src.cleaner import removeExpiredTokens
from trotropay.src.constants import MAX_ACCOUNT_TOKENS
from trotropay.src.db import Account, AccountToken, sessionMaker
from trotropay.src.urls import (
    URL_ACCOUNT,
    URL_ACCOUNT_TOKEN,
    URL_ACCOUNT_TOP_UP,
    URL_ACCOUNT_WALLET,
)
from conftest import PASSENGER_PHONE, accountId, login

API = "/api"


def register(client, **fields):
    data = {"fullName": "Ama Owusu", "phoneNumber": "0501234567", "pin": "4321"}
    data.update(fields)
    return client.post(API + URL_ACCOUNT, json=data)


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "OK", "version": "1.0.0"}


def test_register_passenger(client, mock_openobserve):
    response = register(client)
    assert response.status_code == 201
    account = response.json()
    assert account["phoneNumber"] == "0501234567"
    assert account["role"] == 1
    assert account["balance"] == "25.40"
    assert "pin" not in account
    assert "pin" not in mock_openobserve.call_args.args[0]


def test_register_crew_starts_empty(client):
    response = register(client, role=3)
    assert response.status_code == 201
    assert response.json()["balance"] == "0.00"


def test_pin_is_stored_hashed(client):
    register(client)
    with sessionMaker() as session:
        account = session.query(Account).filter(Account.phone_number == "0501234567").one()
    assert account.pin != "4321"
    assert account.pin.startswith("$argon2")


def test_register_duplicate_phone(client, seed):
    response = register(client, phoneNumber=PASSENGER_PHONE)
    assert response.status_code == 400
    assert response.headers["X-Error"] == "AccountExists"
    assert response.json()["message"] == "User already exists"


def test_register_malformed_phone(client):
    response = register(client, phoneNumber="12345")
    assert response.status_code == 422


def test_login_and_fetch_account(client, seed):
    headers = login(client, PASSENGER_PHONE)
    response = client.get(API + URL_ACCOUNT, headers=headers)
    assert response.status_code == 200
    assert response.json()["fullName"] == "Kwame Asante"
    assert response.json()["balance"] == "25.40"


def test_login_wrong_pin(client, seed):
    response = client.post(
        API + URL_ACCOUNT_TOKEN, json={"phoneNumber": PASSENGER_PHONE, "pin": "0000"}
    )
    assert response.status_code == 401
    assert response.headers["X-Error"] == "InvalidCredentials"


def test_login_unknown_phone(client, seed):
    response = client.post(
        API + URL_ACCOUNT_TOKEN, json={"phoneNumber": "0209999999", "pin": "1234"}
    )
    assert response.status_code == 401


def test_missing_token(client, seed):
    response = client.get(API + URL_ACCOUNT_WALLET)
    assert response.status_code == 401
    assert response.headers["X-Error"] == "InvalidToken"


def test_token_rotation(client, seed):
    for _ in range(MAX_ACCOUNT_TOKENS + 2):
        login(client, PASSENGER_PHONE)
    with sessionMaker() as session:
        count = (
            session.query(AccountToken)
            .filter(AccountToken.account_id == accountId(PASSENGER_PHONE))
            .count()
        )
    assert count == MAX_ACCOUNT_TOKENS


def test_logout(client, passenger_headers):
    response = client.delete(API + URL_ACCOUNT_TOKEN, headers=passenger_headers)
    assert response.status_code == 204
    response = client.get(API + URL_ACCOUNT_WALLET, headers=passenger_headers)
    assert response.status_code == 401


def test_top_up(client, passenger_headers):
    response = client.post(
        API + URL_ACCOUNT_TOP_UP, headers=passenger_headers, json={"amount": "10.00"}
    )
    assert response.status_code == 200
    assert response.json() == {"message": "Top-up successful", "newBalance": "35.40"}

    response = client.get(API + URL_ACCOUNT_WALLET, headers=passenger_headers)
    assert response.json()["balance"] == "35.40"


def test_top_up_invalid_amount(client, passenger_headers):
    response = client.post(
        API + URL_ACCOUNT_TOP_UP, headers=passenger_headers, json={"amount": "-5"}
    )
    assert response.status_code == 400
    assert response.headers["X-Error"] == "InvalidAmount"


def test_cleaner_removes_expired_tokens(client, seed):
    login(client, PASSENGER_PHONE)
    expired = datetime.now(timezone.utc) - timedelta(days=1)
    with sessionMaker() as session:
        session.add(
            AccountToken(
                account_id=accountId(PASSENGER_PHONE),
                expires_in=60,
                expires_at=expired,
            )
        )
        session.commit()
        assert removeExpiredTokens(session) == 1
        assert session.query(AccountToken).count() == 1
