from decimal import Decimal

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from trotropay.src import exceptions, ledger
from conftest import MATE_PHONE, PASSENGER_PHONE, STARTING_BALANCE, accountId


@pytest.fixture
def passengerId(seed):
    return accountId(PASSENGER_PHONE)


def test_opening_balances(session, seed):
    assert ledger.getBalance(session, accountId(PASSENGER_PHONE)) == STARTING_BALANCE
    assert ledger.getBalance(session, accountId(MATE_PHONE)) == Decimal("0.00")


def test_debit(session, passengerId):
    newBalance = ledger.debit(session, passengerId, Decimal("3.50"))
    session.commit()
    assert newBalance == Decimal("21.90")
    assert ledger.getBalance(session, passengerId) == Decimal("21.90")


def test_debit_whole_balance(session, passengerId):
    assert ledger.debit(session, passengerId, STARTING_BALANCE) == Decimal("0.00")


def test_debit_more_than_balance(session, passengerId):
    with pytest.raises(exceptions.InsufficientBalance) as e:
        ledger.debit(session, passengerId, Decimal("30.00"))
    assert e.value.balance == STARTING_BALANCE
    assert e.value.amount == Decimal("30.00")
    assert ledger.getBalance(session, passengerId) == STARTING_BALANCE


@pytest.mark.parametrize("amount", ["0", "-1.00", "1.005", "abc"])
def test_debit_invalid_amount(session, passengerId, amount):
    with pytest.raises(exceptions.InvalidAmount):
        ledger.debit(session, passengerId, amount)


def test_credit(session, passengerId):
    assert ledger.credit(session, passengerId, "10") == Decimal("35.40")


def test_unknown_wallet(session, seed):
    with pytest.raises(exceptions.AccountNotFound):
        ledger.getBalance(session, 999)
    with pytest.raises(exceptions.AccountNotFound):
        ledger.credit(session, 999, Decimal("1.00"))


def test_rollback_restores_balance(session, passengerId):
    ledger.debit(session, passengerId, Decimal("5.00"))
    session.rollback()
    assert ledger.getBalance(session, passengerId) == STARTING_BALANCE


def test_wallet_lock_is_keyed_by_account(mock_redis_client, passengerId):
    with ledger.walletLock(passengerId):
        pass
    name = mock_redis_client.lock.call_args.args[0]
    assert name == f"lock:wallet:{passengerId}"
    mock_redis_client.lock.return_value.release.assert_called_once()


def test_wallet_lock_timeout(mock_redis_client, passengerId):
    mock_redis_client.lock.return_value.acquire.return_value = False
    with pytest.raises(exceptions.LockAcquireTimeout):
        with ledger.walletLock(passengerId):
            pass


def test_wallet_lock_release_failure_is_not_raised(
    session, mock_redis_client, passengerId
):
    mock_redis_client.lock.return_value.release.side_effect = RedisConnectionError(
        "connection reset"
    )
    with ledger.walletLock(passengerId):
        ledger.debit(session, passengerId, Decimal("3.50"))
        session.commit()
    mock_redis_client.lock.return_value.release.assert_called_once()
    assert ledger.getBalance(session, passengerId) == Decimal("21.90")


def test_wallet_lock_keeps_body_error(mock_redis_client, passengerId):
    mock_redis_client.lock.return_value.release.side_effect = RedisConnectionError()
    with pytest.raises(exceptions.InsufficientBalance):
        with ledger.walletLock(passengerId):
            raise exceptions.InsufficientBalance(Decimal("1.00"), Decimal("2.00"))
