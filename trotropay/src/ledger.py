"""
Wallet ledger.

Every change to a wallet balance goes through this module. The functions
work on a session owned by the caller: they flush their changes so the new
balance is visible inside the transaction, but never commit. This lets the
payment flow debit a wallet and record the transaction in one commit.
"""

from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from logging import getLogger
from typing import Iterator
from redis.exceptions import RedisError
from redis.lock import Lock
from sqlalchemy.orm.session import Session

from trotropay.src import exceptions
from trotropay.src.db import Wallet
from trotropay.src.functions import toMoney
from trotropay.src.redis import acquireLock, releaseLock

logger = getLogger(__name__)


def _amount(value) -> Decimal:
    try:
        amount = toMoney(value)
    except (InvalidOperation, TypeError, ValueError):
        raise exceptions.InvalidAmount()
    if amount <= 0 or amount != Decimal(str(value)):
        raise exceptions.InvalidAmount()
    return amount


def _wallet(session: Session, accountId: int, forUpdate: bool = False) -> Wallet:
    query = session.query(Wallet).filter(Wallet.account_id == accountId)
    if forUpdate:
        query = query.with_for_update()
    wallet = query.first()
    if wallet is None:
        raise exceptions.AccountNotFound()
    return wallet


def getBalance(session: Session, accountId: int) -> Decimal:
    """
    Current balance of an account's wallet.

    Raises:
        exceptions.AccountNotFound: If the account has no wallet.
    """
    return toMoney(_wallet(session, accountId).balance)


def debit(session: Session, accountId: int, amount) -> Decimal:
    """
    Remove `amount` from the wallet of `accountId`.

    The wallet row is locked with `SELECT ... FOR UPDATE` until the caller's
    transaction ends.

    Args:
        session (Session): Open session; the caller commits or rolls back.
        accountId (int): Account whose wallet is debited.
        amount: Positive amount with at most two decimals.

    Returns:
        Decimal: The balance after the debit.

    Raises:
        exceptions.InvalidAmount: If the amount is not positive or has more than two decimals.
        exceptions.AccountNotFound: If the account has no wallet.
        exceptions.InsufficientBalance: If the balance is lower than `amount`.
            The balance is left unchanged.
    """
    amount = _amount(amount)
    wallet = _wallet(session, accountId, forUpdate=True)
    balance = toMoney(wallet.balance)
    if amount > balance:
        raise exceptions.InsufficientBalance(balance, amount)

    wallet.balance = toMoney(balance - amount)
    session.flush()
    logger.debug(f"Debited {amount} from wallet {wallet.id}")
    return wallet.balance


def credit(session: Session, accountId: int, amount) -> Decimal:
    """
    Add `amount` to the wallet of `accountId` and return the new balance.

    Raises:
        exceptions.InvalidAmount: If the amount is not positive or has more than two decimals.
        exceptions.AccountNotFound: If the account has no wallet.
    """
    amount = _amount(amount)
    wallet = _wallet(session, accountId, forUpdate=True)
    wallet.balance = toMoney(toMoney(wallet.balance) + amount)
    session.flush()
    logger.debug(f"Credited {amount} to wallet {wallet.id}")
    return wallet.balance


def openWallet(session: Session, accountId: int, balance=Decimal("0.00")) -> Wallet:
    """Create the wallet of a new account with an opening balance."""
    wallet = Wallet(account_id=accountId, balance=toMoney(balance))
    session.add(wallet)
    session.flush()
    return wallet


@contextmanager
def walletLock(accountId: int) -> Iterator[Lock]:
    """
    Serialize balance changes of one wallet across workers.

    A failure to release the lock is logged and not raised: by then the
    balance change may already be committed, and the lock expires on its own
    after MUTEX_LOCK_TIMEOUT.

    Example:
        >>> with walletLock(passenger.id):
        ...     debit(session, passenger.id, Decimal("3.50"))
        ...     session.commit()
    """
    lock = acquireLock(Wallet.__tablename__, accountId)
    try:
        yield lock
    finally:
        try:
            releaseLock(lock)
        except RedisError as e:
            logger.warning(f"Wallet lock of account {accountId} not released: {e}")
