"""
Split of gross fare revenue between driver, mate, platform and owner.

Rates are percentages of the gross amount. They are not required to sum to
100: whatever is left after the driver, mate and platform shares is the
owner's net.

Each share is rounded to two decimals on its own while the owner's net is
taken from the unrounded shares, so the four rounded figures may differ from
the gross by at most a cent or two.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm.session import Session

from trotropay.src.constants import (
    DEFAULT_DRIVER_COMMISSION,
    DEFAULT_MATE_COMMISSION,
    DEFAULT_PLATFORM_FEE,
)
from trotropay.src.db import Commission, Transaction
from trotropay.src.functions import toMoney

HUNDRED = Decimal(100)


@dataclass(frozen=True)
class CommissionRates:
    driver: Decimal
    mate: Decimal
    platform: Decimal


@dataclass(frozen=True)
class CommissionSplit:
    driver_share: Decimal
    mate_share: Decimal
    platform_fee: Decimal
    owner_net: Decimal


@dataclass(frozen=True)
class DailyTotal:
    day: date
    transactions: int
    gross: Decimal


DEFAULT_RATES = CommissionRates(
    driver=DEFAULT_DRIVER_COMMISSION,
    mate=DEFAULT_MATE_COMMISSION,
    platform=DEFAULT_PLATFORM_FEE,
)


def split(gross: Decimal, rates: Optional[CommissionRates] = None) -> CommissionSplit:
    """
    Divide a gross amount according to commission rates.

    Args:
        gross (Decimal): Gross fare revenue.
        rates (Optional[CommissionRates]): Percentages to apply, `DEFAULT_RATES` when None.

    Returns:
        CommissionSplit: Rounded driver, mate and platform shares plus the owner's net.

    Example:
        >>> split(Decimal("100.00"))
        CommissionSplit(driver_share=Decimal('15.00'), mate_share=Decimal('10.00'),
                        platform_fee=Decimal('5.00'), owner_net=Decimal('70.00'))
    """
    rates = rates or DEFAULT_RATES
    gross = Decimal(gross)

    driverShare = gross * Decimal(rates.driver) / HUNDRED
    mateShare = gross * Decimal(rates.mate) / HUNDRED
    platformFee = gross * Decimal(rates.platform) / HUNDRED
    ownerNet = gross - driverShare - mateShare - platformFee

    return CommissionSplit(
        driver_share=toMoney(driverShare),
        mate_share=toMoney(mateShare),
        platform_fee=toMoney(platformFee),
        owner_net=toMoney(ownerNet),
    )


def ratesFor(session: Session, ownerId: Optional[int]) -> CommissionRates:
    """Commission rates configured by a vehicle owner, the defaults when none are set."""
    if ownerId is None:
        return DEFAULT_RATES
    commission = session.query(Commission).filter(Commission.owner_id == ownerId).first()
    if commission is None:
        return DEFAULT_RATES
    return CommissionRates(
        driver=commission.driver_commission,
        mate=commission.mate_commission,
        platform=commission.platform_fee,
    )


def splitEarnings(
    transactions: Iterable[Transaction], rates: Optional[CommissionRates] = None
) -> tuple[Decimal, CommissionSplit]:
    """
    Total the gross amount of some transactions and split it.

    Returns:
        tuple[Decimal, CommissionSplit]: The gross total and its split.
    """
    gross = sum((toMoney(transaction.amount) for transaction in transactions), Decimal("0.00"))
    return toMoney(gross), split(gross, rates)


def utcDay(moment: datetime) -> date:
    """Calendar day of a timestamp in UTC, naive timestamps are taken as UTC."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()


def firstDay(days: int, today: Optional[date] = None) -> date:
    """First day of a window of `days` days ending today (UTC)."""
    today = today or datetime.now(timezone.utc).date()
    return today - timedelta(days=days - 1)


def dailyTotals(
    transactions: Iterable[Transaction], days: int, today: Optional[date] = None
) -> List[DailyTotal]:
    """
    Gross amount and number of transactions per day over the last `days` days.

    One entry per day, oldest first, days without payments included at 0.00.
    Transactions outside the window are ignored.

    Example:
        >>> dailyTotals(transactions, 7)[-1]
        DailyTotal(day=datetime.date(2026, 10, 18), transactions=2, gross=Decimal('10.00'))
    """
    start = firstDay(days, today)
    counts = [0] * days
    totals = [Decimal("0.00")] * days
    for transaction in transactions:
        index = (utcDay(transaction.created_on) - start).days
        if 0 <= index < days:
            counts[index] += 1
            totals[index] += toMoney(transaction.amount)
    return [
        DailyTotal(
            day=start + timedelta(days=index),
            transactions=counts[index],
            gross=toMoney(totals[index]),
        )
        for index in range(days)
    ]
