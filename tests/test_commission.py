from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

from trotropay.src.commission import (
    DEFAULT_RATES,
    CommissionRates,
    DailyTotal,
    dailyTotals,
    ratesFor,
    split,
    splitEarnings,
)
from conftest import OWNER_PHONE, PASSENGER_PHONE, accountId


def test_default_split():
    shares = split(Decimal("100.00"))
    assert shares.driver_share == Decimal("15.00")
    assert shares.mate_share == Decimal("10.00")
    assert shares.platform_fee == Decimal("5.00")
    assert shares.owner_net == Decimal("70.00")


def test_shares_are_rounded_independently():
    shares = split(Decimal("3.50"))
    assert shares.driver_share == Decimal("0.53")
    assert shares.mate_share == Decimal("0.35")
    assert shares.platform_fee == Decimal("0.18")
    assert shares.owner_net == Decimal("2.45")


def test_rates_need_not_sum_to_hundred():
    rates = CommissionRates(
        driver=Decimal("50"), mate=Decimal("30"), platform=Decimal("30")
    )
    assert split(Decimal("10.00"), rates).owner_net == Decimal("-1.00")


def test_split_earnings_totals_transactions():
    transactions = [
        SimpleNamespace(amount=Decimal("3.50")),
        SimpleNamespace(amount=Decimal("6.50")),
    ]
    gross, shares = splitEarnings(transactions)
    assert gross == Decimal("10.00")
    assert shares.owner_net == Decimal("7.00")


def test_split_earnings_without_transactions():
    gross, shares = splitEarnings([])
    assert gross == Decimal("0.00")
    assert shares.driver_share == Decimal("0.00")


def test_rates_for_configured_owner(session, seed):
    rates = ratesFor(session, accountId(OWNER_PHONE))
    assert rates.driver == Decimal("15.00")
    assert rates.platform == Decimal("5.00")


def test_rates_for_owner_without_configuration(session, seed):
    assert ratesFor(session, accountId(PASSENGER_PHONE)) == DEFAULT_RATES
    assert ratesFor(session, None) == DEFAULT_RATES


def paid(amount: str, createdOn: datetime):
    return SimpleNamespace(amount=Decimal(amount), created_on=createdOn)


def test_daily_totals_fill_days_without_payments():
    today = date(2026, 10, 18)
    totals = dailyTotals(
        [
            paid("3.50", datetime(2026, 10, 18, 7, 30)),
            paid("6.50", datetime(2026, 10, 18, 18, 5)),
            paid("2.00", datetime(2026, 10, 16, 12, 0)),
        ],
        3,
        today,
    )
    assert totals == [
        DailyTotal(day=date(2026, 10, 16), transactions=1, gross=Decimal("2.00")),
        DailyTotal(day=date(2026, 10, 17), transactions=0, gross=Decimal("0.00")),
        DailyTotal(day=date(2026, 10, 18), transactions=2, gross=Decimal("10.00")),
    ]


def test_daily_totals_ignore_payments_outside_window():
    today = date(2026, 10, 18)
    totals = dailyTotals(
        [
            paid("4.00", datetime(2026, 10, 11, 23, 59)),
            paid("1.00", datetime(2026, 10, 19, 0, 1)),
        ],
        7,
        today,
    )
    assert len(totals) == 7
    assert totals[0].day == date(2026, 10, 12)
    assert sum(total.transactions for total in totals) == 0


def test_daily_totals_use_utc_days():
    lagos = timezone(timedelta(hours=1))
    totals = dailyTotals(
        [
            paid("2.50", datetime(2026, 10, 18, 0, 30, tzinfo=lagos)),
            paid("3.00", datetime(2026, 10, 18, 0, 30, tzinfo=timezone.utc)),
        ],
        2,
        date(2026, 10, 18),
    )
    assert [total.gross for total in totals] == [Decimal("2.50"), Decimal("3.00")]
