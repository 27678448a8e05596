from decimal import Decimal

import pytest

from trotropay.src import exceptions
from trotropay.src.fare_calculator import calculateFare, formatFareAmount, groupFare
from trotropay.src.fare_table import FareStage, FareTable
from trotropay.src.functions import maskPhoneNumber, toMoney


@pytest.fixture
def circle():
    return FareTable.decode(
        ["Circle", "37 Station", "Achimota", "Lapaz"],
        ["Circle:0.00", "37 Station:2.00", "Achimota:2.50", "Lapaz:3.50"],
    )


def test_fare_is_difference_of_cumulative_fares(circle):
    quote = calculateFare(circle, "37 Station", "Lapaz", "Circle - Lapaz")
    assert quote.amount == Decimal("1.50")
    assert quote.distance == 2
    assert quote.route == "37 Station → Lapaz"
    assert quote.route_name == "Circle - Lapaz"


def test_full_route_fare(circle):
    assert calculateFare(circle, "Circle", "Lapaz").amount == Decimal("3.50")


def test_same_stop_is_rejected(circle):
    with pytest.raises(exceptions.InvalidDirection):
        calculateFare(circle, "Achimota", "Achimota")


def test_backwards_trip_is_rejected(circle):
    with pytest.raises(exceptions.InvalidDirection):
        calculateFare(circle, "Lapaz", "Circle")


def test_unknown_stop(circle):
    with pytest.raises(exceptions.UnknownStop):
        calculateFare(circle, "Circle", "Kaneshie")


def test_decreasing_stored_fares_are_rejected():
    table = FareTable(
        [
            FareStage("Circle", Decimal("0.00")),
            FareStage("37 Station", Decimal("2.00")),
            FareStage("Lapaz", Decimal("1.00")),
        ]
    )
    with pytest.raises(exceptions.NonMonotonicFares):
        calculateFare(table, "37 Station", "Lapaz")


def test_group_fare(circle):
    quote = calculateFare(circle, "37 Station", "Lapaz")
    assert groupFare(quote, 3) == Decimal("4.50")


def test_group_fare_needs_a_passenger(circle):
    quote = calculateFare(circle, "37 Station", "Lapaz")
    with pytest.raises(exceptions.InvalidAmount):
        groupFare(quote, 0)


def test_format_fare_amount():
    assert formatFareAmount(Decimal("1.5")) == "GH₵ 1.50"


def test_to_money_from_float():
    assert toMoney(2.5) == Decimal("2.50")
    assert str(toMoney("3.456")) == "3.46"


def test_mask_phone_number():
    assert maskPhoneNumber("0245678901") == "024****901"
