from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from trotropay.src import exceptions
from trotropay.src.constants import CURRENCY_SYMBOL
from trotropay.src.fare_table import FareTable
from trotropay.src.functions import formatMoney, toMoney


@dataclass(frozen=True)
class FareQuote:
    """
    Price of a single-passenger trip between two stops of a route.

    Attributes:
        amount (Decimal): Fare for one passenger, two decimals.
        boarding_stop (str): Stop the passenger gets on at.
        alighting_stop (str): Stop the passenger gets off at.
        distance (int): Number of stops travelled.
        route (str): Display label, e.g. "Circle → Lapaz".
        route_name (Optional[str]): Name of the priced route, when known.
    """

    amount: Decimal
    boarding_stop: str
    alighting_stop: str
    distance: int
    route: str
    route_name: Optional[str] = None


def calculateFare(
    table: FareTable,
    boardingStop: str,
    alightingStop: str,
    routeName: Optional[str] = None,
) -> FareQuote:
    """
    Price a trip as the difference of the two cumulative fares.

    Args:
        table (FareTable): Fare table of the route.
        boardingStop (str): Stop the passenger boards at.
        alightingStop (str): Stop the passenger alights at.
        routeName (Optional[str]): Route name carried into the quote.

    Returns:
        FareQuote: The single-passenger fare.

    Raises:
        exceptions.UnknownStop: If either stop is not on the route.
        exceptions.InvalidDirection: If the alighting stop is not after the boarding stop.
        exceptions.NonMonotonicFares: If the stored fares decrease between the two stops.

    Example:
        >>> calculateFare(table, "37 Station", "Lapaz").amount
        Decimal('1.50')
    """
    boardingIndex = table.indexOf(boardingStop)
    alightingIndex = table.indexOf(alightingStop)
    if boardingIndex >= alightingIndex:
        raise exceptions.InvalidDirection()

    amount = toMoney(table.stages[alightingIndex].fare - table.stages[boardingIndex].fare)
    if amount < 0:
        raise exceptions.NonMonotonicFares(alightingStop)

    return FareQuote(
        amount=amount,
        boarding_stop=boardingStop,
        alighting_stop=alightingStop,
        distance=alightingIndex - boardingIndex,
        route=f"{boardingStop} → {alightingStop}",
        route_name=routeName,
    )


def groupFare(quote: FareQuote, passengerCount: int) -> Decimal:
    """Total fare for `passengerCount` passengers travelling on the same quote."""
    if passengerCount < 1:
        raise exceptions.InvalidAmount()
    return toMoney(quote.amount * passengerCount)


def formatFareAmount(amount: Decimal) -> str:
    """
    Render an amount for display.

    Example:
        >>> formatFareAmount(Decimal("1.5"))
        'GH₵ 1.50'
    """
    return f"{CURRENCY_SYMBOL} {formatMoney(amount)}"
