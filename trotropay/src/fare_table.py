"""
Route fare table and the editing operations drivers use to maintain it.

A route stores its stops as an ordered list and, for every stop, the
cumulative fare from the first stop. The price of a trip is the difference
of two cumulative fares, so re-pricing one segment is a single edit.

On the wire and in the database the table is a list of "stop:amount"
strings. Inside the application it is a `FareTable`, an ordered list of
`FareStage` pairs, decoded once at the boundary and encoded again on write.

Every editing operation returns a new `FareTable` and leaves the original
untouched. After each edit the first stop (the origin) carries a fare of 0.00.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from trotropay.src import exceptions
from trotropay.src.constants import FARE_SEPARATOR, MIN_STOPS_IN_ROUTE
from trotropay.src.enums import Direction
from trotropay.src.functions import formatMoney, toMoney

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class FareStage:
    stop: str
    fare: Decimal


class FareTable:
    """
    Ordered, position-aligned stops and cumulative fares of one route.

    Attributes:
        stages (List[FareStage]): Stops in travel order with their cumulative fare.
    """

    def __init__(self, stages: List[FareStage]):
        self.stages = list(stages)

    def __eq__(self, other) -> bool:
        return isinstance(other, FareTable) and self.stages == other.stages

    def __len__(self) -> int:
        return len(self.stages)

    def __repr__(self) -> str:
        return f"FareTable({self.encode()[1]})"

    @property
    def stops(self) -> List[str]:
        return [stage.stop for stage in self.stages]

    @property
    def fares(self) -> List[Decimal]:
        return [stage.fare for stage in self.stages]

    def indexOf(self, stop: str) -> int:
        """
        Position of a stop in travel order.

        Raises:
            exceptions.UnknownStop: If the stop is not on the route.
        """
        for index, stage in enumerate(self.stages):
            if stage.stop == stop:
                return index
        raise exceptions.UnknownStop(stop)

    def fareOf(self, stop: str) -> Decimal:
        """Cumulative fare from the origin to `stop`."""
        return self.stages[self.indexOf(stop)].fare

    @staticmethod
    def parseFares(entries: List[str]) -> Dict[str, Decimal]:
        """
        Parse "stop:amount" strings into a mapping of stop name to amount.

        The amount is taken after the last separator, so stop names may
        themselves contain a colon.

        Raises:
            exceptions.InvalidFareEntry: If an entry has no separator, an empty
                stop name or an amount that is not a non-negative number.
        """
        faresByStop = {}
        for entry in entries:
            stop, separator, amount = entry.rpartition(FARE_SEPARATOR)
            stop = stop.strip()
            if not separator or not stop:
                raise exceptions.InvalidFareEntry(entry)
            try:
                fare = toMoney(amount.strip())
            except InvalidOperation:
                raise exceptions.InvalidFareEntry(entry)
            if fare < 0:
                raise exceptions.InvalidFareEntry(entry)
            faresByStop[stop] = fare
        return faresByStop

    @staticmethod
    def decode(stops: List[str], fares: List[str]) -> "FareTable":
        """
        Build a `FareTable` from the persisted stop list and "stop:amount" strings.

        Fares are matched to stops by name. A stop without an entry is
        priced at 0.00 and entries naming other stops are ignored.

        Example:
            >>> FareTable.decode(["Circle", "Lapaz"], ["Circle:0.00", "Lapaz:3.50"]).fares
            [Decimal('0.00'), Decimal('3.50')]
        """
        faresByStop = FareTable.parseFares(fares)
        return FareTable([FareStage(stop, faresByStop.get(stop, ZERO)) for stop in stops])

    def encode(self) -> Tuple[List[str], List[str]]:
        """
        Serialize to the persisted/wire format.

        Returns:
            Tuple[List[str], List[str]]: The stop names and the "stop:amount"
            strings, each amount with exactly two decimals.
        """
        stops = self.stops
        fares = [
            f"{stage.stop}{FARE_SEPARATOR}{formatMoney(stage.fare)}"
            for stage in self.stages
        ]
        return stops, fares


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def anchorOrigin(stages: List[FareStage]) -> FareTable:
    """Return a table whose first stop is priced at 0.00."""
    if stages and stages[0].fare != ZERO:
        stages = [FareStage(stages[0].stop, ZERO)] + stages[1:]
    return FareTable(stages)


def cleanStopName(name: str) -> str:
    name = name.strip() if name else ""
    if not name:
        raise exceptions.InvalidStopName()
    return name


def checkMonotonic(table: FareTable) -> None:
    """
    Ensure cumulative fares never decrease along the route.

    Raises:
        exceptions.NonMonotonicFares: Naming the first stop priced below its predecessor.
    """
    for previous, current in zip(table.stages, table.stages[1:]):
        if current.fare < previous.fare:
            raise exceptions.NonMonotonicFares(current.stop)


def newTable(stops: List[str], faresByStop: Dict[str, Decimal]) -> FareTable:
    """
    Create the fare table of a new route.

    Runs the same checks as a full stop replacement followed by `setFares`.
    """
    return setFares(replaceStops(FareTable([]), stops), faresByStop)


# ---------------------------------------------------------------------------
# Editing operations
# ---------------------------------------------------------------------------
def addStop(
    table: FareTable,
    name: str,
    position: Optional[int] = None,
    fare: Optional[Decimal] = None,
) -> FareTable:
    """
    Insert a stop into the route.

    Args:
        table (FareTable): Current table.
        name (str): New stop name. Surrounding whitespace is dropped.
        position (Optional[int]): Index to insert at, the end of the route when None.
            Positions past the end append.
        fare (Optional[Decimal]): Cumulative fare of the new stop. When None the
            stop takes the fare of the stop before it.

    Raises:
        exceptions.InvalidStopName: If the name is blank.
        exceptions.DuplicateStop: If a stop with exactly this name exists.
        exceptions.InvalidStopIndex: If the position is negative.
        exceptions.InvalidFareEntry: If the fare is negative.
        exceptions.NonMonotonicFares: If an explicit fare is lower than the fare
            of the stop before it or higher than the fare of the stop after it.
    """
    name = cleanStopName(name)
    if name in table.stops:
        raise exceptions.DuplicateStop(name)

    if position is None or position > len(table):
        position = len(table)
    if position < 0:
        raise exceptions.InvalidStopIndex(position)

    explicitFare = fare is not None
    if fare is None:
        fare = table.stages[position - 1].fare if position > 0 else ZERO
    fare = toMoney(fare)
    if fare < 0:
        raise exceptions.InvalidFareEntry(f"{name}{FARE_SEPARATOR}{fare}")

    stages = list(table.stages)
    stages.insert(position, FareStage(name, fare))
    result = anchorOrigin(stages)
    if explicitFare:
        # Only the new stop and its neighbours, the rest is checked by setFares
        checkMonotonic(FareTable(result.stages[max(position - 1, 0) : position + 2]))
    return result


def removeStop(table: FareTable, name: str) -> FareTable:
    """
    Remove a stop together with its fare.

    Raises:
        exceptions.MinimumStops: If fewer than MIN_STOPS_IN_ROUTE stops would remain.
        exceptions.UnknownStop: If the stop is not on the route.
    """
    if len(table) - 1 < MIN_STOPS_IN_ROUTE:
        raise exceptions.MinimumStops(MIN_STOPS_IN_ROUTE)
    index = table.indexOf(name)

    stages = table.stages[:index] + table.stages[index + 1 :]
    return anchorOrigin(stages)


def reorderStop(table: FareTable, index: int, direction: Direction) -> FareTable:
    """
    Swap a stop with its neighbour, moving its fare along with it.

    Moving the first stop up or the last stop down leaves the table unchanged.
    Fares travel with their stops, so the result may decrease along the route;
    follow a reorder with `setFares` to reprice it.

    Raises:
        exceptions.InvalidStopIndex: If no stop exists at `index`.
    """
    if index < 0 or index >= len(table):
        raise exceptions.InvalidStopIndex(index)

    other = index - 1 if direction == Direction.UP else index + 1
    if other < 0 or other >= len(table):
        return FareTable(table.stages)

    stages = list(table.stages)
    stages[index], stages[other] = stages[other], stages[index]
    return anchorOrigin(stages)


def replaceStops(table: FareTable, stops: List[str]) -> FareTable:
    """
    Replace the whole stop list.

    Stops kept from the current table keep their fare. A new stop takes the
    fare of the stop before it in the new order. The result is not checked for
    monotonic fares, since kept stops may now sit in a different order. Callers
    reprice the route with `setFares` afterwards.

    Raises:
        exceptions.MinimumStops: If fewer than MIN_STOPS_IN_ROUTE stops are given.
        exceptions.InvalidStopName: If a name is blank.
        exceptions.DuplicateStop: If a name appears twice.
    """
    if len(stops) < MIN_STOPS_IN_ROUTE:
        raise exceptions.MinimumStops(MIN_STOPS_IN_ROUTE)

    currentFares = {stage.stop: stage.fare for stage in table.stages}
    stages: List[FareStage] = []
    for name in stops:
        name = cleanStopName(name)
        if any(stage.stop == name for stage in stages):
            raise exceptions.DuplicateStop(name)
        if name in currentFares:
            fare = currentFares[name]
        else:
            fare = stages[-1].fare if stages else ZERO
        stages.append(FareStage(name, fare))
    return anchorOrigin(stages)


def setFares(table: FareTable, faresByStop: Dict[str, Decimal]) -> FareTable:
    """
    Replace every fare of the route.

    The first stop is always stored at 0.00 whatever amount is supplied for it.

    Raises:
        exceptions.UnknownStop: If a fare names a stop that is not on the route.
        exceptions.MissingFare: If a stop (other than the origin) has no fare.
        exceptions.InvalidFareEntry: If an amount is negative.
        exceptions.NonMonotonicFares: If a fare is lower than the fare before it.
    """
    for stop in faresByStop:
        table.indexOf(stop)

    stages = []
    for index, stage in enumerate(table.stages):
        if index == 0:
            stages.append(FareStage(stage.stop, ZERO))
            continue
        if stage.stop not in faresByStop:
            raise exceptions.MissingFare(stage.stop)
        fare = toMoney(faresByStop[stage.stop])
        if fare < 0:
            raise exceptions.InvalidFareEntry(f"{stage.stop}{FARE_SEPARATOR}{fare}")
        stages.append(FareStage(stage.stop, fare))

    updated = FareTable(stages)
    checkMonotonic(updated)
    return updated


def validStops(table: FareTable, boardingStop: Optional[str] = None) -> List[str]:
    """
    Stops a passenger may alight at.

    Returns the stops strictly after `boardingStop`, or every stop when no
    boarding stop is given or it is not on the route.
    """
    if not boardingStop or boardingStop not in table.stops:
        return table.stops
    return table.stops[table.indexOf(boardingStop) + 1 :]
