from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from pydantic import Field
from sqlalchemy.orm.session import Session

from trotropay.api.bearer import bearer_account
from trotropay.src.db import Route, sessionMaker
from trotropay.src import exceptions, fare_table, getters, validators
from trotropay.src.enums import AccountRole, Direction
from trotropay.src.fare_calculator import calculateFare
from trotropay.src.fare_table import FareTable
from trotropay.src.functions import enumStr, fuseExceptionResponses
from trotropay.src.loggers import logEvent
from trotropay.src.redis import mutex
from trotropay.src.schemas import CamelModel, Money
from trotropay.src.urls import (
    URL_ROUTE,
    URL_ROUTE_BY_NAME,
    URL_ROUTE_CALCULATE_FARE,
    URL_ROUTE_FARES,
    URL_ROUTE_ID,
    URL_ROUTE_STOP_NAME,
    URL_ROUTE_STOP_REORDER,
    URL_ROUTE_STOPS,
    URL_ROUTE_VALID_STOPS,
)

route_route = APIRouter()


## Output Schema
class RouteSchema(CamelModel):
    id: int
    name: str
    start_point: str
    end_point: str
    stops: List[str]
    fares: List[str]
    updated_on: Optional[datetime]
    created_on: datetime


class FareQuoteSchema(CamelModel):
    amount: Money
    boarding_stop: str
    alighting_stop: str
    distance: int
    route: str


class ValidStopsSchema(CamelModel):
    boarding_stop: Optional[str]
    stops: List[str]


## Input Forms
class CreateForm(CamelModel):
    name: str = Field(min_length=1, max_length=128)
    stops: List[str]
    fares: List[str]


class CalculateFareForm(CamelModel):
    boarding_stop: str = Field(min_length=1)
    alighting_stop: str = Field(min_length=1)


class FaresForm(CamelModel):
    fares: List[str]


class StopsForm(CamelModel):
    stops: List[str]


class AddStopForm(CamelModel):
    name: str = Field(max_length=64)
    position: Optional[int] = None
    fare: Optional[Decimal] = None


class ReorderStopForm(CamelModel):
    index: int
    direction: Direction = Field(description=enumStr(Direction))


## Function
def saveTable(route: Route, table: FareTable) -> None:
    """Write a fare table back to the route, keeping the end points in sync."""
    route.stops, route.fares = table.encode()
    route.start_point = table.stops[0]
    route.end_point = table.stops[-1]


def editRoute(
    session: Session, routeId: int, bearer, request_info, edit
) -> RouteSchema:
    """
    Read, modify and write a whole route while holding its lock.

    Args:
        edit (Callable[[FareTable], FareTable]): The editing operation to apply.
    """
    token = validators.accountToken(bearer, session)
    account = validators.activeAccount(getters.account(token, session))
    route = getters.route(routeId, session)
    validators.routeDriver(account, route, session)

    with mutex(Route.__tablename__, route.id):
        session.refresh(route)
        table = edit(getters.fareTable(route))
        saveTable(route, table)
        session.commit()
    session.refresh(route)

    routeData = RouteSchema.model_validate(route)
    logEvent(token, request_info, routeData.model_dump(mode="json"), account)
    return routeData


## API endpoints
@route_route.get(
    URL_ROUTE,
    tags=["Route"],
    response_model=List[RouteSchema],
    description="""
    Fetch every route with its stops and cumulative fares.
    Fares are "stop:amount" strings aligned with the stops.
    """,
)
async def fetch_route():
    try:
        session = sessionMaker()
        routes = session.query(Route).order_by(Route.id.asc()).all()
        return [RouteSchema.model_validate(route) for route in routes]
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_route.get(
    URL_ROUTE_ID,
    tags=["Route"],
    response_model=RouteSchema,
    responses=fuseExceptionResponses([exceptions.RouteNotFound()]),
)
async def fetch_route_by_id(routeId: int):
    try:
        session = sessionMaker()
        return RouteSchema.model_validate(getters.route(routeId, session))
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_route.get(
    URL_ROUTE_BY_NAME,
    tags=["Route"],
    response_model=RouteSchema,
    responses=fuseExceptionResponses([exceptions.RouteNotFound()]),
)
async def fetch_route_by_name(name: str):
    try:
        session = sessionMaker()
        route = session.query(Route).filter(Route.name == name).first()
        if route is None:
            raise exceptions.RouteNotFound()
        return RouteSchema.model_validate(route)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_route.post(
    URL_ROUTE,
    tags=["Route"],
    response_model=RouteSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.MinimumStops(2),
            exceptions.MissingFare("Lapaz"),
            exceptions.NonMonotonicFares("Lapaz"),
        ]
    ),
    description="""
    Create a new route from its stops and "stop:amount" fares.
    Only vehicle owners can create routes.
    The first stop is the origin, its fare is stored as 0.00.
    Fares must not decrease along the route.
    """,
)
async def create_route(
    fParam: CreateForm,
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))
        validators.accountRole(account, [AccountRole.OWNER])

        table = fare_table.newTable(fParam.stops, FareTable.parseFares(fParam.fares))
        route = Route(name=fParam.name.strip())
        saveTable(route, table)
        session.add(route)
        session.commit()
        session.refresh(route)

        routeData = RouteSchema.model_validate(route)
        logEvent(token, request_info, routeData.model_dump(mode="json"), account)
        return routeData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_route.post(
    URL_ROUTE_CALCULATE_FARE,
    tags=["Fare"],
    response_model=FareQuoteSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.RouteNotFound(),
            exceptions.UnknownStop("Lapaz"),
            exceptions.InvalidDirection(),
        ]
    ),
    description="""
    Price a single-passenger trip between two stops of a route.
    The fare is the cumulative fare at the alighting stop minus the one at the boarding stop.
    The alighting stop must come after the boarding stop.
    """,
)
async def calculate_fare(routeId: int, fParam: CalculateFareForm):
    try:
        session = sessionMaker()
        route = getters.route(routeId, session)

        quote = calculateFare(
            getters.fareTable(route),
            fParam.boarding_stop,
            fParam.alighting_stop,
            route.name,
        )
        return FareQuoteSchema.model_validate(quote)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_route.get(
    URL_ROUTE_VALID_STOPS,
    tags=["Fare"],
    response_model=ValidStopsSchema,
    responses=fuseExceptionResponses([exceptions.RouteNotFound()]),
    description="""
    List the stops a passenger may alight at after boarding at `boardingStop`.
    Without a boarding stop every stop of the route is returned.
    """,
)
async def fetch_valid_stops(
    routeId: int, boardingStop: str | None = Query(default=None)
):
    try:
        session = sessionMaker()
        route = getters.route(routeId, session)

        stops = fare_table.validStops(getters.fareTable(route), boardingStop)
        return ValidStopsSchema(boarding_stop=boardingStop, stops=stops)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_route.put(
    URL_ROUTE_FARES,
    tags=["Route"],
    response_model=RouteSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NotAssignedToRoute(),
            exceptions.RouteNotFound(),
            exceptions.InvalidFareEntry("Lapaz"),
            exceptions.MissingFare("Lapaz"),
            exceptions.NonMonotonicFares("Lapaz"),
            exceptions.LockAcquireTimeout(),
        ]
    ),
    description="""
    Replace every fare of a route with a list of "stop:amount" strings.
    Only a driver assigned to a vehicle on the route may update its fares.
    The first stop is always stored at 0.00 and fares must not decrease along the route.
    """,
)
async def update_fares(
    routeId: int,
    fParam: FaresForm,
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        faresByStop = FareTable.parseFares(fParam.fares)
        return editRoute(
            session,
            routeId,
            bearer,
            request_info,
            lambda table: fare_table.setFares(table, faresByStop),
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_route.put(
    URL_ROUTE_STOPS,
    tags=["Route"],
    response_model=RouteSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NotAssignedToRoute(),
            exceptions.RouteNotFound(),
            exceptions.MinimumStops(2),
            exceptions.DuplicateStop("Lapaz"),
            exceptions.LockAcquireTimeout(),
        ]
    ),
    description="""
    Replace the stop list of a route.
    Stops that stay on the route keep their fare, new stops take the fare of the stop before them.
    A route needs at least two stops.
    """,
)
async def update_stops(
    routeId: int,
    fParam: StopsForm,
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        return editRoute(
            session,
            routeId,
            bearer,
            request_info,
            lambda table: fare_table.replaceStops(table, fParam.stops),
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_route.post(
    URL_ROUTE_STOPS,
    tags=["Route"],
    response_model=RouteSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NotAssignedToRoute(),
            exceptions.RouteNotFound(),
            exceptions.DuplicateStop("Lapaz"),
            exceptions.InvalidStopName(),
            exceptions.NonMonotonicFares("Lapaz"),
            exceptions.LockAcquireTimeout(),
        ]
    ),
    description="""
    Add a stop to a route, at the end or at `position`.
    Without an explicit fare the stop takes the fare of the stop before it.
    An explicit fare must lie between the fares of the neighbouring stops.
    """,
)
async def add_stop(
    routeId: int,
    fParam: AddStopForm,
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        return editRoute(
            session,
            routeId,
            bearer,
            request_info,
            lambda table: fare_table.addStop(
                table, fParam.name, fParam.position, fParam.fare
            ),
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_route.delete(
    URL_ROUTE_STOP_NAME,
    tags=["Route"],
    response_model=RouteSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NotAssignedToRoute(),
            exceptions.RouteNotFound(),
            exceptions.MinimumStops(2),
            exceptions.UnknownStop("Lapaz"),
            exceptions.LockAcquireTimeout(),
        ]
    ),
    description="""
    Remove a stop and its fare from a route.
    A route needs at least two stops.
    """,
)
async def delete_stop(
    routeId: int,
    name: str,
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        return editRoute(
            session,
            routeId,
            bearer,
            request_info,
            lambda table: fare_table.removeStop(table, name),
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_route.post(
    URL_ROUTE_STOP_REORDER,
    tags=["Route"],
    response_model=RouteSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NotAssignedToRoute(),
            exceptions.RouteNotFound(),
            exceptions.InvalidStopIndex(9),
            exceptions.LockAcquireTimeout(),
        ]
    ),
    description="""
    Swap the stop at `index` with its neighbour, fares move with their stops.
    Moving the first stop up or the last stop down changes nothing.
    """,
)
async def reorder_stop(
    routeId: int,
    fParam: ReorderStopForm,
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        return editRoute(
            session,
            routeId,
            bearer,
            request_info,
            lambda table: fare_table.reorderStop(table, fParam.index, fParam.direction),
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
