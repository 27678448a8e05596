from fastapi import Request
from sqlalchemy.orm.session import Session

from trotropay.src import exceptions, schemas
from trotropay.src.db import Account, AccountToken, Route, Vehicle
from trotropay.src.fare_table import FareTable
from trotropay.src.notifier import Notifier, registry


def requestInfo(request: Request) -> schemas.RequestInfo:
    """
    Extract metadata about the incoming request.

    Args:
        request (Request): FastAPI request object.

    Returns:
        schemas.RequestInfo: Pydantic model containing:
            - method (str): HTTP method (GET, POST, etc.).
            - path (str): Path portion of the request URL.
    """
    return schemas.RequestInfo(method=request.method, path=request.url.path)


def notifier() -> Notifier:
    """Notifier the payment flow hands crew notifications to."""
    return registry


def account(token: AccountToken, session: Session) -> Account | None:
    """Fetch the account a token was issued to."""
    return session.query(Account).filter(Account.id == token.account_id).first()


def route(routeId: int, session: Session) -> Route:
    """
    Fetch a route by id.

    Raises:
        exceptions.RouteNotFound: If no route has this id.
    """
    route = session.query(Route).filter(Route.id == routeId).first()
    if route is None:
        raise exceptions.RouteNotFound()
    return route


def vehicle(vehicleId: str, session: Session) -> Vehicle:
    """
    Fetch a vehicle by its plate-style code, e.g. GT-1234-20.

    Raises:
        exceptions.VehicleNotFound: If no vehicle has this code.
    """
    vehicle = session.query(Vehicle).filter(Vehicle.vehicle_id == vehicleId).first()
    if vehicle is None:
        raise exceptions.VehicleNotFound()
    return vehicle


def fareTable(route: Route) -> FareTable:
    return FareTable.decode(route.stops, route.fares)
