"""
Validation and permission checks for TrotroPay API.

This module centralizes guard logic such as:
- Token validation
- Role-based permission checks
- Crew assignment checks for vehicles and routes

All functions raise appropriate exceptions from `trotropay.src.exceptions`
when validation fails, ensuring consistent error handling.
"""

from datetime import datetime, timezone
from typing import Any, List
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm.session import Session

from trotropay.src.db import Account, AccountToken, Route, Vehicle
from trotropay.src.enums import AccountRole, AccountStatus
from trotropay.src import exceptions
from trotropay.src.functions import isValidTransition


# ---------------------------------------------------------------------------
# Token validation
# ---------------------------------------------------------------------------
def accountToken(
    bearer: HTTPAuthorizationCredentials | None, session: Session
) -> AccountToken:
    """
    Validate the bearer token of a request.

    Args:
        bearer (HTTPAuthorizationCredentials | None): Credentials parsed from the
            `Authorization` header, None when the header is missing.
        session (Session): Active SQLAlchemy session for DB lookup.

    Returns:
        AccountToken: The valid token object from the database.

    Raises:
        exceptions.InvalidToken: If the header is missing, or the token is unknown or expired.
    """
    if bearer is None:
        raise exceptions.InvalidToken()
    return accessToken(bearer.credentials, session)


def accessToken(access_token: str, session: Session) -> AccountToken:
    """Validate a raw access token string, as sent on the notification socket."""
    current_time = datetime.now(timezone.utc)

    token = (
        session.query(AccountToken)
        .filter(
            AccountToken.access_token == access_token,
            AccountToken.expires_at > current_time,
        )
        .first()
    )
    if token is None:
        raise exceptions.InvalidToken()
    return token


def activeAccount(account: Account | None) -> Account:
    """
    Ensure the account behind a token exists and is active.

    Raises:
        exceptions.InvalidToken: If the account no longer exists.
        exceptions.InactiveAccount: If the account is suspended.
    """
    if account is None:
        raise exceptions.InvalidToken()
    if account.status != AccountStatus.ACTIVE:
        raise exceptions.InactiveAccount()
    return account


# ---------------------------------------------------------------------------
# Permission checks
# ---------------------------------------------------------------------------
def accountRole(account: Account, roles: List[AccountRole]) -> bool:
    """
    Validate that an account holds one of the given roles.

    Raises:
        exceptions.NoPermission: If the account role is not in `roles`.
    """
    if account.role in roles:
        return True
    raise exceptions.NoPermission()


def vehicleCrew(account: Account, vehicle: Vehicle) -> bool:
    """
    Validate that an account is the driver, mate or owner of a vehicle.

    Raises:
        exceptions.NotAssignedToVehicle: Otherwise.
    """
    if account.id in (vehicle.driver_id, vehicle.mate_id, vehicle.owner_id):
        return True
    raise exceptions.NotAssignedToVehicle()


def vehicleDriver(account: Account, vehicle: Vehicle) -> bool:
    """
    Validate that an account is the assigned driver of a vehicle.

    Raises:
        exceptions.NotAssignedToVehicle: Otherwise.
    """
    if account.role == AccountRole.DRIVER and vehicle.driver_id == account.id:
        return True
    raise exceptions.NotAssignedToVehicle()


def vehicleOwner(account: Account, vehicle: Vehicle) -> bool:
    """
    Validate that an account owns a vehicle.

    Raises:
        exceptions.NoPermission: Otherwise.
    """
    if vehicle.owner_id == account.id:
        return True
    raise exceptions.NoPermission()


def routeDriver(account: Account, route: Route, session: Session) -> bool:
    """
    Validate that an account drives a vehicle currently assigned to a route.

    Only such drivers may edit the stops and fares of the route.

    Raises:
        exceptions.NotAssignedToRoute: Otherwise.
    """
    if account.role == AccountRole.DRIVER:
        vehicle = (
            session.query(Vehicle.id)
            .filter(Vehicle.driver_id == account.id, Vehicle.route_name == route.name)
            .first()
        )
        if vehicle is not None:
            return True
    raise exceptions.NotAssignedToRoute()


def crewMember(accountId: int | None, role: AccountRole, session: Session) -> bool:
    """
    Validate that an account can be assigned to a vehicle in the given crew role.

    Raises:
        exceptions.InvalidCrewMember: If the account is missing, inactive or holds another role.
    """
    if accountId is None:
        return True
    account = session.query(Account).filter(Account.id == accountId).first()
    if (
        account is None
        or account.role != role
        or account.status != AccountStatus.ACTIVE
    ):
        raise exceptions.InvalidCrewMember(accountId, role.name)
    return True


# ---------------------------------------------------------------------------
# Other validations
# ---------------------------------------------------------------------------
def stateTransition(
    transitions: dict[Any, list[Any]], old_state: Any, new_state: Any
) -> bool:
    """
    Validate whether a state transition is allowed.

    Raises:
        exceptions.InvalidStateTransition: If the transition is not permitted.
    """
    if not isValidTransition(transitions, old_state, new_state):
        raise exceptions.InvalidStateTransition(old_state, new_state)
    return True
