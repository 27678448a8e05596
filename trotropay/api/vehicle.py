from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from pydantic import Field
from sqlalchemy import func
from sqlalchemy.orm.session import Session

from trotropay.api.bearer import bearer_account
from trotropay.api.route import RouteSchema
from trotropay.src.constants import (
    DEFAULT_EARNINGS_DAYS,
    MAX_EARNINGS_DAYS,
    REGEX_VEHICLE_ID,
)
from trotropay.src.db import Route, Transaction, Vehicle, sessionMaker
from trotropay.src import commission, exceptions, getters, validators
from trotropay.src.enums import AccountRole
from trotropay.src.functions import fuseExceptionResponses, updateIfChanged
from trotropay.src.loggers import logEvent
from trotropay.src.redis import mutex
from trotropay.src.schemas import CamelModel, Money, TransactionSchema
from trotropay.src.urls import (
    URL_VEHICLE,
    URL_VEHICLE_ALIGHT,
    URL_VEHICLE_BOARD,
    URL_FLEET_EARNINGS,
    URL_VEHICLE_CREW,
    URL_VEHICLE_DAILY_EARNINGS,
    URL_VEHICLE_EARNINGS,
    URL_VEHICLE_ID,
    URL_VEHICLE_ROUTE,
    URL_VEHICLE_TRANSACTIONS,
)

route_vehicle = APIRouter()


## Output Schema
class VehicleSchema(CamelModel):
    id: int
    vehicle_id: str
    route_name: Optional[str]
    owner_id: int
    driver_id: Optional[int]
    mate_id: Optional[int]
    is_active: bool
    passenger_count: int
    max_capacity: Optional[int]
    updated_on: Optional[datetime]
    created_on: datetime


class VehicleRouteSchema(CamelModel):
    message: str
    vehicle: VehicleSchema
    route: RouteSchema


class EarningsSchema(CamelModel):
    vehicle_id: str
    transactions: int
    gross_earnings: Money
    driver_share: Money
    mate_share: Money
    platform_fee: Money
    owner_net: Money


class DailyEarningsSchema(CamelModel):
    day: date
    transactions: int
    gross_earnings: Money


class VehicleDailyEarningsSchema(CamelModel):
    vehicle_id: str
    days: List[DailyEarningsSchema]


class FleetEarningsSchema(CamelModel):
    owner_id: int
    vehicles: List[EarningsSchema]
    transactions: int
    total_earnings: Money
    commissions: Money
    net_profit: Money


## Input Forms
class CreateForm(CamelModel):
    vehicle_id: str = Field(pattern=REGEX_VEHICLE_ID)
    route_name: str | None = Field(default=None, max_length=128)
    driver_id: int | None = None
    mate_id: int | None = None
    max_capacity: int | None = Field(default=None, gt=0)


class RouteForm(CamelModel):
    route_id: int


class UpdateForm(CamelModel):
    driver_id: int | None = None
    mate_id: int | None = None
    is_active: bool | None = None
    max_capacity: int | None = Field(default=None, gt=0)


class CountForm(CamelModel):
    count: int = Field(default=1, ge=1)


## Function
def clampPassengers(vehicle: Vehicle, count: int) -> int:
    """Clamp a passenger count to `[0, max_capacity]`, no upper bound without a capacity."""
    count = max(count, 0)
    if vehicle.max_capacity is not None:
        count = min(count, vehicle.max_capacity)
    return count


def searchTransaction(
    session: Session,
    vehicle: Vehicle,
    today: bool,
    since: Optional[datetime] = None,
):
    query = session.query(Transaction).filter(Transaction.vehicle_id == vehicle.id)
    if today:
        query = query.filter(
            func.date(Transaction.created_on) == func.current_date()
        )
    if since is not None:
        query = query.filter(Transaction.created_on >= since)
    return query.order_by(Transaction.id.desc()).all()


def vehicleEarnings(
    vehicle: Vehicle,
    transactions: List[Transaction],
    rates: commission.CommissionRates,
) -> EarningsSchema:
    gross, shares = commission.splitEarnings(transactions, rates)
    return EarningsSchema(
        vehicle_id=vehicle.vehicle_id,
        transactions=len(transactions),
        gross_earnings=gross,
        driver_share=shares.driver_share,
        mate_share=shares.mate_share,
        platform_fee=shares.platform_fee,
        owner_net=shares.owner_net,
    )


def changePassengers(
    session: Session, vehicleId: str, delta: int, bearer, request_info
) -> VehicleSchema:
    token = validators.accountToken(bearer, session)
    account = validators.activeAccount(getters.account(token, session))
    vehicle = getters.vehicle(vehicleId, session)
    validators.vehicleCrew(account, vehicle)

    with mutex(Vehicle.__tablename__, vehicle.id):
        session.refresh(vehicle)
        vehicle.passenger_count = clampPassengers(
            vehicle, vehicle.passenger_count + delta
        )
        session.commit()
    session.refresh(vehicle)

    vehicleData = VehicleSchema.model_validate(vehicle)
    logEvent(token, request_info, vehicleData.model_dump(mode="json"), account)
    return vehicleData


## API endpoints
@route_vehicle.get(
    URL_VEHICLE_ID,
    tags=["Vehicle"],
    response_model=VehicleSchema,
    responses=fuseExceptionResponses([exceptions.VehicleNotFound()]),
    description="""
    Fetch a vehicle by its code, e.g. GT-1234-20, as scanned by a passenger before paying.
    """,
)
async def fetch_vehicle_by_id(vehicleId: str):
    try:
        session = sessionMaker()
        return VehicleSchema.model_validate(getters.vehicle(vehicleId, session))
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.get(
    URL_VEHICLE,
    tags=["Vehicle"],
    response_model=List[VehicleSchema],
    responses=fuseExceptionResponses([exceptions.InvalidToken()]),
    description="""
    Fetch vehicles by owner, driver or mate.
    Without filters the vehicles the current account owns or crews are returned.
    """,
)
async def fetch_vehicle(
    ownerId: int | None = Query(default=None),
    driverId: int | None = Query(default=None),
    mateId: int | None = Query(default=None),
    bearer=Depends(bearer_account),
):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))

        query = session.query(Vehicle)
        if ownerId is not None:
            query = query.filter(Vehicle.owner_id == ownerId)
        if driverId is not None:
            query = query.filter(Vehicle.driver_id == driverId)
        if mateId is not None:
            query = query.filter(Vehicle.mate_id == mateId)
        if ownerId is None and driverId is None and mateId is None:
            query = query.filter(
                (Vehicle.owner_id == account.id)
                | (Vehicle.driver_id == account.id)
                | (Vehicle.mate_id == account.id)
            )
        vehicles = query.order_by(Vehicle.id.asc()).all()
        return [VehicleSchema.model_validate(vehicle) for vehicle in vehicles]
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.post(
    URL_VEHICLE,
    tags=["Vehicle"],
    response_model=VehicleSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.RouteNotFound(),
            exceptions.InvalidCrewMember(1, AccountRole.DRIVER.name),
        ]
    ),
    description="""
    Register a vehicle owned by the current account.
    Only vehicle owners can register vehicles.
    The driver and mate, when given, must be active accounts with the matching role.
    """,
)
async def create_vehicle(
    fParam: CreateForm,
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))
        validators.accountRole(account, [AccountRole.OWNER])
        validators.crewMember(fParam.driver_id, AccountRole.DRIVER, session)
        validators.crewMember(fParam.mate_id, AccountRole.MATE, session)
        if fParam.route_name is not None:
            route = session.query(Route.id).filter(Route.name == fParam.route_name).first()
            if route is None:
                raise exceptions.RouteNotFound()

        vehicle = Vehicle(
            vehicle_id=fParam.vehicle_id,
            route_name=fParam.route_name,
            owner_id=account.id,
            driver_id=fParam.driver_id,
            mate_id=fParam.mate_id,
            max_capacity=fParam.max_capacity,
        )
        session.add(vehicle)
        session.commit()
        session.refresh(vehicle)

        vehicleData = VehicleSchema.model_validate(vehicle)
        logEvent(token, request_info, vehicleData.model_dump(mode="json"), account)
        return vehicleData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.put(
    URL_VEHICLE_ROUTE,
    tags=["Vehicle"],
    response_model=VehicleRouteSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.VehicleNotFound(),
            exceptions.NotAssignedToVehicle(),
            exceptions.RouteNotFound(),
        ]
    ),
    description="""
    Select the route a vehicle is running.
    Only the driver assigned to the vehicle can change its route.
    """,
)
async def update_vehicle_route(
    vehicleId: str,
    fParam: RouteForm,
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))
        vehicle = getters.vehicle(vehicleId, session)
        validators.vehicleDriver(account, vehicle)
        route = getters.route(fParam.route_id, session)

        vehicle.route_name = route.name
        session.commit()
        session.refresh(vehicle)

        vehicleData = VehicleSchema.model_validate(vehicle)
        logEvent(token, request_info, vehicleData.model_dump(mode="json"), account)
        return VehicleRouteSchema(
            message="Route updated successfully",
            vehicle=vehicleData,
            route=RouteSchema.model_validate(route),
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.put(
    URL_VEHICLE_CREW,
    tags=["Vehicle"],
    response_model=VehicleSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.VehicleNotFound(),
            exceptions.NoPermission(),
            exceptions.InvalidCrewMember(1, AccountRole.MATE.name),
        ]
    ),
    description="""
    Assign the driver and mate of a vehicle, activate or deactivate it, or change its capacity.
    Only the owner of the vehicle can update it. Only provided fields are changed.
    Transactions already recorded keep the crew they were paid to.
    """,
)
async def update_vehicle_crew(
    vehicleId: str,
    fParam: UpdateForm,
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))
        vehicle = getters.vehicle(vehicleId, session)
        validators.vehicleOwner(account, vehicle)
        validators.crewMember(fParam.driver_id, AccountRole.DRIVER, session)
        validators.crewMember(fParam.mate_id, AccountRole.MATE, session)

        updateIfChanged(
            vehicle,
            fParam,
            [
                Vehicle.driver_id.key,
                Vehicle.mate_id.key,
                Vehicle.is_active.key,
                Vehicle.max_capacity.key,
            ],
        )
        vehicle.passenger_count = clampPassengers(vehicle, vehicle.passenger_count)
        haveUpdates = session.is_modified(vehicle)
        if haveUpdates:
            session.commit()
            session.refresh(vehicle)

        vehicleData = VehicleSchema.model_validate(vehicle)
        if haveUpdates:
            logEvent(token, request_info, vehicleData.model_dump(mode="json"), account)
        return vehicleData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.post(
    URL_VEHICLE_BOARD,
    tags=["Vehicle"],
    response_model=VehicleSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.VehicleNotFound(),
            exceptions.NotAssignedToVehicle(),
            exceptions.LockAcquireTimeout(),
        ]
    ),
    description="""
    Count passengers boarding. The count never exceeds the vehicle capacity.
    """,
)
async def board_vehicle(
    vehicleId: str,
    fParam: CountForm,
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        return changePassengers(session, vehicleId, fParam.count, bearer, request_info)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.post(
    URL_VEHICLE_ALIGHT,
    tags=["Vehicle"],
    response_model=VehicleSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.VehicleNotFound(),
            exceptions.NotAssignedToVehicle(),
            exceptions.LockAcquireTimeout(),
        ]
    ),
    description="""
    Count passengers alighting. The count never drops below zero.
    """,
)
async def alight_vehicle(
    vehicleId: str,
    fParam: CountForm,
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        return changePassengers(session, vehicleId, -fParam.count, bearer, request_info)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.get(
    URL_VEHICLE_EARNINGS,
    tags=["Vehicle"],
    response_model=EarningsSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.VehicleNotFound(),
            exceptions.NotAssignedToVehicle(),
        ]
    ),
    description="""
    Gross fare revenue of a vehicle and its split between driver, mate, platform and owner.
    The owner's commission rates are used, the defaults (15/10/5) when none are configured.
    Pass `today=true` for today's transactions only.
    """,
)
async def fetch_vehicle_earnings(
    vehicleId: str,
    today: bool = Query(default=True),
    bearer=Depends(bearer_account),
):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))
        vehicle = getters.vehicle(vehicleId, session)
        validators.vehicleCrew(account, vehicle)

        transactions = searchTransaction(session, vehicle, today)
        rates = commission.ratesFor(session, vehicle.owner_id)
        return vehicleEarnings(vehicle, transactions, rates)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.get(
    URL_VEHICLE_TRANSACTIONS,
    tags=["Transaction"],
    response_model=List[TransactionSchema],
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.VehicleNotFound(),
            exceptions.NotAssignedToVehicle(),
        ]
    ),
    description="""
    Payments received by a vehicle, newest first.
    Pass `today=true` for today's payments only.
    """,
)
async def fetch_vehicle_transactions(
    vehicleId: str,
    today: bool = Query(default=False),
    bearer=Depends(bearer_account),
):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))
        vehicle = getters.vehicle(vehicleId, session)
        validators.vehicleCrew(account, vehicle)

        transactions = searchTransaction(session, vehicle, today)
        return [TransactionSchema.model_validate(t) for t in transactions]
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.get(
    URL_VEHICLE_DAILY_EARNINGS,
    tags=["Vehicle"],
    response_model=VehicleDailyEarningsSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.VehicleNotFound(),
            exceptions.NotAssignedToVehicle(),
        ]
    ),
    description="""
    Gross fare revenue of a vehicle per day over the last `days` days, oldest first.
    Days are UTC calendar days, days without payments are reported at 0.00.
    """,
)
async def fetch_vehicle_daily_earnings(
    vehicleId: str,
    days: int = Query(default=DEFAULT_EARNINGS_DAYS, ge=1, le=MAX_EARNINGS_DAYS),
    bearer=Depends(bearer_account),
):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))
        vehicle = getters.vehicle(vehicleId, session)
        validators.vehicleCrew(account, vehicle)

        today = datetime.now(timezone.utc).date()
        start = commission.firstDay(days, today)
        since = datetime.combine(start, time.min, tzinfo=timezone.utc)
        transactions = searchTransaction(session, vehicle, False, since)
        totals = commission.dailyTotals(transactions, days, today)
        return VehicleDailyEarningsSchema(
            vehicle_id=vehicle.vehicle_id,
            days=[
                DailyEarningsSchema(
                    day=total.day,
                    transactions=total.transactions,
                    gross_earnings=total.gross,
                )
                for total in totals
            ],
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.get(
    URL_FLEET_EARNINGS,
    tags=["Vehicle"],
    response_model=FleetEarningsSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
        ]
    ),
    description="""
    Earnings of every vehicle the current account owns, with fleet totals.
    `commissions` is what the driver, mate and platform shares add up to, `netProfit`
    the owner's net over all vehicles.
    Only vehicle owners can access this. Pass `today=false` for all time.
    """,
)
async def fetch_fleet_earnings(
    today: bool = Query(default=True),
    bearer=Depends(bearer_account),
):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))
        validators.accountRole(account, [AccountRole.OWNER])

        rates = commission.ratesFor(session, account.id)
        vehicles = (
            session.query(Vehicle)
            .filter(Vehicle.owner_id == account.id)
            .order_by(Vehicle.id.asc())
            .all()
        )
        earnings = [
            vehicleEarnings(vehicle, searchTransaction(session, vehicle, today), rates)
            for vehicle in vehicles
        ]
        return FleetEarningsSchema(
            owner_id=account.id,
            vehicles=earnings,
            transactions=sum(v.transactions for v in earnings),
            total_earnings=sum((v.gross_earnings for v in earnings), Decimal("0.00")),
            commissions=sum(
                (v.driver_share + v.mate_share + v.platform_fee for v in earnings),
                Decimal("0.00"),
            ),
            net_profit=sum((v.owner_net for v in earnings), Decimal("0.00")),
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
