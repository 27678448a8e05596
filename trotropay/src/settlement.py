"""
Payment settlement.

Turns a passenger's payment request into a debited wallet, an immutable
transaction record and a notification to the vehicle crew.

Each attempt walks the states of `SettlementState`:

    VALIDATING -> PRICING -> DEBITING -> RECORDING -> NOTIFYING -> COMPLETED

and may fall to FAILED from any of them. The debit and the transaction
insert share one database transaction and one wallet lock: either both are
committed or neither is. Notification happens after the commit and can not
undo a payment.
"""

from dataclasses import dataclass
from decimal import Decimal
from logging import getLogger
from typing import Optional, Tuple
from sqlalchemy.orm.session import Session

from trotropay.src import exceptions, ledger, validators
from trotropay.src.commission import CommissionSplit, ratesFor, split
from trotropay.src.db import Account, Route, Transaction, Vehicle
from trotropay.src.enums import SettlementState, TransactionStatus
from trotropay.src.fare_calculator import calculateFare, groupFare
from trotropay.src.fare_table import FareTable
from trotropay.src.functions import maskPhoneNumber, toMoney
from trotropay.src.notifier import Notifier
from trotropay.src.schemas import (
    CrewTransaction,
    PaidTransaction,
    PaymentNotification,
    PaymentRequest,
)

logger = getLogger(__name__)

SETTLEMENT_TRANSITIONS = {
    SettlementState.VALIDATING: [SettlementState.PRICING, SettlementState.FAILED],
    SettlementState.PRICING: [SettlementState.DEBITING, SettlementState.FAILED],
    SettlementState.DEBITING: [SettlementState.RECORDING, SettlementState.FAILED],
    SettlementState.RECORDING: [SettlementState.NOTIFYING, SettlementState.FAILED],
    SettlementState.NOTIFYING: [SettlementState.COMPLETED, SettlementState.FAILED],
    SettlementState.COMPLETED: [],
    SettlementState.FAILED: [],
}


@dataclass
class SettlementResult:
    transaction: Transaction
    new_balance: Decimal
    passenger_count: int
    individual_fare: Decimal
    shares: CommissionSplit

    @property
    def is_group_payment(self) -> bool:
        return self.passenger_count > 1

    def paidTransaction(self) -> PaidTransaction:
        return PaidTransaction.model_validate(
            {
                **transactionFields(self.transaction),
                "individual_fare": self.individual_fare,
                "is_group_payment": self.is_group_payment,
            }
        )


def transactionFields(transaction: Transaction) -> dict:
    return {
        column.key: getattr(transaction, column.key)
        for column in Transaction.__table__.columns
    }


class PaymentSettlement:
    """
    Settles one payment at a time against an open session.

    Args:
        session (Session): Session the payment is written through. It is
            committed on success and rolled back on failure.
        notifier (Optional[Notifier]): Receives the crew notification,
            nothing is sent when None.
    """

    def __init__(self, session: Session, notifier: Optional[Notifier] = None):
        self.session = session
        self.notifier = notifier
        self.state = SettlementState.VALIDATING

    def moveTo(self, newState: SettlementState) -> None:
        validators.stateTransition(SETTLEMENT_TRANSITIONS, self.state, newState)
        logger.debug(f"Settlement {self.state.name} -> {newState.name}")
        self.state = newState

    def process(self, passenger: Account, request: PaymentRequest) -> SettlementResult:
        """
        Settle a payment made by `passenger`.

        Returns:
            SettlementResult: The recorded transaction and the passenger's new balance.

        Raises:
            exceptions.VehicleNotFound: If no vehicle has `request.vehicle_id`.
            exceptions.InactiveVehicle: If the vehicle does not accept payments.
            exceptions.VehicleHasNoRoute: If stops are priced on a vehicle without a route.
            exceptions.RouteNotFound: If the vehicle's route no longer exists.
            exceptions.MissingFareInput: If neither an amount nor a boarding stop is given.
            exceptions.UnknownStop, exceptions.InvalidDirection: For bad stop names.
            exceptions.InvalidAmount: If the amount to pay is not positive.
            exceptions.InsufficientBalance: If the wallet can not cover the total.
            exceptions.PaymentFailed: For any unexpected error, after rolling back.
        """
        self.state = SettlementState.VALIDATING
        try:
            vehicle, route = self.validate(request)

            self.moveTo(SettlementState.PRICING)
            total, individualFare = self.price(request, vehicle, route)

            self.moveTo(SettlementState.DEBITING)
            with ledger.walletLock(passenger.id):
                newBalance = ledger.debit(self.session, passenger.id, total)

                self.moveTo(SettlementState.RECORDING)
                transaction = self.record(passenger, vehicle, request, total)
                shares = split(total, ratesFor(self.session, vehicle.owner_id))
                self.session.refresh(transaction)
                self.session.commit()
        except Exception as e:
            self.session.rollback()
            self.fail(e)

        result = SettlementResult(
            transaction=transaction,
            new_balance=newBalance,
            passenger_count=request.passenger_count,
            individual_fare=individualFare,
            shares=shares,
        )
        self.moveTo(SettlementState.NOTIFYING)
        self.notify(passenger, vehicle, result)
        self.moveTo(SettlementState.COMPLETED)
        logger.info(
            f"Payment {transaction.id} of {total} settled on vehicle {vehicle.vehicle_id}"
        )
        return result

    def fail(self, e: Exception):
        self.moveTo(SettlementState.FAILED)
        if isinstance(e, exceptions.APIException):
            raise e
        exceptions.logException(e)
        raise exceptions.PaymentFailed()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def validate(self, request: PaymentRequest) -> Tuple[Vehicle, Route | None]:
        vehicle = (
            self.session.query(Vehicle)
            .filter(Vehicle.vehicle_id == request.vehicle_id)
            .first()
        )
        if vehicle is None:
            raise exceptions.VehicleNotFound()
        if not vehicle.is_active:
            raise exceptions.InactiveVehicle()

        route = None
        if vehicle.route_name is not None:
            route = (
                self.session.query(Route)
                .filter(Route.name == vehicle.route_name)
                .first()
            )
        return vehicle, route

    def price(
        self, request: PaymentRequest, vehicle: Vehicle, route: Route | None
    ) -> Tuple[Decimal, Decimal]:
        """
        Work out the total to debit and the fare of each passenger.

        An explicit amount is the total for the whole group. Without one the
        boarding stop and destination are priced on the vehicle's route and
        multiplied by the passenger count.
        """
        if request.amount is not None:
            total = toMoney(request.amount)
            if total <= 0 or total != request.amount:
                raise exceptions.InvalidAmount()
            return total, toMoney(total / request.passenger_count)

        if request.boarding_stop is None:
            raise exceptions.MissingFareInput()
        if vehicle.route_name is None:
            raise exceptions.VehicleHasNoRoute()
        if route is None:
            raise exceptions.RouteNotFound()

        table = FareTable.decode(route.stops, route.fares)
        quote = calculateFare(
            table, request.boarding_stop, request.destination, route.name
        )
        return groupFare(quote, request.passenger_count), quote.amount

    def record(
        self,
        passenger: Account,
        vehicle: Vehicle,
        request: PaymentRequest,
        total: Decimal,
    ) -> Transaction:
        """Insert the transaction with the crew of the vehicle as it is right now."""
        transaction = Transaction(
            passenger_id=passenger.id,
            vehicle_id=vehicle.id,
            mate_id=vehicle.mate_id,
            driver_id=vehicle.driver_id,
            owner_id=vehicle.owner_id,
            amount=total,
            passenger_count=request.passenger_count,
            boarding_stop=request.boarding_stop,
            destination=request.destination,
            route=vehicle.route_name or "",
            status=TransactionStatus.COMPLETED.value,
            payment_method=request.payment_method,
        )
        self.session.add(transaction)
        self.session.flush()
        return transaction

    def notify(self, passenger: Account, vehicle: Vehicle, result: SettlementResult):
        if self.notifier is None:
            return
        try:
            crewTransaction = CrewTransaction.model_validate(
                {
                    **result.paidTransaction().model_dump(),
                    "passenger_phone": maskPhoneNumber(passenger.phone_number),
                }
            )
            message = PaymentNotification(transaction=crewTransaction)
            self.notifier.publish(
                [vehicle.driver_id, vehicle.mate_id, vehicle.owner_id],
                message.model_dump(mode="json", by_alias=True),
            )
        except Exception as e:
            logger.warning(f"Crew of vehicle {vehicle.vehicle_id} not notified: {e}")
