from typing import List
from fastapi import APIRouter, Depends, Query

from trotropay.api.bearer import bearer_account
from trotropay.src.db import Transaction, sessionMaker
from trotropay.src import exceptions, getters, validators
from trotropay.src.enums import AccountRole
from trotropay.src.functions import fuseExceptionResponses
from trotropay.src.loggers import logEvent
from trotropay.src.schemas import (
    CamelModel,
    Money,
    PaidTransaction,
    PaymentRequest,
    TransactionSchema,
)
from trotropay.src.settlement import PaymentSettlement
from trotropay.src.urls import URL_PAYMENT_PROCESS, URL_TRANSACTION

route_payment = APIRouter()


## Output Schema
class PaymentSchema(CamelModel):
    message: str
    transaction: PaidTransaction
    new_balance: Money


## API endpoints
@route_payment.post(
    URL_PAYMENT_PROCESS,
    tags=["Payment"],
    response_model=PaymentSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.VehicleNotFound(),
            exceptions.InactiveVehicle(),
            exceptions.MissingFareInput(),
            exceptions.InvalidDirection(),
            exceptions.InsufficientBalance(0, 0),
            exceptions.LockAcquireTimeout(),
            exceptions.PaymentFailed(),
        ]
    ),
    description="""
    Pay the fare of a trip on a vehicle from the passenger's wallet.
    With `amount` the amount is charged as the total for `passengerCount` passengers.
    Without it the fare from `boardingStop` to `destination` on the vehicle's route is charged per passenger.
    The wallet debit and the transaction record are committed together.
    The vehicle's driver, mate and owner are notified over the notification socket.
    Fails with InsufficientBalance (400) when the wallet can not cover the total.
    """,
)
async def process_payment(
    fParam: PaymentRequest,
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
    notifier=Depends(getters.notifier),
):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))
        validators.accountRole(account, [AccountRole.PASSENGER])

        result = PaymentSettlement(session, notifier).process(account, fParam)

        paymentData = PaymentSchema(
            message="Payment successful",
            transaction=result.paidTransaction(),
            new_balance=result.new_balance,
        )
        logData = paymentData.model_dump(mode="json")
        logData["shares"] = {
            "driver_share": str(result.shares.driver_share),
            "mate_share": str(result.shares.mate_share),
            "platform_fee": str(result.shares.platform_fee),
            "owner_net": str(result.shares.owner_net),
        }
        logEvent(token, request_info, logData, account)
        return paymentData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_payment.get(
    URL_TRANSACTION,
    tags=["Transaction"],
    response_model=List[TransactionSchema],
    responses=fuseExceptionResponses([exceptions.InvalidToken()]),
    description="""
    Payments made by the current account, newest first.
    """,
)
async def fetch_transaction(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, gt=0, le=100),
    bearer=Depends(bearer_account),
):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))

        transactions = (
            session.query(Transaction)
            .filter(Transaction.passenger_id == account.id)
            .order_by(Transaction.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [TransactionSchema.model_validate(t) for t in transactions]
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
