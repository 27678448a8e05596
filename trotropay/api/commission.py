from datetime import datetime
from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import Field

from trotropay.api.bearer import bearer_account
from trotropay.src.db import Commission, sessionMaker
from trotropay.src import commission, exceptions, getters, validators
from trotropay.src.enums import AccountRole
from trotropay.src.functions import fuseExceptionResponses, updateIfChanged
from trotropay.src.loggers import logEvent
from trotropay.src.schemas import CamelModel, Money
from trotropay.src.urls import URL_COMMISSION

route_commission = APIRouter()


## Output Schema
class CommissionSchema(CamelModel):
    owner_id: int
    driver_commission: Money
    mate_commission: Money
    platform_fee: Money
    updated_on: Optional[datetime] = None


## Input Forms
class UpdateForm(CamelModel):
    driver_commission: Decimal | None = Field(default=None, ge=0, le=100, decimal_places=2)
    mate_commission: Decimal | None = Field(default=None, ge=0, le=100, decimal_places=2)
    platform_fee: Decimal | None = Field(default=None, ge=0, le=100, decimal_places=2)


## API endpoints
@route_commission.get(
    URL_COMMISSION,
    tags=["Commission"],
    response_model=CommissionSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Fetch the commission rates of the current owner, in percent of gross fares.
    Owners without configured rates get the defaults: driver 15, mate 10, platform 5.
    """,
)
async def fetch_commission(bearer=Depends(bearer_account)):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))
        validators.accountRole(account, [AccountRole.OWNER])

        rates = commission.ratesFor(session, account.id)
        return CommissionSchema(
            owner_id=account.id,
            driver_commission=rates.driver,
            mate_commission=rates.mate,
            platform_fee=rates.platform,
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_commission.put(
    URL_COMMISSION,
    tags=["Commission"],
    response_model=CommissionSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Set the commission rates of the current owner. Only provided rates are changed.
    Rates need not sum to 100, the remainder of the gross is the owner's net.
    """,
)
async def update_commission(
    fParam: UpdateForm,
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))
        validators.accountRole(account, [AccountRole.OWNER])

        rates = (
            session.query(Commission).filter(Commission.owner_id == account.id).first()
        )
        if rates is None:
            defaults = commission.DEFAULT_RATES
            rates = Commission(
                owner_id=account.id,
                driver_commission=defaults.driver,
                mate_commission=defaults.mate,
                platform_fee=defaults.platform,
            )
            session.add(rates)

        updateIfChanged(
            rates,
            fParam,
            [
                Commission.driver_commission.key,
                Commission.mate_commission.key,
                Commission.platform_fee.key,
            ],
        )
        session.commit()
        session.refresh(rates)

        commissionData = CommissionSchema.model_validate(rates)
        logEvent(token, request_info, commissionData.model_dump(mode="json"), account)
        return commissionData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
