from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, Response, status
from fastapi.encoders import jsonable_encoder
from pydantic import Field

from trotropay.api.bearer import bearer_account
from trotropay.src.constants import (
    MAX_ACCOUNT_TOKENS,
    MAX_TOKEN_VALIDITY,
    PASSENGER_STARTING_BALANCE,
    REGEX_PHONE_NUMBER,
    REGEX_PIN,
)
from trotropay.src.db import Account, AccountToken, sessionMaker
from trotropay.src import argon2, exceptions, getters, ledger, validators
from trotropay.src.enums import AccountRole, AccountStatus, PlatformType
from trotropay.src.functions import enumStr, fuseExceptionResponses
from trotropay.src.loggers import logEvent
from trotropay.src.schemas import CamelModel, Money
from trotropay.src.urls import (
    URL_ACCOUNT,
    URL_ACCOUNT_TOKEN,
    URL_ACCOUNT_TOP_UP,
    URL_ACCOUNT_WALLET,
)

route_account = APIRouter()


## Output Schema
class AccountSchema(CamelModel):
    id: int
    phone_number: str
    role: int
    full_name: str
    status: int
    updated_on: Optional[datetime]
    created_on: datetime


class AccountWalletSchema(AccountSchema):
    balance: Money


class TokenSchema(CamelModel):
    id: int
    account_id: int
    expires_in: int
    platform_type: int
    client_details: Optional[str]
    created_on: datetime
    access_token: str
    token_type: Optional[str] = "bearer"


class WalletSchema(CamelModel):
    balance: Money


class TopUpSchema(CamelModel):
    message: str
    new_balance: Money


## Input Forms
class RegisterForm(CamelModel):
    full_name: str = Field(min_length=1, max_length=64)
    phone_number: str = Field(pattern=REGEX_PHONE_NUMBER)
    pin: str = Field(pattern=REGEX_PIN)
    role: AccountRole = Field(
        default=AccountRole.PASSENGER, description=enumStr(AccountRole)
    )


class LoginForm(CamelModel):
    phone_number: str = Field(max_length=16)
    pin: str = Field(max_length=6)
    platform_type: PlatformType = Field(
        default=PlatformType.OTHER, description=enumStr(PlatformType)
    )
    client_details: str | None = Field(default=None, max_length=1024)


class TopUpForm(CamelModel):
    amount: Decimal


## Function
def accountWithBalance(account: Account, balance: Decimal) -> AccountWalletSchema:
    accountData = AccountSchema.model_validate(account).model_dump()
    return AccountWalletSchema(**accountData, balance=balance)


def auditData(account: Account) -> dict:
    accountData = jsonable_encoder(account)
    accountData.pop("pin")
    return accountData


## API endpoints
@route_account.post(
    URL_ACCOUNT,
    tags=["Account"],
    response_model=AccountWalletSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses([exceptions.AccountExists()]),
    description="""
    Register a new account with a phone number and PIN.
    The PIN is stored as an Argon2 hash.
    Every account gets a wallet, passengers start with PASSENGER_STARTING_BALANCE.
    """,
)
async def create_account(
    fParam: RegisterForm,
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        existing = (
            session.query(Account.id)
            .filter(Account.phone_number == fParam.phone_number)
            .first()
        )
        if existing is not None:
            raise exceptions.AccountExists()

        account = Account(
            phone_number=fParam.phone_number,
            pin=argon2.makePin(fParam.pin),
            role=fParam.role,
            full_name=fParam.full_name,
            status=AccountStatus.ACTIVE,
        )
        session.add(account)
        session.flush()
        openingBalance = (
            PASSENGER_STARTING_BALANCE
            if fParam.role == AccountRole.PASSENGER
            else Decimal("0.00")
        )
        wallet = ledger.openWallet(session, account.id, openingBalance)
        session.commit()
        session.refresh(account)

        logEvent(None, request_info, auditData(account), account)
        return accountWithBalance(account, wallet.balance)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_account.get(
    URL_ACCOUNT,
    tags=["Account"],
    response_model=AccountWalletSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.InactiveAccount()]
    ),
    description="""
    Fetch the account of the current token together with its wallet balance.
    """,
)
async def fetch_account(bearer=Depends(bearer_account)):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))

        balance = ledger.getBalance(session, account.id)
        return accountWithBalance(account, balance)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_account.post(
    URL_ACCOUNT_TOKEN,
    tags=["Token"],
    response_model=TokenSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [exceptions.InactiveAccount(), exceptions.InvalidCredentials()]
    ),
    description="""
    Issues a new access token after validating the phone number and PIN.
    Limits active tokens using MAX_ACCOUNT_TOKENS (token rotation).
    Sets expiration with expires_in=MAX_TOKEN_VALIDITY (in seconds).
    Logs the authentication event for audit tracking.
    """,
)
async def create_token(
    fParam: LoginForm,
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        account = (
            session.query(Account)
            .filter(Account.phone_number == fParam.phone_number)
            .first()
        )
        if account is None:
            raise exceptions.InvalidCredentials()
        if not argon2.checkPin(fParam.pin, account.pin):
            raise exceptions.InvalidCredentials()
        if account.status != AccountStatus.ACTIVE:
            raise exceptions.InactiveAccount()

        # Remove excess tokens from DB
        tokens = (
            session.query(AccountToken)
            .filter(AccountToken.account_id == account.id)
            .order_by(AccountToken.created_on.desc(), AccountToken.id.desc())
            .all()
        )
        for token in tokens[MAX_ACCOUNT_TOKENS - 1 :]:
            session.delete(token)
        session.flush()

        # Create a new token
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=MAX_TOKEN_VALIDITY)
        token = AccountToken(
            account_id=account.id,
            expires_in=MAX_TOKEN_VALIDITY,
            expires_at=expires_at,
            platform_type=fParam.platform_type,
            client_details=fParam.client_details,
        )
        session.add(token)
        session.commit()
        session.refresh(token)

        tokenData = TokenSchema.model_validate(token)
        tokenLogData = tokenData.model_dump(mode="json")
        tokenLogData.pop("access_token")
        logEvent(token, request_info, tokenLogData, account)
        return tokenData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_account.delete(
    URL_ACCOUNT_TOKEN,
    tags=["Token"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses([exceptions.InvalidToken()]),
    description="""
    Revoke the token used in this request (logout).
    """,
)
async def delete_token(
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)

        session.delete(token)
        session.commit()
        logEvent(token, request_info, {"id": token.id})
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_account.get(
    URL_ACCOUNT_WALLET,
    tags=["Wallet"],
    response_model=WalletSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.InactiveAccount()]
    ),
    description="""
    Fetch the wallet balance of the current account.
    """,
)
async def fetch_wallet(bearer=Depends(bearer_account)):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))

        return WalletSchema(balance=ledger.getBalance(session, account.id))
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_account.post(
    URL_ACCOUNT_TOP_UP,
    tags=["Wallet"],
    response_model=TopUpSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.InactiveAccount(),
            exceptions.InvalidAmount(),
            exceptions.LockAcquireTimeout(),
        ]
    ),
    description="""
    Add money to the wallet of the current account.
    The amount must be positive with at most two decimal places.
    Holds the wallet lock while the balance is updated.
    """,
)
async def top_up_wallet(
    fParam: TopUpForm,
    bearer=Depends(bearer_account),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.accountToken(bearer, session)
        account = validators.activeAccount(getters.account(token, session))

        with ledger.walletLock(account.id):
            newBalance = ledger.credit(session, account.id, fParam.amount)
            session.commit()

        logEvent(
            token,
            request_info,
            {"amount": str(fParam.amount), "new_balance": str(newBalance)},
            account,
        )
        return TopUpSchema(message="Top-up successful", new_balance=newBalance)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
