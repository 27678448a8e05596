"""
Centralized exception handling for TrotroPay API.

This module provides:
- Base APIException class extending FastAPI's HTTPException.
- Custom domain-specific exceptions with appropriate status codes and headers.
- Utility functions for formatting DB errors, logging, and routing exceptions.

Usage:
    - Raise specific exceptions in route handlers or services.
    - Use `handle()` to normalize raw exceptions (DB, Redis, Pydantic) into API-friendly responses.
"""

from decimal import Decimal
from traceback import format_exception
from logging import getLogger
from fastapi import status, HTTPException
from sqlalchemy.exc import IntegrityError
from psycopg2.errorcodes import UNIQUE_VIOLATION, FOREIGN_KEY_VIOLATION
from pydantic import ValidationError
from redis.exceptions import RedisError


# ---------------------------------------------------------------------------
# Utility functions
# ---------------------------------------------------------------------------
def formatIntegrityError(e: IntegrityError) -> str:
    """
    Format a database integrity error into a user-friendly message.
    """
    diag = getattr(e.orig, "diag", None)
    errorMessage: str = diag.message_detail if diag else str(e.orig)
    errorMessage = errorMessage.translate({ord(i): None for i in '\\"\\.\\(\\)'})
    errorMessage = errorMessage.replace("Key ", "For ")
    errorMessage = errorMessage.replace("=", " value ")
    return errorMessage


def integrityErrorCode(e: IntegrityError) -> str | None:
    """Return the SQLSTATE of an integrity error, inferring it for drivers without `diag`."""
    diag = getattr(e.orig, "diag", None)
    if diag is not None:
        return diag.sqlstate
    message = str(e.orig).upper()
    if "UNIQUE" in message:
        return UNIQUE_VIOLATION
    if "FOREIGN KEY" in message:
        return FOREIGN_KEY_VIOLATION
    return None


def logException(e: Exception) -> None:
    """Log an exception with traceback using Uvicorn's error logger."""
    detail = str(format_exception(type(e), e, e.__traceback__))
    logger = getLogger("uvicorn.error")
    logger.error(detail)


# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------
class APIException(HTTPException):
    """
    Base class for all application-specific exceptions.

    Provides default handling of status_code, detail, and headers.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    detail = None
    headers = None

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("status_code", self.status_code)
        kwargs.setdefault("detail", self.detail)
        kwargs.setdefault("headers", self.headers)
        super().__init__(*args, **kwargs)


# ---------------------------------------------------------------------------
# Exception handling entrypoint
# ---------------------------------------------------------------------------
def handle(e: Exception):
    """
    Normalize and re-raise exceptions as API-friendly errors.

    Converts raw exceptions from DB, Pydantic, Redis, etc. into
    corresponding APIException subclasses.
    """
    if isinstance(e, IntegrityError):
        errorCode = integrityErrorCode(e)
        if errorCode == UNIQUE_VIOLATION:
            raise UniqueViolation(formatIntegrityError(e))
        if errorCode == FOREIGN_KEY_VIOLATION:
            raise ForeignKeyViolation(formatIntegrityError(e))
    if isinstance(e, ValidationError):
        raise PydanticError(detail=e.errors())
    if isinstance(e, APIException):
        raise e
    if isinstance(e, RedisError):
        raise RedisDBError(detail=str(e))

    logException(e)
    raise e


# ---------------------------------------------------------------------------
# Generic exception classes
# ---------------------------------------------------------------------------
class PydanticError(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    headers = {"X-Error": "PydanticError"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class UniqueViolation(APIException):
    status_code = status.HTTP_409_CONFLICT
    headers = {"X-Error": "UniqueViolation"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class ForeignKeyViolation(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    headers = {"X-Error": "ForeignKeyViolation"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class LockAcquireTimeout(APIException):
    status_code = status.HTTP_406_NOT_ACCEPTABLE
    headers = {"X-Error": "LockAcquireTimeout"}
    detail = "Lock acquisition timed out"


class RedisDBError(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    headers = {"X-Error": "RedisAPIError"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


# ---------------------------------------------------------------------------
# Authentication & authorization
# ---------------------------------------------------------------------------
class InvalidCredentials(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid phone number or PIN"
    headers = {"X-Error": "InvalidCredentials"}


class InactiveAccount(APIException):
    status_code = status.HTTP_412_PRECONDITION_FAILED
    detail = "The account is not in active status"
    headers = {"X-Error": "InactiveAccount"}


class InvalidToken(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Not authenticated"
    headers = {"X-Error": "InvalidToken"}


class NoPermission(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "This user has no permission to perform this action"
    headers = {"X-Error": "NoPermission"}


class NotAssignedToVehicle(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "You are not assigned to this vehicle"
    headers = {"X-Error": "NotAssignedToVehicle"}


class NotAssignedToRoute(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "You are not assigned to a vehicle on this route"
    headers = {"X-Error": "NotAssignedToRoute"}


class AccountExists(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "User already exists"
    headers = {"X-Error": "AccountExists"}


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------
class AccountNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "User not found"
    headers = {"X-Error": "AccountNotFound"}


class VehicleNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Vehicle not found"
    headers = {"X-Error": "VehicleNotFound"}


class RouteNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Route not found"
    headers = {"X-Error": "RouteNotFound"}


# ---------------------------------------------------------------------------
# Route and fare table
# ---------------------------------------------------------------------------
class UnknownStop(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "UnknownStop"}

    def __init__(self, stop):
        detail = f"Stop '{stop}' is not on this route"
        super().__init__(detail=detail)


class InvalidDirection(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Alighting stop must be after boarding stop"
    headers = {"X-Error": "InvalidDirection"}


class DuplicateStop(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "DuplicateStop"}

    def __init__(self, stop: str):
        detail = f"Stop '{stop}' already exists on this route"
        super().__init__(detail=detail)


class MinimumStops(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "MinimumStops"}

    def __init__(self, minimum: int):
        detail = f"Route must have at least {minimum} stops"
        super().__init__(detail=detail)


class InvalidStopName(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Stop name must not be empty"
    headers = {"X-Error": "InvalidStopName"}


class InvalidFareEntry(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "InvalidFareEntry"}

    def __init__(self, entry: str):
        detail = f"Invalid fare entry '{entry}'"
        super().__init__(detail=detail)


class MissingFare(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "MissingFare"}

    def __init__(self, stop: str):
        detail = f"No fare provided for stop '{stop}'"
        super().__init__(detail=detail)


class NonMonotonicFares(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "NonMonotonicFares"}

    def __init__(self, stop: str):
        detail = f"Fare at stop '{stop}' is lower than the fare at the stop before it"
        super().__init__(detail=detail)


# ---------------------------------------------------------------------------
# Wallet and payment
# ---------------------------------------------------------------------------
class InsufficientBalance(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "InsufficientBalance"}

    def __init__(self, balance: Decimal, amount: Decimal):
        detail = "Insufficient balance"
        super().__init__(detail=detail)
        self.balance = balance
        self.amount = amount


class InvalidAmount(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Amount must be a positive value with at most two decimal places"
    headers = {"X-Error": "InvalidAmount"}


class MissingFareInput(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Either an amount or a boarding stop is required"
    headers = {"X-Error": "MissingFareInput"}


class InactiveVehicle(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Vehicle is not accepting payments"
    headers = {"X-Error": "InactiveVehicle"}


class VehicleHasNoRoute(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Vehicle has no route selected"
    headers = {"X-Error": "VehicleHasNoRoute"}


class PaymentFailed(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Payment failed"
    headers = {"X-Error": "PaymentFailed"}


class InvalidStateTransition(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    headers = {"X-Error": "InvalidStateTransition"}

    def __init__(self, old_state, new_state):
        detail = f"Cannot move from {old_state.name} to {new_state.name}"
        super().__init__(detail=detail)


class InvalidStopIndex(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "InvalidStopIndex"}

    def __init__(self, index: int):
        detail = f"There is no stop at position {index}"
        super().__init__(detail=detail)


class InvalidCrewMember(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "InvalidCrewMember"}

    def __init__(self, accountId: int, role: str):
        detail = f"Account {accountId} can not be assigned as {role}"
        super().__init__(detail=detail)
