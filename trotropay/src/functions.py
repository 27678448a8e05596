import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List

from trotropay.src import schemas
from trotropay.src.constants import CENT
from trotropay.src.exceptions import APIException


def fuseExceptionResponses(exceptions: List[APIException]) -> Dict[int, dict]:
    """
    Build the OpenAPI `responses` of an endpoint from the exceptions it may raise.

    Exceptions sharing a status code become named examples of the same response.

    Example:
        >>> fuseExceptionResponses([exceptions.InvalidToken(), exceptions.NoPermission()])
        {401: {...}, 403: {...}}
    """
    responses: Dict[int, dict] = {}
    for exception in exceptions:
        response = responses.setdefault(
            exception.status_code,
            {
                "model": schemas.ErrorResponse,
                "content": {"application/json": {"examples": {}}},
            },
        )
        examples = response["content"]["application/json"]["examples"]
        examples[type(exception).__name__] = {
            "summary": exception.headers.get("X-Error") if exception.headers else None,
            "value": {"detail": exception.detail, "message": exception.detail},
        }
    return responses


def enumStr(enumClass) -> str:
    """
    Describe the members of an enum for API docs.

    Example:
        >>> enumStr(AccountRole)
        'PASSENGER: 1, MATE: 2, DRIVER: 3, OWNER: 4'
    """
    return ", ".join(f"{x.name}: {x.value}" for x in enumClass)


def isValidTransition(
    transitions: dict[Any, list[Any]], old_state: Any, new_state: Any
) -> bool:
    """True if `transitions[old_state]` lists `new_state`."""
    return new_state in transitions.get(old_state, [])


def updateIfChanged(targetObj, sourceObj, fields: List[str]) -> None:
    """
    Copy the given fields from a form onto a model, skipping unset (None) values.

    Only differing values are assigned so `session.is_modified` stays accurate.

    Example:
        >>> updateIfChanged(vehicle, fParam, [Vehicle.driver_id.key, Vehicle.mate_id.key])
    """
    for field in fields:
        value = getattr(sourceObj, field, None)
        if value is not None and getattr(targetObj, field) != value:
            setattr(targetObj, field, value)


def toMoney(value) -> Decimal:
    """
    Convert a string, int, float or Decimal into a two-decimal `Decimal`.

    Floats are converted through their string form so that 2.5 becomes
    Decimal("2.50") and not the binary approximation.

    Raises:
        decimal.InvalidOperation: If the value is not a number.
    """
    if isinstance(value, float):
        value = repr(value)
    amount = Decimal(value)
    if not amount.is_finite():
        raise InvalidOperation(f"{value} is not a finite amount")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def formatMoney(value: Decimal) -> str:
    """Render an amount as a fixed two-decimal string, e.g. `3.5` -> `"3.50"`."""
    return f"{toMoney(value):.2f}"


def maskPhoneNumber(phoneNumber: str) -> str:
    """
    Hide the middle digits of a phone number before it is shown to a crew.

    Example:
        >>> maskPhoneNumber("0245678901")
        '024****901'
    """
    return re.sub(r"(\d{3})\d{4}(\d{3})", r"\1****\2", phoneNumber)
