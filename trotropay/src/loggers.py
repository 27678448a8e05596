from logging import getLogger
from requests import RequestException

from trotropay.src.db import AccountToken, Account
from trotropay.src import openobserve
from trotropay.src.schemas import RequestInfo

logger = getLogger("uvicorn.error")


def logEvent(
    token: AccountToken,
    requestInfo: RequestInfo,
    data: dict,
    account: Account | None = None,
) -> None:
    """
    Log an audit event to OpenObserve with request and account context.

    Args:
        token (AccountToken | None): Authenticated token, None for anonymous requests.
        requestInfo (RequestInfo): Metadata about the current request.
        data (dict): Additional event-specific details to include in the log.
        account (Account | None): Account acting in the request, adds `_role`.

    Notes:
        - Automatically attaches `_method`, `_path` and `_account_id`.
        - A failed delivery is reported to the server log and never fails the request,
          the event is recorded after the database commit.
    """
    logDetails = {
        "_method": requestInfo.method,
        "_path": requestInfo.path,
    }
    if token is not None:
        logDetails["_account_id"] = token.account_id
    if account is not None:
        logDetails["_role"] = account.role

    logDetails.update(data)
    try:
        openobserve.logEvent(logDetails)
    except RequestException as e:
        logger.warning(f"Audit event not delivered to OpenObserve: {e}")
