from logging import getLogger
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from trotropay.src.db import sessionMaker
from trotropay.src import exceptions, getters, validators
from trotropay.src.notifier import registry
from trotropay.src.urls import URL_NOTIFICATION_SOCKET

route_notification = APIRouter()
logger = getLogger(__name__)


## API endpoints
@route_notification.websocket(URL_NOTIFICATION_SOCKET)
async def notification_socket(websocket: WebSocket, token: str = Query(default="")):
    """
    Push payment notifications to a crew member.

    The socket is authenticated with an access token in the `token` query
    parameter and closed with code 1008 when it is missing or invalid.
    Messages sent by the client are ignored.
    """
    session = sessionMaker()
    try:
        accountToken = validators.accessToken(token, session)
        account = validators.activeAccount(getters.account(accountToken, session))
        accountId = account.id
    except exceptions.APIException as e:
        logger.info(f"Notification socket rejected: {e.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    finally:
        session.close()

    await registry.register(accountId, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        registry.deregister(accountId, websocket)
