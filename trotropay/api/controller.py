from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from trotropay.api import (
    account,
    commission,
    notification,
    payment,
    route,
    vehicle,
)
from trotropay.src.exceptions import APIException


# ------------------------------------------------------
# FastAPI app serving every account role
# ------------------------------------------------------
app_api = FastAPI(title="TrotroPay API")


@app_api.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    """Error bodies carry the message under both `detail` and `message`."""
    message = exc.detail if isinstance(exc.detail, str) else "Invalid request data"
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "message": message},
        headers=exc.headers,
    )


# ------------------------------------------------------
# Routers
# ------------------------------------------------------
app_api.include_router(account.route_account)
app_api.include_router(route.route_route)
app_api.include_router(vehicle.route_vehicle)
app_api.include_router(payment.route_payment)
app_api.include_router(commission.route_commission)
app_api.include_router(notification.route_notification)
