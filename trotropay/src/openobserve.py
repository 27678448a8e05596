import json
import requests
from requests import Response

from trotropay.src.constants import (
    OPENOBSERVE_HOST,
    OPENOBSERVE_ORG,
    OPENOBSERVE_PASSWORD,
    OPENOBSERVE_PORT,
    OPENOBSERVE_PROTOCOL,
    OPENOBSERVE_STREAM,
    OPENOBSERVE_TIMEOUT,
    OPENOBSERVE_USERNAME,
)

# Audit events are JSON-ingested into a single stream
streamUrl = (
    f"{OPENOBSERVE_PROTOCOL}://{OPENOBSERVE_HOST}:{OPENOBSERVE_PORT}"
    f"/api/{OPENOBSERVE_ORG}/{OPENOBSERVE_STREAM}/_json"
)

# Keep-alive HTTP session shared by all events
httpSession = requests.Session()
httpSession.auth = (OPENOBSERVE_USERNAME, OPENOBSERVE_PASSWORD)
httpSession.headers.update({"Content-type": "application/json"})


def logEvent(eventData: dict) -> Response:
    """
    Ship one audit event to OpenObserve.

    Decimals and datetimes are sent as strings. The call is bounded by
    OPENOBSERVE_TIMEOUT and raises `requests.RequestException` on failure,
    callers decide whether that matters.

    Example:
        >>> logEvent({"_method": "POST", "_path": "/api/payments/process", "_account_id": 1})
    """
    return httpSession.post(
        streamUrl,
        data=json.dumps(eventData, default=str),
        timeout=OPENOBSERVE_TIMEOUT,
    )
