import base64, json, logging, requests
from concurrent.futures import Future, ThreadPoolExecutor
from requests import Response
from requests.exceptions import RequestException

from routewise.src.constants import (
    OPENOBSERVE_ENABLED,
    OPENOBSERVE_HOST,
    OPENOBSERVE_ORG,
    OPENOBSERVE_PASSWORD,
    OPENOBSERVE_PORT,
    OPENOBSERVE_PROTOCOL,
    OPENOBSERVE_STREAM,
    OPENOBSERVE_TIMEOUT,
    OPENOBSERVE_USERNAME,
    OPENOBSERVE_WORKERS,
)

logger = logging.getLogger("uvicorn.error")

# Prepare Basic Auth credentials
credentials = base64.b64encode(
    bytes(OPENOBSERVE_USERNAME + ":" + OPENOBSERVE_PASSWORD, "utf-8")
).decode("utf-8")

# Default headers for all requests
headers = {"Content-type": "application/json", "Authorization": "Basic " + credentials}

# Construct OpenObserve endpoint URL
openobserve_host = f"{OPENOBSERVE_PROTOCOL}://{OPENOBSERVE_HOST}:{OPENOBSERVE_PORT}"
openobserve_url = f"{openobserve_host}/api/{OPENOBSERVE_ORG}/{OPENOBSERVE_STREAM}/_json"

# Events are shipped off the request handling thread
executor = ThreadPoolExecutor(
    max_workers=OPENOBSERVE_WORKERS, thread_name_prefix="openobserve"
)


def sendEvent(eventData: dict) -> Response | None:
    try:
        return requests.post(
            openobserve_url,
            headers=headers,
            data=json.dumps([eventData], default=str),
            timeout=OPENOBSERVE_TIMEOUT,
        )
    except RequestException as e:
        logger.warning(f"OpenObserve event not delivered: {e}")
        return None


def logEvent(eventData: dict) -> Future | None:
    """
    Send an event log to the configured OpenObserve instance.

    The event is serialized as JSON and posted with Basic authentication
    from a worker thread, the caller does not wait for the response.
    Shipping is skipped when `OPENOBSERVE_ENABLED` is false. A transport
    failure is written to the server log and never reaches the caller.

    Args:
        eventData (dict): A dictionary representing the event log to be sent.
            Example:
                {
                    "_method": "POST",
                    "_path": "/admin/organizations",
                    "_app_id": 1,
                    "_user_id": 4
                }

    Returns:
        concurrent.futures.Future | None: Resolves to the OpenObserve response,
            None if nothing was sent.
    """
    if not OPENOBSERVE_ENABLED:
        return None
    return executor.submit(sendEvent, eventData)
