from typing import Union
from routewise.src.db import AdminSession, User
from routewise.src import openobserve
from routewise.src.schemas import RequestInfo
from routewise.src.enums import AppID


def logEvent(
    actor: Union[AdminSession, User, None],
    requestInfo: RequestInfo,
    data: dict,
) -> None:
    """
    Log an event to OpenObserve with request and user context.

    Args:
        actor (Union[AdminSession, User, None]): Admin console session, API
            service user, or None for anonymous requests.
        requestInfo (RequestInfo): Metadata about the current request.
        data (dict): Additional event-specific details to include in the log.

    Notes:
        - Automatically attaches `_app_id`, `_method`, `_path` and the actor.
        - Actor keys depend on the app:
            - Admin → `_user_id` and `_session_id`
            - API   → `_user_id` and `_tenant_id`
    """
    logDetails = {
        "_method": requestInfo.method,
        "_path": requestInfo.path,
        "_app_id": requestInfo.app_id,
    }

    if requestInfo.app_id == AppID.ADMIN and isinstance(actor, AdminSession):
        logDetails["_user_id"] = actor.user_id
        logDetails["_session_id"] = actor.id
    elif isinstance(actor, User):
        logDetails["_user_id"] = actor.id
        logDetails["_tenant_id"] = actor.tenant_id

    logDetails.update(data)
    openobserve.logEvent(logDetails)
