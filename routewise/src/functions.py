import math, random, string, time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.orm import Query

from routewise.src import schemas
from routewise.src.exceptions import APIException, errorEnvelope


def fuseExceptionResponses(exceptions: List[APIException]) -> Dict[int, dict]:
    """
    Generate OpenAPI response documentation by fusing multiple APIException instances.

    Args:
        exceptions (List[APIException]): List of instantiated exceptions.

    Returns:
        Dict[int, dict]: A dictionary of OpenAPI response specs grouped by status code.
    """
    responses = {}

    for exception in exceptions:
        status_code = exception.status_code
        example_key = type(exception).__name__
        example_value = {
            "summary": str(exception.headers),
            "value": errorEnvelope(exception.code, exception.detail),
        }

        if status_code not in responses:
            responses[status_code] = {
                "model": schemas.ErrorResponse,
                "content": {
                    "application/json": {"examples": {example_key: example_value}}
                },
            }
        else:
            responses[status_code]["content"]["application/json"]["examples"][
                example_key
            ] = example_value

    return responses


def enumStr(enumClass) -> str:
    """
    Convert an Enum class into a comma-separated string of its members.

    Each enum member is formatted as "<NAME>: <VALUE>".

    Example:
        >>> enumStr(ACType)
        'AC: 1, NON_AC: 2'
    """
    return ", ".join(f"{x.name}: {x.value}" for x in enumClass)


def isValidTransition(
    transitions: dict[Any, list[Any]], old_state: Any, new_state: Any
) -> bool:
    """
    Check if a state transition is valid.

    Args:
        transitions (dict[Any, list[Any]]): Mapping of valid transitions.
            Example:
                {
                    TenantStatus.ACTIVE: [TenantStatus.SUSPENDED],
                    TenantStatus.SUSPENDED: [TenantStatus.ACTIVE],
                }
        old_state (Any): Current state value.
        new_state (Any): Desired new state value.

    Returns:
        bool: True if transition is valid, False otherwise.
    """
    if not transitions:
        return False
    if old_state not in transitions:
        return False
    return new_state in transitions[old_state]


def updateIfChanged(targetObj, sourceObj, fields: List[str]) -> None:
    """
    Update attributes on a target object from a source object
    only if the values differ and the new value is not None.

    Designed for use with SQLAlchemy models, where `fields` are typically
    provided as `Model.field.key`.

    Example:
        >>> updateIfChanged(
        ...     route,
        ...     fParam,
        ...     [Route.name.key, Route.origin.key, Route.destination.key],
        ... )
    """
    for field in fields:
        new_value = getattr(sourceObj, field, None)
        if new_value is not None:
            old_value = getattr(targetObj, field)
            if old_value != new_value:
                setattr(targetObj, field, new_value)


def isBlank(value: Any) -> bool:
    """True for None and for strings holding only whitespace."""
    return value is None or (isinstance(value, str) and not value.strip())


def missingFields(source, fields: List[str]) -> List[str]:
    """
    List the names in `fields` that are absent or blank on `source`.

    `source` may be a dict or any object exposing the fields as attributes.
    """
    if isinstance(source, dict):
        return [field for field in fields if isBlank(source.get(field))]
    return [field for field in fields if isBlank(getattr(source, field, None))]


def requestId() -> str:
    """Build a request identifier of the form `req_<epoch ms>_<9 base36 chars>`."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


def paginate(query: Query, page: int, limit: int) -> Tuple[list, schemas.Pagination]:
    """
    Apply page based pagination to a SQLAlchemy query.

    Args:
        query (Query): The filtered and ordered query.
        page (int): One based page number.
        limit (int): Page size.

    Returns:
        Tuple[list, schemas.Pagination]: The rows of the page and the
        pagination block of the response envelope.
    """
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    totalPages = math.ceil(total / limit) if limit else 0
    pagination = schemas.Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=totalPages,
        has_next=page < totalPages,
        has_prev=page > 1,
    )
    return rows, pagination


def envelope(
    data: Any,
    message: Optional[str] = None,
    pagination: Optional[schemas.Pagination] = None,
) -> dict:
    """Wrap a payload in the success envelope of the API service."""
    return {
        "success": True,
        "data": data,
        "message": message,
        "meta": {
            "timestamp": datetime.now(timezone.utc),
            "request_id": requestId(),
            "pagination": pagination,
        },
    }


def monthYear(moment: Optional[datetime]) -> str:
    """Format a timestamp as `Month YYYY`, e.g. `January 2025`."""
    if moment is None:
        return ""
    return moment.strftime("%B %Y")
