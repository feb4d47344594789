"""
Turns engine OperationResults into HTTP responses with the shared
{success, message, data} envelope.
"""

from typing import Any, Callable, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from oven_booking.domain.results import OperationResult
from oven_booking.schemas.common import ActionResponse


def respond(
    result: OperationResult,
    serializer: Optional[Callable[[Any], Any]] = None,
    success_status: int = status.HTTP_200_OK,
) -> JSONResponse:
    if result.success:
        data = result.data
        if serializer is not None and data is not None:
            data = serializer(data)
        body = ActionResponse(success=True, message=result.message, data=data)
        return JSONResponse(status_code=success_status, content=jsonable_encoder(body))

    rejection = result.rejection
    body = ActionResponse(
        success=False,
        message=result.message,
        error_code=result.error_code,
        details=rejection.details if rejection and rejection.details else None,
    )
    status_code = rejection.http_status if rejection else status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body, exclude_none=True))


def many(schema) -> Callable[[list], list]:
    return lambda items: [schema.model_validate(item) for item in items]
