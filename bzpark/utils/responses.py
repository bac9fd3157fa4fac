# bzpark/utils/responses.py
"""
JSON envelope shared by every router:

  {success, message, data | error, timestamp[, count]}

The HTTP status comes from the result's ErrorKind.
"""

from typing import Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from bzpark.utils.result import ErrorKind, ServiceResult
from bzpark.utils.timeutil import utcnow

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INFRA: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_FAILURE_MESSAGE = {
    ErrorKind.VALIDATION: "Validation failed",
    ErrorKind.NOT_FOUND: "Resource not found",
    ErrorKind.CONFLICT: "Request conflicts with current state",
    ErrorKind.INFRA: "Internal server error",
}


def status_for(result: ServiceResult) -> int:
    if result.success:
        return status.HTTP_200_OK
    if result.kind == ErrorKind.INFRA and result.retryable:
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return _STATUS_BY_KIND.get(result.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


def timestamp() -> str:
    return utcnow().isoformat() + "Z"


def serialize(data, schema: Optional[type[BaseModel]] = None):
    """ORM rows go through their *Out schema; everything else through jsonable_encoder."""
    if schema is not None and data is not None and not isinstance(data, dict):
        if isinstance(data, list):
            return [schema.model_validate(row).model_dump(mode="json") for row in data]
        return schema.model_validate(data).model_dump(mode="json")
    return jsonable_encoder(data)


def envelope(result: ServiceResult, schema: Optional[type[BaseModel]] = None,
             created: bool = False, failure_message: Optional[str] = None) -> JSONResponse:
    code = status_for(result)
    if result.success:
        body = {
            "success": True,
            "message": result.message,
            "data": serialize(result.data, schema),
            "timestamp": timestamp(),
        }
        if result.count is not None:
            body["count"] = result.count
        return JSONResponse(status_code=status.HTTP_201_CREATED if created else code, content=body)

    if code == status.HTTP_503_SERVICE_UNAVAILABLE:
        message = "Service temporarily unavailable"
    else:
        message = failure_message or _FAILURE_MESSAGE.get(result.kind, "Request failed")
    body = {
        "success": False,
        "message": message,
        "error": result.error,
        "timestamp": timestamp(),
    }
    if result.data is not None:
        body["data"] = jsonable_encoder(result.data)
    return JSONResponse(status_code=code, content=body)


def error_envelope(code: int, message: str, error: str = None) -> JSONResponse:
    body = {"success": False, "message": message, "timestamp": timestamp()}
    if error is not None:
        body["error"] = error
    return JSONResponse(status_code=code, content=body)
