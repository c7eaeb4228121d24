from datetime import datetime, timezone
from typing import Any, Literal, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, field_serializer, model_serializer


class CustomModel(BaseModel):
    """
    Common base for every Pydantic schema in the project.
    Centralises the API data policy (ORM loading, datetime format).
    """
    model_config = ConfigDict(
        populate_by_name=True,
        # allow building schemas straight from ORM objects and row mappings
        from_attributes=True,
        # unknown keys are dropped: request bodies are permissive and response
        # schemas are built from wider row mappings
        extra="ignore",
    )

    @field_serializer('*', mode="wrap", check_fields=False)
    def serialize_datetime(self, value, handler, _info):
        """Render datetimes as ISO-8601 in UTC."""
        if isinstance(value, datetime):
            # naive values come from SQLite CURRENT_TIMESTAMP, which is UTC
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            else:
                value = value.astimezone(timezone.utc)
            return value.isoformat()
        return handler(value)


class ApiResponse(BaseModel):
    """The single response envelope shared by all endpoints."""
    status: Literal["success", "error"] = "success"
    message: Optional[str] = None
    data: Any = None
    details: Any = None

    @model_serializer(mode="wrap")
    def _drop_empty(self, handler):
        payload = handler(self)
        # only top-level keys are dropped; nulls inside `data` are meaningful
        return {key: value for key, value in payload.items() if key == "status" or value is not None}


def respond(
    data: Any = None,
    *,
    message: Optional[str] = None,
    status_code: int = 200,
) -> JSONResponse:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    body = ApiResponse(status="success", message=message, data=data)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def error_response(
    message: str,
    *,
    status_code: int,
    details: Any = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    body = ApiResponse(status="error", message=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)
