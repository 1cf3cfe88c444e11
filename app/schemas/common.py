"""공통 Pydantic 스키마 및 응답 봉투 헬퍼.

Common Pydantic schema definitions and the response envelope helpers.
Every endpoint returns ``{"success": true, "data": ..., "message": ...}``;
errors are rendered by the handlers in ``app.main`` as
``{"success": false, "error": ..., "message": ...}``.
"""

from datetime import datetime
from typing import Annotated, Any, Iterable

from pydantic import AfterValidator, BaseModel, ConfigDict

from app.database import as_utc


class ORMModel(BaseModel):
    """ORM 객체에서 생성 가능한 응답 스키마 베이스.

    Base for response schemas built straight from SQLAlchemy objects.
    """

    model_config = ConfigDict(from_attributes=True)


def dump(schema: type[BaseModel], obj: Any) -> dict[str, Any]:
    """ORM 객체 직렬화 — Validate ``obj`` with ``schema`` and dump JSON-safe data."""
    return schema.model_validate(obj).model_dump(mode="json", by_alias=True)


def dump_many(schema: type[BaseModel], objs: Iterable[Any]) -> list[dict[str, Any]]:
    return [dump(schema, obj) for obj in objs]


def ok(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """성공 응답 봉투 — Wrap a payload in the success envelope."""
    body: dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        body["message"] = message
    return body


# UTC 기준 일시 — Datetimes without an offset are read as UTC
UTCDatetime = Annotated[datetime, AfterValidator(as_utc)]
