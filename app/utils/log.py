"""로깅 설정 모듈 — JSON 구조화 로그.

Logging setup module. Configures the root logger once with a
python-json-logger formatter so every record is a single JSON line
carrying timestamp, level, logger name and the current request id.
"""

import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger.json import JsonFormatter

# 요청 ID 컨텍스트 — Request id of the request being handled, set by the middleware
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# 보안 이벤트 로거 — Logger for authorization denials
security_logger: logging.Logger = logging.getLogger("app.security")

_configured: bool = False


class RequestJsonFormatter(JsonFormatter):
    """요청 ID와 UTC 타임스탬프를 추가하는 JSON 포매터."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        req_id = request_id_var.get()
        if req_id:
            log_record["request_id"] = req_id
        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname


def setup_logging(level: str = "INFO") -> None:
    """루트 로거 설정 — Configure the root logger (idempotent)."""
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(RequestJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level.upper())

    # 라이브러리 로그 소음 줄이기 — Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True
