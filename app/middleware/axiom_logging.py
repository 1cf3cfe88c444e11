"""Axiom API 로깅 미들웨어.

Axiom API logging middleware.
Assigns a request id, feeds the in-process request metrics and, when
Axiom is configured, sends one structured event per request: method,
path, params, masked body, status code, duration and the error message
of failed requests. Health probes and docs are skipped. Logging problems
never fail the request.
"""

import json
import logging
import re
import time
import uuid
from typing import Any

from axiom_py import Client as AxiomClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.config import Settings, settings
from app.utils.log import request_id_var

logger = logging.getLogger(__name__)

# 마스킹 대상 필드 패턴 — Fields to mask in request bodies and params
_SENSITIVE_KEYS = re.compile(
    r"(password|passwd|secret|token|authorization|api_key|apikey|credential)",
    re.IGNORECASE,
)

# 로깅 제외 경로 — Probe and docs paths excluded from logging and metrics
SKIP_PATHS: frozenset[str] = frozenset({
    "/health", "/api/health", "/api/monitoring/health", "/ready", "/live",
    "/docs", "/redoc", "/openapi.json",
})

REQUEST_ID_HEADER: str = "X-Request-ID"


def _mask_dict(data: Any, depth: int = 0) -> Any:
    """민감 필드 자동 마스킹 — Recursively mask sensitive fields in dicts/lists."""
    if depth > 5:
        return "..."
    if isinstance(data, dict):
        return {
            k: "***" if _SENSITIVE_KEYS.search(k) else _mask_dict(v, depth + 1)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [_mask_dict(item, depth + 1) for item in data[:20]]
    if isinstance(data, str) and len(data) > 2000:
        return data[:2000] + "...(truncated)"
    return data


def _error_message(body: bytes) -> str:
    """오류 응답 메시지 — ``error``/``message`` of the envelope, else the raw text."""
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return body.decode("utf-8", errors="replace")[:500]
    if isinstance(payload, dict):
        message = payload.get("error") or payload.get("message") or payload.get("detail")
        if message is not None:
            return str(message)[:500]
    return str(payload)[:500]


class AxiomLoggingMiddleware(BaseHTTPMiddleware):
    """요청 로깅 미들웨어.

    Request logging middleware. Metrics go to the monitoring service of
    the application's service container when one is attached.
    """

    def __init__(self, app: Any, config: Settings = settings) -> None:
        super().__init__(app)
        self._client: AxiomClient | None = None
        self._dataset: str = config.AXIOM_DATASET
        if config.AXIOM_API_TOKEN and config.AXIOM_DATASET:
            self._client = AxiomClient(token=config.AXIOM_API_TOKEN)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        try:
            if request.url.path in SKIP_PATHS:
                response = await call_next(request)
            else:
                response = await self._handle(request, call_next)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    async def _handle(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.perf_counter()
        request_body: Any = None
        if self._client is not None and request.method in ("POST", "PUT", "PATCH"):
            try:
                body_bytes = await request.body()
                if body_bytes:
                    request_body = _mask_dict(json.loads(body_bytes))
            except (json.JSONDecodeError, UnicodeDecodeError):
                request_body = "(non-json body)"

        error: str | None = None
        status_code: int = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            if status_code >= 400:
                # 오류 응답 본문을 읽고 다시 감싸서 반환 — Read the error body, then re-wrap it
                body = b""
                async for chunk in response.body_iterator:
                    body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")
                error = _error_message(body)
                response = Response(
                    content=body,
                    status_code=status_code,
                    headers=dict(response.headers),
                    media_type=response.media_type,
                )
        except Exception as exc:
            error = f"{type(exc).__name__}: {str(exc)[:300]}"
            raise
        finally:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            self._record(request, status_code, duration_ms)
            if status_code >= 500:
                logger.error(
                    "Request failed",
                    extra={"method": request.method, "path": request.url.path, "status_code": status_code},
                )
            self._ship(request, status_code, duration_ms, request_body, error)
        return response

    @staticmethod
    def _record(request: Request, status_code: int, duration_ms: float) -> None:
        services = getattr(request.app.state, "services", None)
        if services is not None:
            services.monitoring.record_request(status_code, duration_ms)

    def _ship(
        self,
        request: Request,
        status_code: int,
        duration_ms: float,
        request_body: Any,
        error: str | None,
    ) -> None:
        if self._client is None:
            return
        event: dict[str, Any] = {
            "request_id": request_id_var.get(),
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": duration_ms,
        }
        if request.query_params:
            event["query_params"] = _mask_dict(dict(request.query_params))
        if request.path_params:
            event["path_params"] = dict(request.path_params)
        if request_body is not None:
            event["request_body"] = request_body
        if error:
            event["error"] = error
        try:
            self._client.ingest_events(self._dataset, [event])
        except Exception as exc:
            logger.warning("Axiom ingest failed", extra={"error": str(exc)})
