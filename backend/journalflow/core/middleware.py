import logging
import time
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

# === 结构化日志配置 ===
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("journalflow.http")

REQUEST_ID_HEADER = "X-Request-ID"


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """
    请求日志 + 未预期异常兜底

    中文注释:
    - WorkflowError / HTTPException 由 FastAPI 的 exception handler 处理，不会走到这里。
    - 其余异常统一返回 500，响应体与领域错误保持同一结构（success=false + error.code）。
    - 每个请求带上 X-Request-ID（沿用调用方传入的值），日志与响应头一致，便于排查。
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "[%s] Unhandled exception on %s %s: %s",
                request_id,
                request.method,
                request.url.path,
                e,
                exc_info=True,
            )
            response = JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "error": {"code": "internal_error", "message": "Internal server error"},
                },
            )

        elapsed = time.perf_counter() - start_time
        logger.info(
            "[%s] %s %s -> %s (%.4fs)",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
