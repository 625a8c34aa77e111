import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# 在应用启动前加载环境变量
load_dotenv()

logger = logging.getLogger("journalflow")

_SENTRY_ENABLED = False
try:
    from journalflow.core.sentry_init import init_sentry

    _SENTRY_ENABLED = init_sentry()
    if _SENTRY_ENABLED:
        logger.info("[sentry] enabled")
except Exception as e:
    # 中文注释: 零崩溃原则，Sentry 任何异常不得阻塞启动
    logger.warning("[sentry] init failed (ignored): %s", e)

from journalflow.api.v1 import (
    decisions,
    download,
    internal,
    notifications,
    profiles,
    publications,
    reviews,
    search,
    settings,
    submissions,
)
from journalflow.api.v1.common import error_response
from journalflow.core.config import parse_frontend_origins
from journalflow.core.errors import WorkflowError
from journalflow.core.middleware import ExceptionHandlerMiddleware

app = FastAPI(
    title="JournalFlow API",
    description="Manuscript submission and peer-review workflow backend",
    version="1.0.0",
)

# === 中间件配置 ===
# 1. 跨域资源共享 (CORS) - 允许前端访问
app.add_middleware(
    CORSMiddleware,
    allow_origins=parse_frontend_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 2. 统一异常处理（未预期异常 -> 500，并记录请求耗时）
app.add_middleware(ExceptionHandlerMiddleware)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(_request: Request, exc: WorkflowError):
    # 路由层直接抛出的领域错误与 ActionResult 失败使用同一响应结构
    return error_response(exc)


# === 路由注册 ===
app.include_router(submissions.router, prefix="/api/v1")
app.include_router(reviews.router, prefix="/api/v1")
app.include_router(decisions.router, prefix="/api/v1")
app.include_router(publications.router, prefix="/api/v1")
app.include_router(notifications.router, prefix="/api/v1")
app.include_router(settings.router, prefix="/api/v1")
app.include_router(profiles.router, prefix="/api/v1")
app.include_router(search.router, prefix="/api/v1")
app.include_router(download.router, prefix="/api/v1")
app.include_router(internal.router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": "Welcome to JournalFlow API", "docs": "/docs"}
