from typing import Any

from journalflow.core.config import SentryConfig

_SENSITIVE_KEYS = {
    "password",
    "access_token",
    "refresh_token",
    "token",
    "authorization",
    "cookie",
    "set-cookie",
    "crossref_password",
    "service_role_key",
}

# 审稿意见、稿件全文与编辑意见属于保密内容，同样不上报
_CONFIDENTIAL_TEXT_KEYS = {"content", "extracted_text", "notes"}


def _scrub(value: Any) -> Any:
    """
    隐私清洗：递归去除凭据字段与审稿保密文本。
    """
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k).strip().lower()
            if key in _SENSITIVE_KEYS or key in _CONFIDENTIAL_TEXT_KEYS:
                out[str(k)] = "[Filtered]"
                continue
            out[str(k)] = _scrub(v)
        return out

    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]

    return value


def _before_send(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    # 中文注释: 严格不上传请求体（稿件 PDF / 审稿意见），只保留必要的诊断信息。
    request = event.get("request")
    if isinstance(request, dict):
        headers = request.get("headers")
        if isinstance(headers, dict):
            request["headers"] = {
                k: v for k, v in headers.items() if str(k).strip().lower() not in _SENSITIVE_KEYS
            }
        for key in ("cookies", "data", "body"):
            if key in request:
                request[key] = "[Filtered]"
        event["request"] = request

    for section in ("extra", "contexts"):
        obj = event.get(section)
        if isinstance(obj, dict):
            event[section] = _scrub(obj)

    return event


def init_sentry() -> bool:
    """
    初始化 Sentry。

    零崩溃原则：
    - 若未配置 DSN，则直接返回 False。
    - 任何初始化异常都应在调用方 try/except 处理，不得阻塞启动。
    """
    cfg = SentryConfig.from_env()
    if cfg is None:
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    sentry_sdk.init(
        dsn=cfg.dsn,
        environment=cfg.environment,
        traces_sample_rate=cfg.traces_sample_rate,
        integrations=[FastApiIntegration()],
        send_default_pii=False,
        before_send=_before_send,
    )
    return True
