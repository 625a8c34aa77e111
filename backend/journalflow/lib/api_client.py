from typing import Any, Callable, Optional

from supabase import Client, create_client

from journalflow.core.config import app_config


class _LazySupabaseClient:
    """
    延迟初始化 Supabase Client，避免在 import 时因为缺少环境变量导致整个模块导入失败。

    中文注释:
    - 单元测试会向各服务注入 fake client，因此这里必须保证“可导入”。
    - 真实运行时，如果缺少 URL/KEY，在第一次访问 client 时抛出清晰错误即可。
    """

    def __init__(self, factory: Callable[[], Client], *, name: str):
        self._factory = factory
        self._name = name
        self._client: Optional[Client] = None

    def _get(self) -> Client:
        if self._client is None:
            self._client = self._factory()
        return self._client

    def __getattr__(self, item: str) -> Any:
        return getattr(self._get(), item)


def _create_supabase_admin() -> Client:
    if not app_config.supabase_url:
        raise RuntimeError("SUPABASE_URL is required")
    if not app_config.supabase_key:
        raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY is required")
    return create_client(app_config.supabase_url, app_config.supabase_key)


# === 服务端 Supabase 客户端（service_role，延迟初始化） ===
# 中文注释: 访问控制统一在应用层（roles + ownership）完成，写入走 service_role。
supabase_admin: Client = _LazySupabaseClient(_create_supabase_admin, name="supabase_admin")  # type: ignore[assignment]


def extract_rows(resp: Any) -> list[dict[str, Any]]:
    return getattr(resp, "data", None) or []


def first_row(resp: Any) -> Optional[dict[str, Any]]:
    rows = extract_rows(resp)
    if isinstance(rows, dict):
        return rows
    return rows[0] if rows else None


def is_unique_violation(error: Exception) -> bool:
    """
    判断 PostgREST 错误是否为唯一约束冲突（SQLSTATE 23505）。

    中文注释: supabase/postgrest 的 APIError 在不同版本里字段不完全一致，这里兼顾 code 与字符串兜底。
    """
    code = str(getattr(error, "code", "") or "").lower()
    if code == "23505":
        return True
    text = str(error).lower()
    return "23505" in text or "duplicate key" in text
