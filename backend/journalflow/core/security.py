from __future__ import annotations

import secrets

from fastapi import Header, HTTPException

from journalflow.core.config import get_cron_secret


async def require_cron_secret(authorization: str | None = Header(default=None)) -> None:
    """
    定时任务接口鉴权依赖（Authorization: Bearer <CRON_SECRET>）

    中文注释:
    - 该 Key 不属于用户体系（不是 JWT），仅用于外部调度器触发。
    - 若未配置 CRON_SECRET，则直接拒绝，避免误开放“内部接口”。
    """

    expected = get_cron_secret()
    if not expected:
        raise HTTPException(status_code=401, detail="Cron secret not configured")
    if not authorization or not secrets.compare_digest(authorization, f"Bearer {expected}"):
        raise HTTPException(status_code=401, detail="Unauthorized")
