from __future__ import annotations

from datetime import datetime, timezone


def format_identifier(*, prefix: str, namespace: str, year: int, sequence: int) -> str:
    """
    生成出版物 DOI 字符串

    规则:
    - 格式: {prefix}/{namespace}.{year}.{seq}
    - seq 为当年第 N 篇出版物，左侧补零到 4 位（超过 9999 时自然变长）
    - 例: 10.5555/asjsr.2025.0003
    """
    if sequence < 1:
        raise ValueError("sequence must be >= 1")
    return f"{prefix}/{namespace}.{year}.{sequence:04d}"


def year_window(year: int) -> tuple[str, str]:
    """
    返回 [当年 1 月 1 日, 次年 1 月 1 日) 的 UTC ISO 边界，用于统计当年已发表数量。
    """
    start = datetime(year, 1, 1, tzinfo=timezone.utc)
    end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    return start.isoformat(), end.isoformat()
