from __future__ import annotations

import logging
from typing import Any, Dict, List

from journalflow.lib.api_client import extract_rows, supabase_admin

logger = logging.getLogger("journalflow.search")


class SearchService:
    """
    全文检索（数据库 RPC: search_publications，基于 websearch_to_tsquery）。

    中文注释:
    - 空查询直接返回空结果，不打数据库。
    - RPC 出错时降级为空结果并记录日志（检索不是核心流程）。
    - 撤稿论文不出现在检索结果中（即使 RPC 返回了也在这里过滤）。
    """

    def __init__(self, *, client: Any = None) -> None:
        self.client = client or supabase_admin

    def search(self, query: str, *, limit: int = 20, offset: int = 0) -> List[Dict[str, Any]]:
        q = str(query or "").strip()
        if not q:
            return []
        try:
            res = self.client.rpc(
                "search_publications",
                {"search_query": q, "result_limit": int(limit), "result_offset": int(offset)},
            ).execute()
        except Exception as e:
            logger.warning("[Search] rpc failed (ignored): %s", e)
            return []
        return [row for row in extract_rows(res) if not row.get("retracted")]
