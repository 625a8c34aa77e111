from fastapi import APIRouter, Depends, Query

from journalflow.api.v1.common import get_search_service
from journalflow.services.search_service import SearchService

router = APIRouter(tags=["Search"])


@router.get("/search")
async def search_publications(
    q: str = Query("", max_length=500),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: SearchService = Depends(get_search_service),
):
    results = service.search(q, limit=limit, offset=offset)
    return {"success": True, "data": {"results": results, "total": len(results)}}
