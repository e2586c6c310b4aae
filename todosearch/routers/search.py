from fastapi import APIRouter, Query

from todosearch.dependencies import FanoutDep
from todosearch.search.documents import SearchResult

router = APIRouter(prefix="/search", tags=["search"])


@router.get("/", response_model=list[SearchResult])
async def todo_search(fanout: FanoutDep, key: str = Query()):
    """Search todo text and comment text with one term"""
    return await fanout.find_by_term(key)
