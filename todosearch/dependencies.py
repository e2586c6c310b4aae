from fastapi import Depends, Request
from sqlmodel.ext.asyncio.session import AsyncSession
from typing_extensions import Annotated

from todosearch.cache.layer import CacheLayer
from todosearch.database import get_db
from todosearch.search.fanout import QueryFanout
from todosearch.search.sync import SearchSynchronizer


def get_cache(request: Request) -> CacheLayer:
    return request.app.state.cache


def get_synchronizer(request: Request) -> SearchSynchronizer:
    return request.app.state.synchronizer


def get_fanout(request: Request) -> QueryFanout:
    return request.app.state.fanout


DbDep = Annotated[AsyncSession, Depends(get_db)]
CacheDep = Annotated[CacheLayer, Depends(get_cache)]
SynchronizerDep = Annotated[SearchSynchronizer, Depends(get_synchronizer)]
FanoutDep = Annotated[QueryFanout, Depends(get_fanout)]
