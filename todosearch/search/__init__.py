"""OpenSearch projection of todos and their comments."""

from todosearch.search.documents import SearchComment, SearchResult
from todosearch.search.fanout import QueryFanout
from todosearch.search.gateway import SearchIndexGateway
from todosearch.search.sync import SearchSynchronizer

__all__ = [
    "QueryFanout",
    "SearchComment",
    "SearchIndexGateway",
    "SearchResult",
    "SearchSynchronizer",
]
