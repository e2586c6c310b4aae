import logging

from todosearch.core.errors import PerHitSearchError
from todosearch.search.documents import SearchResult, to_search_result
from todosearch.search.gateway import SearchIndexGateway

logger = logging.getLogger(__name__)


class QueryFanout:
    def __init__(self, gateway: SearchIndexGateway):
        self.gateway = gateway

    async def find_by_term(self, term: str) -> list[SearchResult]:
        """Search todos and their comments for ``term``.

        Empty terms are sent as-is. Results keep the index's ranking and
        carry the full comment list of each matched todo.
        """
        results: list[SearchResult] = []
        for hit in await self.gateway.search(term):
            if hit.get("error"):
                logger.warning(f"Dropping failed hit {hit.get('_id')}: {hit['error']}")
                continue
            try:
                results.append(to_search_result(hit))
            except PerHitSearchError as e:
                logger.warning(f"Dropping hit: {e}")
        return results
