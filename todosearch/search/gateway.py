import logging
from typing import Any

from opensearchpy import AsyncOpenSearch, NotFoundError, TransportError

from todosearch.core.config import Settings
from todosearch.core.errors import (
    IndexDocumentNotFound,
    IndexWriteFailure,
    PerHitSearchError,
    SearchIndexError,
)
from todosearch.search.documents import index_mapping, todo_document

logger = logging.getLogger(__name__)

APPEND_COMMENTS_SCRIPT = "ctx._source.comments.addAll(params.comments)"


def build_term_query(term: str) -> dict[str, Any]:
    """Match ``term`` against the todo text OR any single comment's content."""
    return {
        "bool": {
            "should": [
                {"match": {"todo": term}},
                {
                    "nested": {
                        "path": "comments",
                        "query": {
                            "bool": {
                                "should": [{"match": {"comments.content": term}}]
                            }
                        },
                    }
                },
            ]
        }
    }


class SearchIndexGateway:
    """
    Owns the denormalized todo search documents.

    Writes:
    - upsert_todo_document: full replace, refreshed before returning
    - append_comment: server-side script append, no client read-modify-write

    Reads:
    - search: one multi-search request; failed responses are dropped
    """

    def __init__(
        self,
        client: AsyncOpenSearch,
        index_name: str,
        retry_on_conflict: int = 5,
    ):
        self.client = client
        self.index_name = index_name
        self.retry_on_conflict = retry_on_conflict
        self._ready = False

    @classmethod
    def from_settings(
        cls, settings: Settings, client: AsyncOpenSearch | None = None
    ) -> "SearchIndexGateway":
        if client is None:
            client = AsyncOpenSearch(
                hosts=[settings.search_url],
                timeout=settings.search_request_timeout,
            )
        return cls(
            client,
            settings.search_index_name,
            retry_on_conflict=settings.search_retry_on_conflict,
        )

    async def ensure_index(self) -> None:
        """Create the index with the nested mapping, or re-apply the mapping."""
        mapping = index_mapping()
        try:
            if await self.client.indices.exists(index=self.index_name):
                await self.client.indices.put_mapping(index=self.index_name, body=mapping)
                logger.info("Search mapping updated for %s", self.index_name)
            else:
                await self.client.indices.create(
                    index=self.index_name, body={"mappings": mapping}
                )
                logger.info("Search index %s created", self.index_name)
        except TransportError as e:
            raise SearchIndexError(
                f"Could not prepare index {self.index_name}: {e}"
            ) from e
        self._ready = True

    async def _ensure_ready(self, todo_id: int) -> None:
        # startup may have run while the index was unreachable
        if self._ready:
            return
        try:
            await self.ensure_index()
        except SearchIndexError as e:
            raise IndexWriteFailure(str(e), doc_id=todo_id) from e

    async def upsert_todo_document(self, todo_id: int, content: str) -> None:
        await self._ensure_ready(todo_id)
        try:
            await self.client.index(
                index=self.index_name,
                id=str(todo_id),
                body=todo_document(todo_id, content),
                refresh=True,
            )
        except TransportError as e:
            raise IndexWriteFailure(
                f"Indexing todo {todo_id} failed: {e}", doc_id=todo_id
            ) from e
        logger.debug("Indexed todo %s", todo_id)

    async def append_comment(self, todo_id: int, comment: dict[str, Any]) -> None:
        """Append one comment record to the document of ``todo_id``.

        Raises:
            IndexDocumentNotFound: no document exists for ``todo_id``.
            IndexWriteFailure: any other index error.
        """
        await self._ensure_ready(todo_id)
        try:
            await self.client.update(
                index=self.index_name,
                id=str(todo_id),
                body={
                    "script": {
                        "source": APPEND_COMMENTS_SCRIPT,
                        "lang": "painless",
                        "params": {"comments": [comment]},
                    }
                },
                refresh=True,
                retry_on_conflict=self.retry_on_conflict,
            )
        except NotFoundError as e:
            raise IndexDocumentNotFound(
                f"No search document for todo {todo_id}", doc_id=todo_id
            ) from e
        except TransportError as e:
            raise IndexWriteFailure(
                f"Appending comment to todo {todo_id} failed: {e}", doc_id=todo_id
            ) from e
        logger.debug("Appended comment %s to todo %s", comment.get("id"), todo_id)

    async def search(self, term: str) -> list[dict[str, Any]]:
        """Run the todo/comment query and return raw hits in ranked order."""
        searches = [{"index": self.index_name}, {"query": build_term_query(term)}]
        try:
            if not self._ready:
                await self.ensure_index()
            result = await self.client.msearch(body=searches)
        except TransportError as e:
            logger.error(f"Search for {term!r} failed: {e}")
            return []
        except SearchIndexError as e:
            logger.error(f"Search for {term!r} skipped: {e}")
            return []

        hits: list[dict[str, Any]] = []
        for position, response in enumerate(result["responses"]):
            if response.get("error"):
                err = PerHitSearchError(
                    f"search response {position} failed", detail=response["error"]
                )
                logger.warning("%s: %s", err, err.detail)
                continue
            hits.extend(response.get("hits", {}).get("hits") or [])
        return hits

    async def close(self):
        await self.client.close()
