import logging

from todosearch.core.errors import IndexDocumentNotFound, IndexWriteFailure
from todosearch.models import Comment, Todo
from todosearch.search.documents import comment_record
from todosearch.search.gateway import SearchIndexGateway

logger = logging.getLogger(__name__)


class SearchSynchronizer:
    """
    Projects committed store writes into the search index.

    Called once per content-changing write, after the store commit. Index
    failures are logged and returned, never raised: the store stays the
    source of truth and the index may drift.
    """

    def __init__(self, gateway: SearchIndexGateway):
        self.gateway = gateway

    async def todo_created(self, todo: Todo) -> IndexWriteFailure | None:
        try:
            await self.gateway.upsert_todo_document(todo.id, todo.content)
        except IndexWriteFailure as e:
            logger.error(f"Search document for todo {todo.id} not written: {e}")
            return e
        return None

    async def comment_created(self, comment: Comment) -> IndexWriteFailure | None:
        try:
            await self.gateway.append_comment(comment.todo_id, comment_record(comment))
        except IndexDocumentNotFound as e:
            logger.warning(
                f"Comment {comment.id} not indexed, todo {comment.todo_id} "
                f"has no search document"
            )
            return e
        except IndexWriteFailure as e:
            logger.error(f"Comment {comment.id} not indexed: {e}")
            return e
        return None
