"""Error taxonomy shared by the store, the search index and the routers."""


class TodoSearchError(Exception):
    """Base class for application errors."""


class StoreWriteFailure(TodoSearchError):
    """A relational write failed. The search index was not touched."""


class SearchIndexError(TodoSearchError):
    """Base class for search index failures."""


class IndexWriteFailure(SearchIndexError):
    """Indexing or updating a search document failed."""

    def __init__(self, message: str, doc_id: int | None = None):
        super().__init__(message)
        self.doc_id = doc_id


class IndexDocumentNotFound(IndexWriteFailure):
    """A partial update targeted a todo that has no search document."""


class PerHitSearchError(SearchIndexError):
    """One response or hit of a search could not be used.

    Never raised out of a read; instances are logged and the hit is dropped.
    """

    def __init__(self, message: str, detail: object = None):
        super().__init__(message)
        self.detail = detail
