"""SearchIndexGateway against a mocked OpenSearch client."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tests.fakes import connection_error, not_found_error, server_error
from todosearch.core.errors import IndexDocumentNotFound, IndexWriteFailure, SearchIndexError
from todosearch.search.documents import index_mapping
from todosearch.search.gateway import APPEND_COMMENTS_SCRIPT, SearchIndexGateway, build_term_query


@pytest.fixture
def client():
    client = MagicMock()
    client.index = AsyncMock()
    client.update = AsyncMock()
    client.msearch = AsyncMock()
    client.close = AsyncMock()
    client.indices.exists = AsyncMock(return_value=False)
    client.indices.create = AsyncMock()
    client.indices.put_mapping = AsyncMock()
    return client


@pytest.fixture
def gateway(client) -> SearchIndexGateway:
    return SearchIndexGateway(client, "todo-comments", retry_on_conflict=3)


def test_comments_mapped_as_nested():
    properties = index_mapping()["properties"]
    assert properties["todo"] == {"type": "text"}
    assert properties["todoId"] == {"type": "integer"}
    assert properties["comments"]["type"] == "nested"
    assert properties["comments"]["properties"]["content"] == {"type": "text"}


async def test_ensure_index_creates_missing_index(gateway, client):
    await gateway.ensure_index()

    client.indices.create.assert_awaited_once_with(
        index="todo-comments", body={"mappings": index_mapping()}
    )
    client.indices.put_mapping.assert_not_awaited()


async def test_ensure_index_reapplies_mapping(gateway, client):
    client.indices.exists.return_value = True

    await gateway.ensure_index()

    client.indices.put_mapping.assert_awaited_once_with(
        index="todo-comments", body=index_mapping()
    )
    client.indices.create.assert_not_awaited()


async def test_ensure_index_wraps_client_errors(gateway, client):
    client.indices.exists.side_effect = connection_error()

    with pytest.raises(SearchIndexError):
        await gateway.ensure_index()


async def test_upsert_replaces_whole_document_with_refresh(gateway, client):
    await gateway.upsert_todo_document(7, "buy milk")

    client.index.assert_awaited_once_with(
        index="todo-comments",
        id="7",
        body={"todo": "buy milk", "todoId": 7, "comments": []},
        refresh=True,
    )


async def test_upsert_failure_raises_index_write_failure(gateway, client):
    client.index.side_effect = server_error()

    with pytest.raises(IndexWriteFailure) as exc_info:
        await gateway.upsert_todo_document(7, "buy milk")
    assert exc_info.value.doc_id == 7
    assert not isinstance(exc_info.value, IndexDocumentNotFound)


async def test_append_comment_uses_script_update(gateway, client):
    comment = {"id": 3, "todoId": 7, "content": "get oat milk"}

    await gateway.append_comment(7, comment)

    client.update.assert_awaited_once()
    kwargs = client.update.await_args.kwargs
    assert kwargs["index"] == "todo-comments"
    assert kwargs["id"] == "7"
    assert kwargs["body"]["script"]["source"] == APPEND_COMMENTS_SCRIPT
    assert kwargs["body"]["script"]["params"] == {"comments": [comment]}
    assert kwargs["retry_on_conflict"] == 3
    client.index.assert_not_awaited()


async def test_append_comment_to_missing_document(gateway, client):
    client.update.side_effect = not_found_error("9999")

    with pytest.raises(IndexDocumentNotFound) as exc_info:
        await gateway.append_comment(9999, {"content": "orphan"})
    assert exc_info.value.doc_id == 9999


async def test_append_comment_connection_error(gateway, client):
    client.update.side_effect = connection_error()

    with pytest.raises(IndexWriteFailure) as exc_info:
        await gateway.append_comment(7, {"content": "x"})
    assert not isinstance(exc_info.value, IndexDocumentNotFound)


def test_term_query_is_todo_or_nested_comment():
    query = build_term_query("milk")

    todo_clause, comment_clause = query["bool"]["should"]
    assert todo_clause == {"match": {"todo": "milk"}}
    assert comment_clause["nested"]["path"] == "comments"
    assert comment_clause["nested"]["query"]["bool"]["should"] == [
        {"match": {"comments.content": "milk"}}
    ]


async def test_search_sends_one_multi_search(gateway, client):
    client.msearch.return_value = {"responses": [{"hits": {"hits": []}}]}

    await gateway.search("milk")

    client.msearch.assert_awaited_once_with(
        body=[{"index": "todo-comments"}, {"query": build_term_query("milk")}]
    )


async def test_search_skips_failed_responses(gateway, client):
    hit = {"_id": "1", "_source": {"todo": "buy milk", "todoId": 1, "comments": []}}
    client.msearch.return_value = {
        "responses": [
            {"error": {"type": "search_phase_execution_exception"}, "status": 400},
            {"hits": {"hits": [hit]}},
        ]
    }

    assert await gateway.search("milk") == [hit]


async def test_search_failure_returns_no_hits(gateway, client):
    client.msearch.side_effect = connection_error()

    assert await gateway.search("milk") == []


async def test_close_closes_client(gateway, client):
    await gateway.close()
    client.close.assert_awaited_once()


async def test_first_write_prepares_index(gateway, client):
    await gateway.upsert_todo_document(7, "buy milk")
    await gateway.upsert_todo_document(8, "buy bread")

    client.indices.create.assert_awaited_once()
    assert client.index.await_count == 2


async def test_write_before_index_is_ready_fails_without_writing(gateway, client):
    client.indices.exists.side_effect = connection_error()

    with pytest.raises(IndexWriteFailure) as exc_info:
        await gateway.append_comment(7, {"content": "x"})
    assert exc_info.value.doc_id == 7
    client.update.assert_not_awaited()


async def test_search_before_index_is_ready_returns_no_hits(gateway, client):
    client.indices.exists.side_effect = connection_error()

    assert await gateway.search("milk") == []
    client.msearch.assert_not_awaited()
