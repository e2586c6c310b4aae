"""Store writes projected into the search index."""

import asyncio
from datetime import datetime, timezone

import pytest

from todosearch.core.errors import IndexDocumentNotFound, IndexWriteFailure, StoreWriteFailure
from todosearch.main import create_app, shutdown, startup
from todosearch.models import Comment, CommentCreate, Todo, TodoCreate, User
from todosearch.services.comment_service import CommentService
from todosearch.services.todo_service import TodoService

INDEX = "todo-comments-test"


def _todo_data(content: str) -> TodoCreate:
    return TodoCreate(
        content=content,
        completed=False,
        due_date=datetime(2030, 1, 15, 9, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
async def owner(db) -> User:
    user = User(name="grace", email="grace@example.com")
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
def sync(app):
    return app.state.synchronizer


async def test_created_todo_gets_a_document(db, owner, sync, fake_search):
    todo = await TodoService.create_todo(_todo_data("buy milk"), owner.id, db, sync)

    assert fake_search.document(INDEX, todo.id) == {
        "todo": "buy milk",
        "todoId": todo.id,
        "comments": [],
    }


async def test_comments_are_appended_in_order(db, owner, sync, fake_search):
    todo = await TodoService.create_todo(_todo_data("buy milk"), owner.id, db, sync)

    first = await CommentService.create_comment(CommentCreate(content="get oat milk"), todo.id, db, sync)
    second = await CommentService.create_comment(CommentCreate(content="or almond"), todo.id, db, sync)

    comments = fake_search.document(INDEX, todo.id)["comments"]
    assert [c["content"] for c in comments] == ["get oat milk", "or almond"]
    assert [c["id"] for c in comments] == [first.id, second.id]
    assert all(c["todoId"] == todo.id for c in comments)


async def test_concurrent_comments_are_all_kept(app, db, owner, sync, fake_search):
    todo = await TodoService.create_todo(_todo_data("plan trip"), owner.id, db, sync)

    async def add(i):
        async with app.state.session_factory() as session:
            await CommentService.create_comment(CommentCreate(content=f"note {i}"), todo.id, session, sync)

    await asyncio.gather(*(add(i) for i in range(10)))

    comments = fake_search.document(INDEX, todo.id)["comments"]
    assert len(comments) == 10
    assert sorted(c["content"] for c in comments) == sorted(f"note {i}" for i in range(10))


async def test_failed_store_write_never_touches_index(db, sync, fake_search):
    with pytest.raises(StoreWriteFailure):
        await TodoService.create_todo(_todo_data("buy milk"), 4242, db, sync)

    assert fake_search.docs.get(INDEX, {}) == {}


async def test_index_failure_does_not_fail_todo_creation(db, owner, sync, fake_search):
    fake_search.fail_writes = True

    todo = await TodoService.create_todo(_todo_data("buy milk"), owner.id, db, sync)

    assert todo.id is not None
    assert await db.get(Todo, todo.id) is not None
    assert fake_search.document(INDEX, todo.id) is None


async def test_comment_on_unindexed_todo_is_still_stored(db, owner, sync, fake_search):
    # todo written before search sync existed
    todo = Todo(content="old todo", completed=False, due_date=datetime.now(timezone.utc), user_id=owner.id)
    db.add(todo)
    await db.commit()
    await db.refresh(todo)

    comment = await CommentService.create_comment(CommentCreate(content="still here"), todo.id, db, sync)

    assert await db.get(Comment, comment.id) is not None
    assert fake_search.document(INDEX, todo.id) is None


async def test_append_to_unknown_todo_reports_missing_document(sync):
    comment = Comment(
        id=1,
        content="orphan",
        todo_id=9999,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )

    outcome = await sync.comment_created(comment)

    assert isinstance(outcome, IndexDocumentNotFound)
    assert outcome.doc_id == 9999


async def test_index_write_failure_is_returned_not_raised(db, owner, sync, fake_search):
    todo = await TodoService.create_todo(_todo_data("buy milk"), owner.id, db, sync)
    fake_search.fail_writes = True

    outcome = await sync.todo_created(todo)

    assert isinstance(outcome, IndexWriteFailure)
    assert not isinstance(outcome, IndexDocumentNotFound)


async def test_index_is_prepared_once_it_becomes_reachable(settings, fake_search):
    fake_search.indices.unavailable = True
    app = create_app(settings)
    await startup(app, settings, search_client=fake_search)
    try:
        sync = app.state.synchronizer
        assert INDEX not in fake_search.indices.mappings
        async with app.state.session_factory() as db:
            user = User(name="grace", email="grace@example.com")
            db.add(user)
            await db.commit()
            await db.refresh(user)

            early = await TodoService.create_todo(_todo_data("buy milk"), user.id, db, sync)
            assert fake_search.document(INDEX, early.id) is None
            assert isinstance(await sync.todo_created(early), IndexWriteFailure)

            fake_search.indices.unavailable = False
            todo = await TodoService.create_todo(_todo_data("buy bread"), user.id, db, sync)
    finally:
        await shutdown(app)

    assert fake_search.indices.mappings[INDEX]["properties"]["comments"]["type"] == "nested"
    assert fake_search.document(INDEX, todo.id)["todo"] == "buy bread"
