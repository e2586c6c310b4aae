from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, status

from todosearch.dependencies import CacheDep, DbDep, SynchronizerDep
from todosearch.models import (
    CommentCreate,
    CommentResponse,
    TodoCount,
    TodoCreate,
    TodoResponse,
    UserResponse,
)
from todosearch.services.comment_service import CommentService
from todosearch.services.todo_service import TodoService

router = APIRouter(prefix="/todos", tags=["todos"])


def _not_found(todo_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Todo with id {todo_id} not found",
    )


@router.post("/", response_model=TodoResponse, status_code=status.HTTP_201_CREATED)
async def create_todo(
    todo_data: TodoCreate, user_id: int, db: DbDep, sync: SynchronizerDep
):
    """Create a todo and index it for search"""
    return await TodoService.create_todo(todo_data, user_id, db, sync)


@router.get("/", response_model=list[TodoResponse])
async def get_todos(
    db: DbDep,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=100),
):
    return await TodoService.get_all_todos(db, skip, limit)


@router.delete("/", response_model=TodoCount)
async def delete_all_todos(db: DbDep, cache: CacheDep):
    count = await TodoService.delete_all_todos(db, cache=cache)
    return TodoCount(count=count)


@router.get("/count", response_model=TodoCount)
async def count_todos(db: DbDep):
    return TodoCount(count=await TodoService.count_todos(db))


@router.get("/count/by-due-date", response_model=TodoCount)
async def count_todos_by_due_date(due_date: datetime, db: DbDep):
    """Number of todos due on the UTC day of due_date"""
    return TodoCount(count=await TodoService.count_todos(db, due_date=due_date))


@router.get("/by-due-date", response_model=list[TodoResponse])
async def get_todos_by_due_date(
    due_date: datetime,
    db: DbDep,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=100),
):
    return await TodoService.get_todos_by_due_date(due_date, db, skip, limit)


@router.get("/{todo_id}", response_model=TodoResponse)
async def get_todo(todo_id: int, db: DbDep, cache: CacheDep):
    todo = await TodoService.get_todo(todo_id, db, cache=cache)
    if not todo:
        raise _not_found(todo_id)
    return todo


@router.get("/{todo_id}/user", response_model=UserResponse)
async def get_todo_user(todo_id: int, db: DbDep):
    user = await TodoService.get_todo_user(todo_id, db)
    if not user:
        raise _not_found(todo_id)
    return user


@router.get("/{todo_id}/comments", response_model=list[CommentResponse])
async def get_todo_comments(todo_id: int, db: DbDep):
    return await TodoService.get_todo_comments(todo_id, db)


@router.post(
    "/{todo_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    todo_id: int, comment_data: CommentCreate, db: DbDep, sync: SynchronizerDep
):
    """Add a comment and append it to the todo's search document"""
    return await CommentService.create_comment(comment_data, todo_id, db, sync)


@router.post("/{todo_id}/toggle", response_model=TodoResponse)
async def toggle_todo_completed(todo_id: int, db: DbDep, cache: CacheDep):
    todo = await TodoService.toggle_completed(todo_id, db, cache=cache)
    if not todo:
        raise _not_found(todo_id)
    return todo


@router.delete("/{todo_id}", response_model=TodoResponse)
async def delete_todo(todo_id: int, db: DbDep, cache: CacheDep):
    """Delete a todo and its comments"""
    todo = await TodoService.delete_todo(todo_id, db, cache=cache)
    if not todo:
        raise _not_found(todo_id)
    return todo
