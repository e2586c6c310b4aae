import logging
from datetime import datetime, time, timezone

from sqlalchemy import delete as sa_delete
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from todosearch.cache.decorators import async_cached, async_cached_expire
from todosearch.cache.layer import CacheLayer
from todosearch.core.errors import StoreWriteFailure
from todosearch.models import Comment, Todo, TodoCreate, User
from todosearch.search.sync import SearchSynchronizer

logger = logging.getLogger(__name__)


def day_bounds(due_date: datetime) -> tuple[datetime, datetime]:
    """Start and end of the UTC day containing ``due_date``."""
    if due_date.tzinfo is None:
        due_date = due_date.replace(tzinfo=timezone.utc)
    day = due_date.astimezone(timezone.utc).date()
    return (
        datetime.combine(day, time.min, tzinfo=timezone.utc),
        datetime.combine(day, time.max, tzinfo=timezone.utc),
    )


class TodoService:
    @staticmethod
    async def create_todo(
        todo_data: TodoCreate,
        user_id: int,
        db: AsyncSession,
        sync: SearchSynchronizer | None = None,
    ):
        if await db.get(User, user_id) is None:
            raise StoreWriteFailure(f"User with id {user_id} does not exist")

        todo = Todo.model_validate(todo_data, update={"user_id": user_id})
        db.add(todo)
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreWriteFailure(f"Could not create todo for user {user_id}") from e
        await db.refresh(todo)

        if sync is not None:
            await sync.todo_created(todo)
        return todo

    @staticmethod
    async def get_all_todos(db: AsyncSession, skip: int, limit: int):
        query = select(Todo).order_by(Todo.created_at.desc()).offset(skip).limit(limit)
        result = await db.exec(query)
        return result.all()

    @staticmethod
    @async_cached(lambda todo_id, *_, **__: f"todo:{todo_id}", l2_ttl=120)
    async def get_todo(todo_id: int, db: AsyncSession, cache: CacheLayer | None = None):
        return await db.get(Todo, todo_id)

    @staticmethod
    async def get_todo_user(todo_id: int, db: AsyncSession):
        """Owner of a todo, or None when the todo does not exist"""
        query = select(User).join(Todo, Todo.user_id == User.id).where(Todo.id == todo_id)
        result = await db.exec(query)
        return result.first()

    @staticmethod
    async def get_todo_comments(todo_id: int, db: AsyncSession):
        query = select(Comment).where(Comment.todo_id == todo_id).order_by(Comment.id)
        result = await db.exec(query)
        return result.all()

    @staticmethod
    async def count_todos(db: AsyncSession, due_date: datetime | None = None) -> int:
        query = select(func.count()).select_from(Todo)
        if due_date is not None:
            start, end = day_bounds(due_date)
            query = query.where(Todo.due_date >= start, Todo.due_date <= end)
        result = await db.exec(query)
        return result.one()

    @staticmethod
    async def get_todos_by_due_date(
        due_date: datetime, db: AsyncSession, skip: int, limit: int
    ):
        start, end = day_bounds(due_date)
        query = (
            select(Todo)
            .where(Todo.due_date >= start, Todo.due_date <= end)
            .order_by(Todo.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.exec(query)
        return result.all()

    # completion does not change searchable text, the index is not touched
    @staticmethod
    @async_cached_expire(lambda todo_id, *_, **__: f"todo:{todo_id}")
    async def toggle_completed(
        todo_id: int, db: AsyncSession, cache: CacheLayer | None = None
    ):
        todo = await db.get(Todo, todo_id)
        if not todo:
            return None

        todo.completed = not todo.completed
        todo.updated_at = datetime.now(timezone.utc)
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreWriteFailure(f"Could not update todo {todo_id}") from e
        await db.refresh(todo)
        return todo

    # the search document is left behind on delete
    @staticmethod
    @async_cached_expire(lambda todo_id, *_, **__: f"todo:{todo_id}")
    async def delete_todo(
        todo_id: int, db: AsyncSession, cache: CacheLayer | None = None
    ):
        todo = await db.get(Todo, todo_id)
        if not todo:
            return None

        try:
            await db.exec(sa_delete(Comment).where(Comment.todo_id == todo_id))
            await db.delete(todo)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreWriteFailure(f"Could not delete todo {todo_id}") from e
        return todo

    @staticmethod
    async def delete_all_todos(db: AsyncSession, cache: CacheLayer | None = None) -> int:
        try:
            await db.exec(sa_delete(Comment))
            result = await db.exec(sa_delete(Todo))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreWriteFailure("Could not delete todos") from e

        if cache is not None:
            await cache.delete_pattern("todo:")
        logger.info(f"Deleted {result.rowcount} todos")
        return result.rowcount
