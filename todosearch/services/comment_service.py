from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from todosearch.core.errors import StoreWriteFailure
from todosearch.models import Comment, CommentCreate, Todo
from todosearch.search.sync import SearchSynchronizer


class CommentService:
    @staticmethod
    async def create_comment(
        comment_data: CommentCreate,
        todo_id: int,
        db: AsyncSession,
        sync: SearchSynchronizer | None = None,
    ):
        if await db.get(Todo, todo_id) is None:
            raise StoreWriteFailure(f"Todo with id {todo_id} does not exist")

        comment = Comment(content=comment_data.content, todo_id=todo_id)
        db.add(comment)
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreWriteFailure(f"Could not create comment on todo {todo_id}") from e
        await db.refresh(comment)

        if sync is not None:
            await sync.comment_created(comment)
        return comment

    @staticmethod
    async def get_comment_todo(comment_id: int, db: AsyncSession):
        query = select(Todo).join(Comment, Comment.todo_id == Todo.id).where(Comment.id == comment_id)
        result = await db.exec(query)
        return result.first()
