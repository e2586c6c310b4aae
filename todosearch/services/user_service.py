from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from todosearch.core.errors import StoreWriteFailure
from todosearch.models import Todo, User, UserCreate


class UserService:
    @staticmethod
    async def create_user(user_data: UserCreate, db: AsyncSession):
        user = User.model_validate(user_data)
        db.add(user)
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreWriteFailure(f"Could not create user {user_data.email}") from e
        await db.refresh(user)
        return user

    @staticmethod
    async def get_all_users(db: AsyncSession, skip: int, limit: int):
        query = select(User).order_by(User.id.asc()).offset(skip).limit(limit)
        result = await db.exec(query)
        return result.all()

    @staticmethod
    async def get_user(user_id: int, db: AsyncSession):
        return await db.get(User, user_id)

    @staticmethod
    async def get_user_todos(user_id: int, db: AsyncSession, skip: int, limit: int):
        query = (
            select(Todo)
            .where(Todo.user_id == user_id)
            .order_by(Todo.updated_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.exec(query)
        return result.all()
