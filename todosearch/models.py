from datetime import datetime, timezone

from pydantic import field_validator
from sqlalchemy import DateTime
from sqlmodel import Column, Field, SQLModel


def get_utc_now():
    """Helper function to get current UTC time with timezone"""
    return datetime.now(timezone.utc)


class UserBase(SQLModel):
    name: str | None = Field(default=None, max_length=200)
    email: str = Field(min_length=3, max_length=320, unique=True, index=True)


class User(UserBase, table=True):
    """Database model"""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)


class UserCreate(UserBase):
    pass


class UserResponse(UserBase):
    id: int

    model_config = {"from_attributes": True}


class TodoBase(SQLModel):
    """Fields supplied when a todo is created"""

    content: str = Field(min_length=1)
    completed: bool = Field(default=False)
    due_date: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))

    @field_validator("due_date")
    @classmethod
    def due_date_to_utc(cls, value: datetime) -> datetime:
        """Store due dates as UTC so day windows compare like with like"""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Todo(TodoBase, table=True):
    """Database model"""

    __tablename__ = "todos"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class TodoCreate(TodoBase):
    """Schema for creating a todo"""

    pass


class TodoResponse(SQLModel):
    id: int
    content: str
    completed: bool
    due_date: datetime
    user_id: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TodoCount(SQLModel):
    count: int


class Comment(SQLModel, table=True):
    """Database model"""

    __tablename__ = "comments"

    id: int | None = Field(default=None, primary_key=True)
    content: str = Field(min_length=1)
    todo_id: int = Field(foreign_key="todos.id", index=True)
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class CommentCreate(SQLModel):
    content: str = Field(min_length=1)


class CommentResponse(SQLModel):
    id: int
    content: str
    todo_id: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
