from fastapi import APIRouter, HTTPException, Query, status

from todosearch.dependencies import DbDep
from todosearch.models import TodoResponse, UserCreate, UserResponse
from todosearch.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(user_data: UserCreate, db: DbDep):
    return await UserService.create_user(user_data, db)


@router.get("/", response_model=list[UserResponse])
async def get_users(
    db: DbDep,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=100),
):
    return await UserService.get_all_users(db, skip, limit)


@router.get("/{user_id}/todos", response_model=list[TodoResponse])
async def get_user_todos(
    user_id: int,
    db: DbDep,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=100),
):
    """Todos of one user, most recently updated first"""
    if await UserService.get_user(user_id, db) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with id {user_id} not found",
        )
    return await UserService.get_user_todos(user_id, db, skip, limit)
