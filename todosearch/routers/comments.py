from fastapi import APIRouter, HTTPException, status

from todosearch.dependencies import DbDep
from todosearch.models import TodoResponse
from todosearch.services.comment_service import CommentService

router = APIRouter(prefix="/comments", tags=["comments"])


@router.get("/{comment_id}/todo", response_model=TodoResponse)
async def get_comment_todo(comment_id: int, db: DbDep):
    """The todo a comment belongs to"""
    todo = await CommentService.get_comment_todo(comment_id, db)
    if not todo:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Comment with id {comment_id} not found",
        )
    return todo
