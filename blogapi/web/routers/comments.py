from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from blogapi.core.errors import Outcome
from blogapi.core.schemas import CommentInput, CommentView, LikeStatusInput
from blogapi.core.security import get_optional_user_id, require_user_id
from blogapi.services.comments import CommentsService
from blogapi.web.deps import get_comments_service

router = APIRouter(prefix="/comments", tags=["comments"])


async def _require_owner(comment_id: str, user_id: str, comments: CommentsService) -> None:
    outcome = await comments.check_owner(comment_id, user_id)
    if outcome is Outcome.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    if outcome is Outcome.FORBIDDEN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not the comment owner")


@router.get("/{comment_id}", response_model=CommentView)
async def get_comment(
    comment_id: str,
    viewer_id: Optional[str] = Depends(get_optional_user_id),
    comments: CommentsService = Depends(get_comments_service),
):
    comment = await comments.get_comment(comment_id, viewer_id)
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return comment


@router.put("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_comment(
    comment_id: str,
    body: CommentInput,
    user_id: str = Depends(require_user_id),
    comments: CommentsService = Depends(get_comments_service),
):
    await _require_owner(comment_id, user_id, comments)
    if not await comments.update_comment(comment_id, body.content):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: str,
    user_id: str = Depends(require_user_id),
    comments: CommentsService = Depends(get_comments_service),
):
    await _require_owner(comment_id, user_id, comments)
    if not await comments.delete_comment(comment_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{comment_id}/like-status", status_code=status.HTTP_204_NO_CONTENT)
async def set_comment_like_status(
    comment_id: str,
    body: LikeStatusInput,
    user_id: str = Depends(require_user_id),
    comments: CommentsService = Depends(get_comments_service),
):
    if not await comments.set_like_status(comment_id, user_id, body.like_status):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
