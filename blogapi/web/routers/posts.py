from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from blogapi.core.errors import ValidationFailed
from blogapi.core.models.blog import Post
from blogapi.core.models.comment import Comment
from blogapi.core.query import PageRequest, Sort
from blogapi.core.schemas import CommentInput, CommentView, LikeStatusInput, Paginator, PostInput, PostView
from blogapi.core.security import get_optional_user_id, require_admin, require_user_id
from blogapi.services.auth import AuthService
from blogapi.services.blogs import BlogsService
from blogapi.services.comments import CommentsService
from blogapi.services.posts import PostsService
from blogapi.web.deps import (
    get_auth_service,
    get_blogs_service,
    get_comments_service,
    get_posts_service,
    page_params,
    sort_for,
    sort_params,
)

router = APIRouter(prefix="/posts", tags=["posts"])


async def _require_blog(blog_id: str, blogs: BlogsService) -> None:
    if not await blogs.get_blog(blog_id):
        raise ValidationFailed.field("blogId", "blog by blogId not found")


@router.get("", response_model=Paginator[PostView])
async def list_posts(
    page: PageRequest = Depends(page_params),
    sort: Sort = Depends(sort_params),
    viewer_id: Optional[str] = Depends(get_optional_user_id),
    posts: PostsService = Depends(get_posts_service),
):
    return await posts.list_posts(page, sort_for(Post, sort), viewer_id=viewer_id)


@router.post("", response_model=PostView, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def create_post(
    body: PostInput,
    posts: PostsService = Depends(get_posts_service),
    blogs: BlogsService = Depends(get_blogs_service),
):
    await _require_blog(body.blog_id, blogs)
    post = await posts.create_post(body.blog_id, body.title, body.short_description, body.content)
    if not post:
        # blog removed between the check and the insert
        raise ValidationFailed.field("blogId", "blog by blogId not found")
    return post


@router.get("/{post_id}", response_model=PostView)
async def get_post(
    post_id: str,
    viewer_id: Optional[str] = Depends(get_optional_user_id),
    posts: PostsService = Depends(get_posts_service),
):
    post = await posts.get_post(post_id, viewer_id)
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


@router.put("/{post_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
async def update_post(
    post_id: str,
    body: PostInput,
    posts: PostsService = Depends(get_posts_service),
    blogs: BlogsService = Depends(get_blogs_service),
):
    await _require_blog(body.blog_id, blogs)
    if not await posts.update_post(post_id, body.blog_id, body.title, body.short_description, body.content):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
async def delete_post(post_id: str, posts: PostsService = Depends(get_posts_service)):
    if not await posts.delete_post(post_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -----------------
# Comments & likes
# -----------------

@router.get("/{post_id}/comments", response_model=Paginator[CommentView])
async def list_post_comments(
    post_id: str,
    page: PageRequest = Depends(page_params),
    sort: Sort = Depends(sort_params),
    viewer_id: Optional[str] = Depends(get_optional_user_id),
    comments: CommentsService = Depends(get_comments_service),
):
    result = await comments.list_for_post(post_id, page, sort_for(Comment, sort), viewer_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return result


@router.post("/{post_id}/comments", response_model=CommentView, status_code=status.HTTP_201_CREATED)
async def create_post_comment(
    post_id: str,
    body: CommentInput,
    user_id: str = Depends(require_user_id),
    auth: AuthService = Depends(get_auth_service),
    comments: CommentsService = Depends(get_comments_service),
):
    user = await auth.get_user(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    comment = await comments.create_comment(post_id, user.id, user.login, body.content)
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return comment


@router.put("/{post_id}/like-status", status_code=status.HTTP_204_NO_CONTENT)
async def set_post_like_status(
    post_id: str,
    body: LikeStatusInput,
    user_id: str = Depends(require_user_id),
    posts: PostsService = Depends(get_posts_service),
):
    if not await posts.set_like_status(post_id, user_id, body.like_status):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
