from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from blogapi.core.models.blog import Blog, Post
from blogapi.core.query import PageRequest, Sort
from blogapi.core.schemas import BlogInput, BlogPostInput, BlogView, Paginator, PostView
from blogapi.core.security import get_optional_user_id, require_admin
from blogapi.services.blogs import BlogsService
from blogapi.services.posts import PostsService
from blogapi.web.deps import get_blogs_service, get_posts_service, page_params, sort_for, sort_params

router = APIRouter(prefix="/blogs", tags=["blogs"])


@router.get("", response_model=Paginator[BlogView])
async def list_blogs(
    search_name_term: Optional[str] = Query(None, alias="searchNameTerm"),
    page: PageRequest = Depends(page_params),
    sort: Sort = Depends(sort_params),
    blogs: BlogsService = Depends(get_blogs_service),
):
    return await blogs.list_blogs(page, sort_for(Blog, sort), search_name_term)


@router.post("", response_model=BlogView, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def create_blog(body: BlogInput, blogs: BlogsService = Depends(get_blogs_service)):
    return await blogs.create_blog(body.name, body.description, body.website_url)


@router.get("/{blog_id}", response_model=BlogView)
async def get_blog(blog_id: str, blogs: BlogsService = Depends(get_blogs_service)):
    blog = await blogs.get_blog(blog_id)
    if not blog:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")
    return blog


@router.put("/{blog_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
async def update_blog(blog_id: str, body: BlogInput, blogs: BlogsService = Depends(get_blogs_service)):
    if not await blogs.update_blog(blog_id, body.name, body.description, body.website_url):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{blog_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
async def delete_blog(blog_id: str, blogs: BlogsService = Depends(get_blogs_service)):
    if not await blogs.delete_blog(blog_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{blog_id}/posts", response_model=Paginator[PostView])
async def list_blog_posts(
    blog_id: str,
    page: PageRequest = Depends(page_params),
    sort: Sort = Depends(sort_params),
    viewer_id: Optional[str] = Depends(get_optional_user_id),
    posts: PostsService = Depends(get_posts_service),
):
    result = await posts.list_posts(page, sort_for(Post, sort), blog_id=blog_id, viewer_id=viewer_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")
    return result


@router.post(
    "/{blog_id}/posts",
    response_model=PostView,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_blog_post(blog_id: str, body: BlogPostInput, posts: PostsService = Depends(get_posts_service)):
    post = await posts.create_post(blog_id, body.title, body.short_description, body.content)
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")
    return post
