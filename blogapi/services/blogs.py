import logging
from typing import Optional

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blogapi.core.db import as_utc
from blogapi.core.models.blog import Blog, Post
from blogapi.core.query import Criterion, Op, PageRequest, Sort, fetch_page
from blogapi.core.schemas import BlogView, Paginator
from blogapi.core.text import clean_text
from blogapi.services.posts import PostsService

logger = logging.getLogger(__name__)


def blog_view(blog: Blog) -> BlogView:
    return BlogView(
        id=blog.id,
        name=blog.name,
        description=blog.description,
        website_url=blog.website_url,
        created_at=as_utc(blog.created_at),
        is_membership=blog.is_membership,
    )


class BlogsService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], posts: PostsService):
        self.session_factory = session_factory
        self.posts = posts

    async def list_blogs(self, page: PageRequest, sort: Sort, search_name_term: Optional[str] = None) -> Paginator[BlogView]:
        spec = Criterion("name", Op.CONTAINS, search_name_term) if search_name_term else None
        async with self.session_factory() as session:
            result = await fetch_page(session, Blog, spec, sort, page)
        return Paginator[BlogView].of(result, [blog_view(b) for b in result.items])

    async def get_blog(self, blog_id: str) -> Optional[BlogView]:
        async with self.session_factory() as session:
            blog = await session.get(Blog, blog_id)
        return blog_view(blog) if blog else None

    async def create_blog(self, name: str, description: str, website_url: str) -> BlogView:
        blog = Blog(name=name, description=clean_text(description), website_url=website_url)
        async with self.session_factory() as session:
            session.add(blog)
            await session.commit()
            await session.refresh(blog)
        logger.info("Blog %s created", blog.id)
        return blog_view(blog)

    async def update_blog(self, blog_id: str, name: str, description: str, website_url: str) -> bool:
        async with self.session_factory() as session:
            blog = await session.get(Blog, blog_id)
            if blog is None:
                return False
            blog.name = name
            blog.description = clean_text(description)
            blog.website_url = website_url
            # posts carry the blog name as written; keep them in step
            await session.execute(update(Post).where(Post.blog_id == blog_id).values(blog_name=name))
            await session.commit()
        return True

    async def delete_blog(self, blog_id: str) -> bool:
        async with self.session_factory() as session:
            if await session.get(Blog, blog_id) is None:
                return False
            await self.posts.remove_for_blogs(session, [blog_id])
            await session.execute(delete(Blog).where(Blog.id == blog_id))
            await session.commit()
        logger.info("Blog %s deleted", blog_id)
        return True
