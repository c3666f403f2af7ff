import logging
from typing import Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blogapi.core.db import as_utc
from blogapi.core.models.blog import Blog, Post
from blogapi.core.models.interaction import EntityType, LikeStatus
from blogapi.core.query import Criterion, Op, PageRequest, Sort, fetch_page
from blogapi.core.schemas import Paginator, PostView
from blogapi.core.text import clean_text
from blogapi.services.comments import CommentsService
from blogapi.services.reactions import ReactionService, ReactionSet, project_extended

logger = logging.getLogger(__name__)


def post_view(post: Post, reactions: ReactionSet, viewer_id: Optional[str]) -> PostView:
    return PostView(
        id=post.id,
        title=post.title,
        short_description=post.short_description,
        content=post.content,
        blog_id=post.blog_id,
        blog_name=post.blog_name,
        created_at=as_utc(post.created_at),
        extended_likes_info=project_extended(reactions, viewer_id),
    )


class PostsService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        reactions: ReactionService,
        comments: CommentsService,
    ):
        self.session_factory = session_factory
        self.reactions = reactions
        self.comments = comments

    async def _views(self, session: AsyncSession, posts: List[Post], viewer_id: Optional[str]) -> List[PostView]:
        sets = await self.reactions.load(session, EntityType.POST, [p.id for p in posts])
        return [post_view(p, sets[p.id], viewer_id) for p in posts]

    async def list_posts(
        self,
        page: PageRequest,
        sort: Sort,
        blog_id: Optional[str] = None,
        viewer_id: Optional[str] = None,
    ) -> Optional[Paginator[PostView]]:
        """Posts of one blog, or of every blog when ``blog_id`` is None.

        Returns None for an unknown blog.
        """
        async with self.session_factory() as session:
            spec = None
            if blog_id is not None:
                if await session.get(Blog, blog_id) is None:
                    return None
                spec = Criterion("blog_id", Op.EQ, blog_id)
            result = await fetch_page(session, Post, spec, sort, page)
            items = await self._views(session, result.items, viewer_id)
        return Paginator[PostView].of(result, items)

    async def get_post(self, post_id: str, viewer_id: Optional[str] = None) -> Optional[PostView]:
        async with self.session_factory() as session:
            post = await session.get(Post, post_id)
            if post is None:
                return None
            return (await self._views(session, [post], viewer_id))[0]

    async def create_post(self, blog_id: str, title: str, short_description: str, content: str) -> Optional[PostView]:
        async with self.session_factory() as session:
            blog = await session.get(Blog, blog_id)
            if blog is None:
                return None
            post = Post(
                title=title,
                short_description=short_description,
                content=clean_text(content),
                blog_id=blog.id,
                blog_name=blog.name,
            )
            session.add(post)
            await session.commit()
            await session.refresh(post)
        logger.info("Post %s created in blog %s", post.id, blog_id)
        return post_view(post, ReactionSet(), None)

    async def update_post(self, post_id: str, blog_id: str, title: str, short_description: str, content: str) -> bool:
        """False when the post is missing; the caller checks ``blog_id`` exists."""
        async with self.session_factory() as session:
            post = await session.get(Post, post_id)
            blog = await session.get(Blog, blog_id)
            if post is None or blog is None:
                return False
            post.title = title
            post.short_description = short_description
            post.content = clean_text(content)
            post.blog_id = blog.id
            post.blog_name = blog.name
            await session.commit()
        return True

    async def delete_post(self, post_id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(delete(Post).where(Post.id == post_id))
            if result.rowcount != 1:
                await session.rollback()
                return False
            await self.comments.remove_for_posts(session, [post_id])
            await self.reactions.remove_all(session, EntityType.POST, [post_id])
            await session.commit()
        logger.info("Post %s deleted", post_id)
        return True

    async def remove_for_blogs(self, session: AsyncSession, blog_ids: Iterable[str]) -> None:
        """Delete every post of the given blogs with comments and reactions; the caller commits."""
        ids = list(blog_ids)
        if not ids:
            return
        post_ids = (await session.execute(select(Post.id).where(Post.blog_id.in_(ids)))).scalars().all()
        await self.comments.remove_for_posts(session, post_ids)
        await self.reactions.remove_all(session, EntityType.POST, post_ids)
        await session.execute(delete(Post).where(Post.blog_id.in_(ids)))

    async def set_like_status(self, post_id: str, user_id: str, status: LikeStatus) -> bool:
        return await self.reactions.set_reaction(user_id, EntityType.POST, post_id, status)
