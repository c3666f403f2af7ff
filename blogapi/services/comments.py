import logging
from typing import Iterable, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blogapi.core.db import as_utc
from blogapi.core.errors import Outcome
from blogapi.core.models.blog import Post
from blogapi.core.models.comment import Comment
from blogapi.core.models.interaction import EntityType, LikeStatus
from blogapi.core.query import Criterion, Op, PageRequest, Sort, fetch_page
from blogapi.core.schemas import CommentView, CommentatorInfo, Paginator
from blogapi.core.text import clean_text
from blogapi.services.reactions import ReactionService, ReactionSet, project

logger = logging.getLogger(__name__)


class CommentsService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], reactions: ReactionService):
        self.session_factory = session_factory
        self.reactions = reactions

    async def _views(self, session: AsyncSession, comments: List[Comment], viewer_id: Optional[str]) -> List[CommentView]:
        sets = await self.reactions.load(session, EntityType.COMMENT, [c.id for c in comments])
        return [
            CommentView(
                id=c.id,
                content=c.content,
                commentator_info=CommentatorInfo(user_id=c.user_id, user_login=c.user_login),
                created_at=as_utc(c.created_at),
                likes_info=project(sets[c.id], viewer_id),
            )
            for c in comments
        ]

    async def get_comment(self, comment_id: str, viewer_id: Optional[str] = None) -> Optional[CommentView]:
        async with self.session_factory() as session:
            comment = await session.get(Comment, comment_id)
            if comment is None:
                return None
            return (await self._views(session, [comment], viewer_id))[0]

    async def list_for_post(
        self,
        post_id: str,
        page: PageRequest,
        sort: Sort,
        viewer_id: Optional[str] = None,
    ) -> Optional[Paginator[CommentView]]:
        async with self.session_factory() as session:
            if await session.get(Post, post_id) is None:
                return None
            result = await fetch_page(session, Comment, Criterion("post_id", Op.EQ, post_id), sort, page)
            items = await self._views(session, result.items, viewer_id)
        return Paginator[CommentView].of(result, items)

    async def create_comment(self, post_id: str, user_id: str, user_login: str, content: str) -> Optional[CommentView]:
        async with self.session_factory() as session:
            # best effort: a post deleted after this check leaves an orphaned comment
            if await session.get(Post, post_id) is None:
                return None
            comment = Comment(post_id=post_id, user_id=user_id, user_login=user_login, content=clean_text(content))
            session.add(comment)
            await session.commit()
            await session.refresh(comment)
        logger.info("Comment %s created on post %s by %s", comment.id, post_id, user_id)
        return CommentView(
            id=comment.id,
            content=comment.content,
            commentator_info=CommentatorInfo(user_id=user_id, user_login=user_login),
            created_at=as_utc(comment.created_at),
            likes_info=project(ReactionSet(), None),
        )

    async def check_owner(self, comment_id: str, user_id: str) -> Outcome:
        async with self.session_factory() as session:
            owner_id = (await session.execute(select(Comment.user_id).where(Comment.id == comment_id))).scalar_one_or_none()
        if owner_id is None:
            return Outcome.NOT_FOUND
        if owner_id != user_id:
            return Outcome.FORBIDDEN
        return Outcome.OK

    async def update_comment(self, comment_id: str, content: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                update(Comment).where(Comment.id == comment_id).values(content=clean_text(content))
            )
            await session.commit()
        return result.rowcount == 1

    async def delete_comment(self, comment_id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(delete(Comment).where(Comment.id == comment_id))
            if result.rowcount != 1:
                await session.rollback()
                return False
            await self.reactions.remove_all(session, EntityType.COMMENT, [comment_id])
            await session.commit()
        logger.info("Comment %s deleted", comment_id)
        return True

    async def remove_for_posts(self, session: AsyncSession, post_ids: Iterable[str]) -> None:
        """Delete the comments of removed posts with their reactions; the caller commits."""
        ids = list(post_ids)
        if not ids:
            return
        comment_ids = (await session.execute(select(Comment.id).where(Comment.post_id.in_(ids)))).scalars().all()
        await self.reactions.remove_all(session, EntityType.COMMENT, comment_ids)
        await session.execute(delete(Comment).where(Comment.post_id.in_(ids)))

    async def set_like_status(self, comment_id: str, user_id: str, status: LikeStatus) -> bool:
        return await self.reactions.set_reaction(user_id, EntityType.COMMENT, comment_id, status)
