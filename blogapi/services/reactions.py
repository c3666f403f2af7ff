"""
Like/dislike state for posts and comments.

Every reactable entity owns three buckets of reactions: likes, dislikes and
none. A user sits in at most one bucket per entity; the unique constraint on
``Reaction`` backs this up in the store. Moving a user between buckets deletes
the old row and inserts a fresh one in the same transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blogapi.core.db import as_utc
from blogapi.core.models.blog import Post
from blogapi.core.models.comment import Comment
from blogapi.core.models.interaction import EntityType, LikeStatus, Reaction
from blogapi.core.models.user import User
from blogapi.core.schemas import ExtendedLikesInfo, LikesInfo, NewestLike

logger = logging.getLogger(__name__)

NEWEST_LIKES_LIMIT = 3

_ENTITY_MODELS = {
    EntityType.POST: Post,
    EntityType.COMMENT: Comment,
}


@dataclass(frozen=True)
class ReactionRecord:
    user_id: str
    created_at: datetime
    login: Optional[str] = None


@dataclass
class ReactionSet:
    likes: List[ReactionRecord] = field(default_factory=list)
    dislikes: List[ReactionRecord] = field(default_factory=list)
    none: List[ReactionRecord] = field(default_factory=list)

    def bucket(self, status: LikeStatus) -> List[ReactionRecord]:
        if status is LikeStatus.LIKE:
            return self.likes
        if status is LikeStatus.DISLIKE:
            return self.dislikes
        return self.none


def project(reactions: ReactionSet, viewer_id: Optional[str]) -> LikesInfo:
    my_status = LikeStatus.NONE
    if viewer_id:
        if any(r.user_id == viewer_id for r in reactions.likes):
            my_status = LikeStatus.LIKE
        # checked after likes: a user found in both reads as Dislike
        if any(r.user_id == viewer_id for r in reactions.dislikes):
            my_status = LikeStatus.DISLIKE
    return LikesInfo(
        likes_count=len(reactions.likes),
        dislikes_count=len(reactions.dislikes),
        my_status=my_status,
    )


def project_extended(reactions: ReactionSet, viewer_id: Optional[str]) -> ExtendedLikesInfo:
    base = project(reactions, viewer_id)
    newest = sorted(reactions.likes, key=lambda r: r.created_at, reverse=True)[:NEWEST_LIKES_LIMIT]
    return ExtendedLikesInfo(
        **base.model_dump(),
        newest_likes=[NewestLike(added_at=r.created_at, user_id=r.user_id, login=r.login) for r in newest],
    )


class ReactionService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def set_reaction(self, user_id: str, entity_type: EntityType, entity_id: str, status: LikeStatus) -> bool:
        """Put ``user_id`` in the bucket named by ``status``.

        Returns False only when the entity does not exist. Withdrawing a
        reaction that was never made writes nothing and still succeeds.
        """
        model = _ENTITY_MODELS[entity_type]
        # a concurrent request by the same user may win the insert; retry once so the last write wins
        for attempt in range(2):
            async with self.session_factory() as session:
                if await session.get(model, entity_id) is None:
                    return False
                result = await session.execute(
                    delete(Reaction).where(
                        Reaction.entity_type == entity_type.value,
                        Reaction.entity_id == entity_id,
                        Reaction.user_id == user_id,
                    )
                )
                if result.rowcount == 0 and status is LikeStatus.NONE:
                    await session.rollback()
                    return True
                session.add(Reaction(entity_type=entity_type.value, entity_id=entity_id, user_id=user_id, status=status.value))
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    if attempt:
                        raise
                    continue
                logger.debug("User %s set %s on %s %s", user_id, status.value, entity_type.value, entity_id)
                return True
        return False

    async def load(self, session: AsyncSession, entity_type: EntityType, entity_ids: Iterable[str]) -> Dict[str, ReactionSet]:
        """Reaction buckets for each of ``entity_ids`` (empty sets included)."""
        ids = list(entity_ids)
        sets: Dict[str, ReactionSet] = {entity_id: ReactionSet() for entity_id in ids}
        if not ids:
            return sets
        rows = (await session.execute(
            select(Reaction, User.login)
            .join(User, User.id == Reaction.user_id, isouter=True)
            .where(Reaction.entity_type == entity_type.value, Reaction.entity_id.in_(ids))
            .order_by(Reaction.created_at)
        )).all()
        for reaction, login in rows:
            record = ReactionRecord(user_id=reaction.user_id, created_at=as_utc(reaction.created_at), login=login)
            sets[reaction.entity_id].bucket(LikeStatus(reaction.status)).append(record)
        return sets

    async def remove_all(self, session: AsyncSession, entity_type: EntityType, entity_ids: Iterable[str]) -> None:
        """Drop the reaction sets of deleted entities; the caller commits."""
        ids = list(entity_ids)
        if ids:
            await session.execute(
                delete(Reaction).where(Reaction.entity_type == entity_type.value, Reaction.entity_id.in_(ids))
            )
