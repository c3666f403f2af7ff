from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Index, String, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from blogapi.core.db import Base, utcnow


class LikeStatus(str, enum.Enum):
    NONE = "None"
    LIKE = "Like"
    DISLIKE = "Dislike"


class EntityType(str, enum.Enum):
    POST = "post"
    COMMENT = "comment"


class Reaction(Base):
    """One user's reaction to a post or comment.

    ``status`` names the bucket the reaction lives in. A row with status
    ``None`` records that the user withdrew an earlier like or dislike.
    """

    __tablename__ = "reactions"
    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "user_id", name="uq_reaction_user"),
        Index("ix_reaction_bucket", "entity_type", "entity_id", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(String(20))  # 'post' or 'comment'
    entity_id: Mapped[str] = mapped_column(String(36))
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    status: Mapped[str] = mapped_column(String(10))  # 'Like', 'Dislike' or 'None'
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
