import logging
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blogapi.core.db import as_utc
from blogapi.core.models.interaction import Reaction
from blogapi.core.models.user import User
from blogapi.core.query import Criterion, Op, PageRequest, Sort, any_of, fetch_page
from blogapi.core.schemas import Paginator, UserView
from blogapi.services.sessions import DeviceRegistry

logger = logging.getLogger(__name__)


def user_view(user: User) -> UserView:
    return UserView(id=user.id, login=user.login, email=user.email, created_at=as_utc(user.created_at))


class UsersService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], devices: DeviceRegistry):
        self.session_factory = session_factory
        self.devices = devices

    async def list_users(
        self,
        page: PageRequest,
        sort: Sort,
        search_login_term: Optional[str] = None,
        search_email_term: Optional[str] = None,
    ) -> Paginator[UserView]:
        # login and email terms widen the result (OR), they do not narrow it
        spec = any_of(
            Criterion("login", Op.CONTAINS, search_login_term) if search_login_term else None,
            Criterion("email", Op.CONTAINS, search_email_term) if search_email_term else None,
        )
        async with self.session_factory() as session:
            result = await fetch_page(session, User, spec, sort, page)
        return Paginator[UserView].of(result, [user_view(u) for u in result.items])

    async def delete_user(self, user_id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(delete(User).where(User.id == user_id))
            if result.rowcount != 1:
                await session.rollback()
                return False
            # likes of a removed account no longer count
            await session.execute(delete(Reaction).where(Reaction.user_id == user_id))
            await session.commit()
        await self.devices.revoke_all(user_id)
        logger.info("User %s deleted", user_id)
        return True
