import logging
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blogapi.core.errors import Outcome
from blogapi.core.models.device import DeviceSession
from blogapi.core.security import now_ts

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Active login sessions, one row per device, keyed by device id."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create_session(
        self,
        user_id: str,
        device_id: str,
        ip: str,
        device_name: str,
        issued_at: int,
        expires_at: int,
    ) -> DeviceSession:
        device = DeviceSession(
            device_id=device_id,
            user_id=user_id,
            ip=ip,
            title=device_name,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        async with self.session_factory() as session:
            session.add(device)
            await session.commit()
        logger.info("Session %s opened for user %s from %s", device_id, user_id, ip)
        return device

    async def get_session(self, device_id: str) -> Optional[DeviceSession]:
        async with self.session_factory() as session:
            return await session.get(DeviceSession, device_id)

    async def rotate_session(self, device_id: str, new_issued_at: int, expires_at: int) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                update(DeviceSession)
                .where(DeviceSession.device_id == device_id)
                .values(issued_at=new_issued_at, expires_at=expires_at)
            )
            await session.commit()
        return result.rowcount == 1

    async def list_active_sessions(self, user_id: str) -> List[DeviceSession]:
        async with self.session_factory() as session:
            rows = await session.execute(
                select(DeviceSession)
                .where(DeviceSession.user_id == user_id, DeviceSession.expires_at > now_ts())
                .order_by(DeviceSession.issued_at)
            )
            return list(rows.scalars().all())

    async def revoke_session(self, device_id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(delete(DeviceSession).where(DeviceSession.device_id == device_id))
            await session.commit()
        if result.rowcount:
            logger.info("Session %s revoked", device_id)
        return result.rowcount == 1

    async def revoke_owned_session(self, user_id: str, device_id: str) -> Outcome:
        device = await self.get_session(device_id)
        if device is None:
            return Outcome.NOT_FOUND
        if device.user_id != user_id:
            return Outcome.FORBIDDEN
        if not await self.revoke_session(device_id):
            return Outcome.NOT_FOUND
        return Outcome.OK

    async def revoke_all_except(self, user_id: str, current_device_id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                delete(DeviceSession).where(
                    DeviceSession.user_id == user_id,
                    DeviceSession.device_id != current_device_id,
                )
            )
            await session.commit()
        logger.info("Revoked %s other session(s) of user %s", result.rowcount, user_id)
        return True

    async def revoke_all(self, user_id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(delete(DeviceSession).where(DeviceSession.user_id == user_id))
            await session.commit()
        logger.info("Revoked all %s session(s) of user %s", result.rowcount, user_id)
        return True
