import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blogapi.core.config import Settings
from blogapi.core.db import as_utc, utcnow
from blogapi.core.mailer import EmailManager
from blogapi.core.models.device import DeviceSession
from blogapi.core.models.user import User
from blogapi.core.query import Criterion, Op, any_of, to_clause
from blogapi.core.security import RefreshClaims, TokenService, get_password_hash, now_ts, verify_password
from blogapi.services.sessions import DeviceRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class AuthService:
    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        tokens: TokenService,
        devices: DeviceRegistry,
        mailer: EmailManager,
    ):
        self.settings = settings
        self.session_factory = session_factory
        self.tokens = tokens
        self.devices = devices
        self.mailer = mailer

    # -----------------
    # Registration
    # -----------------

    async def find_taken_field(self, login: str, email: str) -> Optional[str]:
        """Name of the first of ``login``/``email`` already registered, if any."""
        async with self.session_factory() as session:
            if (await session.execute(select(User.id).where(User.login == login))).first():
                return "login"
            if (await session.execute(select(User.id).where(User.email == email.lower()))).first():
                return "email"
        return None

    async def create_user(self, login: str, password: str, email: str, confirmed: bool = False) -> Optional[User]:
        """Insert a new user; None when the login or email was taken meanwhile."""
        user = User(
            login=login,
            email=email.lower(),
            password_hash=get_password_hash(password),
            is_confirmed=confirmed,
        )
        if not confirmed:
            user.confirmation_code = str(uuid.uuid4())
            user.confirmation_expires_at = utcnow() + timedelta(hours=self.settings.EMAIL_CONFIRMATION_EXPIRE_HOURS)
        async with self.session_factory() as session:
            session.add(user)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.info("User %s not created: login or email already registered", login)
                return None
            await session.refresh(user)
        logger.info("User %s (%s) created", user.id, login)
        return user

    async def register(self, login: str, password: str, email: str) -> bool:
        user = await self.create_user(login, password, email)
        if user is None:
            return False
        sent = await self.mailer.send_confirmation_code(user.email, user.login, user.confirmation_code)
        if not sent:
            logger.warning("Confirmation email for user %s was not delivered", user.id)
        return True

    async def confirm_email(self, code: str) -> bool:
        async with self.session_factory() as session:
            user = (await session.execute(select(User).where(User.confirmation_code == code))).scalar_one_or_none()
            if not user or user.is_confirmed:
                return False
            if not user.confirmation_expires_at or as_utc(user.confirmation_expires_at) < utcnow():
                return False
            user.is_confirmed = True
            user.confirmation_code = None
            user.confirmation_expires_at = None
            await session.commit()
        logger.info("User %s confirmed email", user.id)
        return True

    async def resend_confirmation_code(self, email: str) -> bool:
        async with self.session_factory() as session:
            user = (await session.execute(select(User).where(User.email == email.lower()))).scalar_one_or_none()
            if not user or user.is_confirmed:
                return False
            user.confirmation_code = str(uuid.uuid4())
            user.confirmation_expires_at = utcnow() + timedelta(hours=self.settings.EMAIL_CONFIRMATION_EXPIRE_HOURS)
            await session.commit()
        return await self.mailer.send_confirmation_code(user.email, user.login, user.confirmation_code)

    # -----------------
    # Login & sessions
    # -----------------

    async def check_credentials(self, login_or_email: str, password: str) -> Optional[User]:
        spec = any_of(
            Criterion("login", Op.EQ, login_or_email),
            Criterion("email", Op.EQ, login_or_email.lower()),
        )
        async with self.session_factory() as session:
            user = (await session.execute(select(User).where(to_clause(User, spec)))).scalars().first()
        if not user or not user.is_confirmed:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    async def login(self, user_id: str, ip: str, device_name: str) -> TokenPair:
        device_id = str(uuid.uuid4())
        issued_at = now_ts()
        await self.devices.create_session(
            user_id=user_id,
            device_id=device_id,
            ip=ip,
            device_name=device_name,
            issued_at=issued_at,
            expires_at=self.tokens.refresh_expires_at(issued_at),
        )
        return TokenPair(
            access_token=self.tokens.create_access_token(user_id),
            refresh_token=self.tokens.create_refresh_token(user_id, device_id, issued_at),
        )

    async def current_session(self, claims: RefreshClaims) -> Optional[DeviceSession]:
        """The session a refresh token belongs to, if the token is its latest one.

        A token older than the session's last rotation has been used before:
        the session is revoked.
        """
        device = await self.devices.get_session(claims.device_id)
        if device is None or device.user_id != claims.user_id:
            return None
        if device.issued_at != claims.issued_at:
            logger.warning("Refresh token reuse detected for device %s; revoking session", claims.device_id)
            await self.devices.revoke_session(claims.device_id)
            return None
        return device

    async def refresh(self, claims: RefreshClaims) -> Optional[TokenPair]:
        device = await self.current_session(claims)
        if device is None:
            return None
        # iat has one-second resolution; rotation must always move it forward
        issued_at = max(now_ts(), device.issued_at + 1)
        if not await self.devices.rotate_session(device.device_id, issued_at, self.tokens.refresh_expires_at(issued_at)):
            return None
        return TokenPair(
            access_token=self.tokens.create_access_token(claims.user_id),
            refresh_token=self.tokens.create_refresh_token(claims.user_id, device.device_id, issued_at),
        )

    async def logout(self, claims: RefreshClaims) -> bool:
        device = await self.current_session(claims)
        if device is None:
            return False
        return await self.devices.revoke_session(device.device_id)

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self.session_factory() as session:
            return await session.get(User, user_id)

    # -----------------
    # Password recovery
    # -----------------

    async def send_password_recovery_code(self, email: str) -> bool:
        """Always succeeds for unknown addresses so they cannot be probed."""
        async with self.session_factory() as session:
            user = (await session.execute(select(User).where(User.email == email.lower()))).scalar_one_or_none()
            if not user:
                return True
            user.recovery_code = str(uuid.uuid4())
            user.recovery_expires_at = utcnow() + timedelta(hours=self.settings.PASSWORD_RECOVERY_EXPIRE_HOURS)
            await session.commit()
        await self.mailer.send_password_recovery_code(user.email, user.login, user.recovery_code)
        return True

    async def confirm_password_recovery(self, recovery_code: str, new_password: str) -> bool:
        async with self.session_factory() as session:
            user = (await session.execute(select(User).where(User.recovery_code == recovery_code))).scalar_one_or_none()
            if not user or not user.recovery_expires_at or as_utc(user.recovery_expires_at) < utcnow():
                return False
            user.password_hash = get_password_hash(new_password)
            user.recovery_code = None
            user.recovery_expires_at = None
            await session.commit()
        await self.devices.revoke_all(user.id)
        logger.info("User %s reset password", user.id)
        return True
