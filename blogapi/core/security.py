import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBasic, HTTPBasicCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from blogapi.core.config import Settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_basic = HTTPBasic(auto_error=False)
_bearer = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


@dataclass(frozen=True)
class RefreshClaims:
    user_id: str
    device_id: str
    issued_at: int


class TokenService:
    """Issues and verifies the access/refresh JWT pair."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def create_access_token(self, user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES))
        to_encode = {"sub": user_id, "exp": expire, "typ": "access"}
        return jwt.encode(to_encode, self.settings.SECRET_KEY, algorithm=self.settings.JWT_ALGORITHM)

    def create_refresh_token(self, user_id: str, device_id: str, issued_at: int) -> str:
        to_encode = {
            "sub": user_id,
            "deviceId": device_id,
            "iat": issued_at,
            "exp": self.refresh_expires_at(issued_at),
            "typ": "refresh",
        }
        return jwt.encode(to_encode, self.settings.SECRET_KEY, algorithm=self.settings.JWT_ALGORITHM)

    def refresh_expires_at(self, issued_at: int) -> int:
        return issued_at + self.settings.REFRESH_TOKEN_EXPIRE_MINUTES * 60

    def _decode(self, token: str, typ: str) -> Optional[dict]:
        try:
            payload = jwt.decode(token, self.settings.SECRET_KEY, algorithms=[self.settings.JWT_ALGORITHM])
        except JWTError:
            return None
        if payload.get("typ") != typ or not payload.get("sub"):
            return None
        return payload

    def verify_access_token(self, token: str) -> Optional[str]:
        payload = self._decode(token, "access")
        return payload["sub"] if payload else None

    def verify_refresh_token(self, token: str) -> Optional[RefreshClaims]:
        payload = self._decode(token, "refresh")
        if not payload or not payload.get("deviceId"):
            return None
        try:
            issued_at = int(payload["iat"])
        except (KeyError, TypeError, ValueError):
            return None
        return RefreshClaims(user_id=payload["sub"], device_id=payload["deviceId"], issued_at=issued_at)


def now_ts() -> int:
    return int(time.time())


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_optional_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    tokens: TokenService = Depends(get_token_service),
) -> Optional[str]:
    """Viewer identity for public endpoints; invalid tokens read as anonymous."""
    if not credentials or credentials.scheme.lower() != "bearer":
        return None
    return tokens.verify_access_token(credentials.credentials)


def require_user_id(user_id: Optional[str] = Depends(get_optional_user_id)) -> str:
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user_id


def require_refresh_claims(request: Request, tokens: TokenService = Depends(get_token_service)) -> RefreshClaims:
    token = request.cookies.get(tokens.settings.REFRESH_COOKIE_NAME)
    claims = tokens.verify_refresh_token(token) if token else None
    if not claims:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return claims


def require_admin(request: Request, credentials: Optional[HTTPBasicCredentials] = Depends(_basic)) -> None:
    settings: Settings = request.app.state.settings
    if credentials:
        user_ok = secrets.compare_digest(credentials.username.encode(), settings.BASIC_AUTH_USERNAME.encode())
        password_ok = secrets.compare_digest(credentials.password.encode(), settings.BASIC_AUTH_PASSWORD.encode())
        if user_ok and password_ok:
            return
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Basic"},
    )
