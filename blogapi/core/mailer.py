import logging
from typing import Optional

import httpx

from blogapi.core.config import Settings

logger = logging.getLogger(__name__)


class EmailManager:
    """Sends account emails through an HTTP mail API.

    If ``MAIL_API_URL`` is not configured, delivery is disabled: messages are
    logged and reported as sent.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    async def send(self, to: str, subject: str, html: str) -> bool:
        if not self.settings.MAIL_API_URL:
            logger.info("Mail delivery disabled; would send %r to %s", subject, to)
            return True
        headers = {}
        if self.settings.MAIL_API_KEY:
            headers["Authorization"] = f"Bearer {self.settings.MAIL_API_KEY}"
        data = {"from": self.settings.MAIL_FROM, "to": [to], "subject": subject, "html": html}
        try:
            async with httpx.AsyncClient(timeout=5, transport=self._transport) as client:
                r = await client.post(self.settings.MAIL_API_URL, json=data, headers=headers)
                r.raise_for_status()
                return True
        except httpx.HTTPError as exc:
            logger.warning("Mail delivery to %s failed: %s", to, exc)
            return False

    async def send_confirmation_code(self, email: str, login: str, code: str) -> bool:
        link = f"{self.settings.FRONTEND_URL}/confirm-email?code={code}"
        html = (
            f"<h1>Thanks for your registration, {login}</h1>"
            f"<p>To finish registration please follow the link below:"
            f" <a href='{link}'>complete registration</a></p>"
        )
        return await self.send(email, "Confirm your email", html)

    async def send_password_recovery_code(self, email: str, login: str, code: str) -> bool:
        link = f"{self.settings.FRONTEND_URL}/password-recovery?recoveryCode={code}"
        html = (
            f"<h1>Password recovery for {login}</h1>"
            f"<p>To finish password recovery please follow the link below:"
            f" <a href='{link}'>recovery password</a></p>"
        )
        return await self.send(email, "Password recovery", html)
