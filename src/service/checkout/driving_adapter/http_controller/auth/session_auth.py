"""
Buyer identity for checkout requests

Sessions are issued by the auth service as HS256 JWTs in the `session`
cookie. Checkout never requires one: a missing or invalid cookie is a guest.
"""

from typing import Optional

from fastapi import Request
import jwt

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


class SessionAuth:
    def __init__(self) -> None:
        self.secret = settings.SECRET_KEY.get_secret_value()
        self.algorithm = settings.ALGORITHM
        self.cookie_name = settings.SESSION_COOKIE_NAME

    def decode_user_id(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError as e:
            Logger.base.warning(f'🔐 [SESSION] Invalid session cookie, treating as guest: {e}')
            return None

        user_id = payload.get('user_id') or payload.get('sub')
        return str(user_id) if user_id else None

    def user_id_from_request(self, request: Request) -> Optional[str]:
        return self.decode_user_id(request.cookies.get(self.cookie_name))
