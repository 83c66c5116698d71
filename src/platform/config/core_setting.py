from typing import Annotated, List, Literal

import orjson
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from src.platform.constant.path import BASE_DIR, DEFAULT_SQLITE_PATH


_ENV_PATH = BASE_DIR / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (BASE_DIR / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Ticket Checkout Service'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production

    # Public base URL of this service (used to build the M-Pesa callback URL)
    APP_URL: str = 'http://localhost:8000'

    # Session cookie verification (tokens are issued by the auth service)
    SECRET_KEY: SecretStr = SecretStr('test_secret_key_change_in_production')
    ALGORITHM: str = 'HS256'
    SESSION_COOKIE_NAME: str = 'session'
    TRACKER_COOKIE_NAME: str = 'nak_tracker'

    # CORS: comma separated or a JSON list
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = []  # add your frontend URL here

    @field_validator('BACKEND_CORS_ORIGINS', mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and v.lstrip().startswith('['):
            v = orjson.loads(v)
        if isinstance(v, str):
            return [i.strip() for i in v.split(',') if i.strip()]
        elif isinstance(v, list):
            return v
        return []

    # Database (postgresql+asyncpg in production, sqlite+aiosqlite for local/test)
    DATABASE_URL: str = f'sqlite+aiosqlite:///{DEFAULT_SQLITE_PATH}'
    DB_POOL_SIZE: int = 10
    DB_POOL_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800
    DB_POOL_PRE_PING: bool = True
    SQLITE_BUSY_TIMEOUT_MS: int = 5000

    @property
    def DATABASE_URL_ASYNC(self) -> str:
        url = self.DATABASE_URL
        if url.startswith('sqlite://'):
            return url.replace('sqlite://', 'sqlite+aiosqlite://', 1)
        if url.startswith('postgresql://'):
            return url.replace('postgresql://', 'postgresql+asyncpg://', 1)
        if url.startswith('postgres://'):
            return url.replace('postgres://', 'postgresql+asyncpg://', 1)
        return url

    @property
    def IS_SQLITE(self) -> bool:
        return self.DATABASE_URL_ASYNC.startswith('sqlite+aiosqlite://')

    # Payment gateway
    PAYMENT_GATEWAY: Literal['daraja', 'mock'] = 'mock'
    MPESA_BASE_URL: str = 'https://api.safaricom.co.ke'
    MPESA_CONSUMER_KEY: str = ''
    MPESA_CONSUMER_SECRET: SecretStr = SecretStr('')
    MPESA_SHORTCODE: str = ''
    MPESA_PASSKEY: SecretStr = SecretStr('')
    MPESA_CALLBACK_SECRET: SecretStr = SecretStr('change_me_callback_secret')
    MPESA_TRANSACTION_TYPE: str = 'CustomerPayBillOnline'
    MPESA_TIMEOUT_SECONDS: float = 15.0
    MPESA_TIMEZONE: str = 'Africa/Nairobi'

    # Admission control
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_MAX_ATTEMPTS: int = 5

    # Checkout behaviour
    RECENT_ORDER_WINDOW_SECONDS: int = 180
    ORDER_COMMIT_MAX_ATTEMPTS: int = 3
    PENDING_ORDER_TTL_SECONDS: int = 900
    STALE_ORDER_SWEEP_INTERVAL_SECONDS: int = 60
    STALE_ORDER_SWEEP_ENABLED: bool = True

    # Client payment flow
    STATUS_POLL_INTERVAL_SECONDS: float = 3.0
    MAX_PAYMENT_RETRIES: int = 2

    @property
    def MPESA_CALLBACK_URL(self) -> str:
        secret = self.MPESA_CALLBACK_SECRET.get_secret_value()
        return f'{self.APP_URL.rstrip("/")}/api/mpesa-callback/{secret}'


settings = Settings()  # type: ignore
