from pathlib import Path
from typing import Dict, List, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Seatflow'
    VERSION: str = '0.1.0'
    DEBUG: bool = False

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = []

    @field_validator('BACKEND_CORS_ORIGINS', mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and not v.startswith('['):
            return [i.strip() for i in v.split(',') if i.strip()]
        elif isinstance(v, list):
            return v
        return []

    # Record store backend: in-process dict or Kvrocks (Redis protocol)
    STORE_BACKEND: Literal['memory', 'kvrocks'] = 'memory'

    # Kvrocks Configuration
    KVROCKS_HOST: str = 'localhost'
    KVROCKS_PORT: int = 6666
    KVROCKS_DB: int = 0
    KVROCKS_PASSWORD: str = ''
    KVROCKS_KEY_PREFIX: str = ''
    REDIS_DECODE_RESPONSES: bool = True

    # Kvrocks Connection Pool Configuration
    KVROCKS_POOL_MAX_CONNECTIONS: int = 50
    KVROCKS_POOL_SOCKET_TIMEOUT: int = 5  # seconds
    KVROCKS_POOL_SOCKET_CONNECT_TIMEOUT: int = 5  # seconds
    KVROCKS_POOL_HEALTH_CHECK_INTERVAL: int = 30  # seconds

    # Retry budgets (attempts, not seconds)
    CLAIM_MAX_RETRIES: int = 5
    ALLOCATION_MAX_RETRIES: int = 3
    BOOKING_MAX_RETRIES: int = 5

    # Change notifier: per-subscriber buffer before the subscriber is cut off as lagged
    NOTIFIER_STREAM_BUFFER_SIZE: int = 100

    # Seat scoring policy
    SEAT_SCORING_WEIGHTS: Dict[str, float] = {
        'front_row': 2.0,
        'aisle': 1.5,
        'near_exit': 1.0,
        'middle_of_row': 1.0,
        'back_row': 0.5,
    }
    RESERVED_FEATURE_PENALTY: float = 0.5

    @field_validator('CLAIM_MAX_RETRIES', 'ALLOCATION_MAX_RETRIES', 'BOOKING_MAX_RETRIES')
    @classmethod
    def at_least_one_attempt(cls, v: int) -> int:
        if v < 1:
            raise ValueError('retry budget must allow at least one attempt')
        return v


settings = Settings()  # type: ignore
