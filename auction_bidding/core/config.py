"""
Application Configuration
"""
from typing import List, Optional
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # App
    APP_NAME: str = "Auction Bidding Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite:///./auction_bidding.db"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 30
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600

    # Redis
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    # Lock
    LOCK_EXPIRE_MS: int = 3000  # milliseconds
    LOCK_RETRY_DELAY: float = 0.02  # seconds
    LOCK_MAX_RETRIES: int = 50

    # Bidding
    BID_MAX_ATTEMPTS: int = 3
    MIN_BID_FLOOR: float = 1.0
    DEFAULT_AD_LIFE_DAYS: int = 7

    # Queues
    NOTIFICATION_QUEUE_KEY: str = "notifications:queue"
    EXPIRY_QUEUE_KEY: str = "auction:expiry_jobs"
    WORKER_POLL_INTERVAL: float = 1.0  # seconds
    EXPIRY_BATCH_SIZE: int = 50

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    LOG_FILE: Optional[str] = None

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
