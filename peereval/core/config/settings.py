from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    # Database settings
    DATABASE_URL: str = "sqlite:///./peereval.db"
    AUTO_CREATE_TABLES: bool = True

    # Set to False on deployments whose schema predates structured survey criteria
    SURVEY_CRITERIA_ENABLED: bool = True

    # JWT settings
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Password hashing cost factor
    BCRYPT_ROUNDS: int = 10

    # Password reset
    PASSWORD_RESET_TOKEN_EXPIRE_MINUTES: int = 60
    BASE_URL: str = "http://localhost:3000"

    # Email settings
    EMAIL_HOST: str = "smtp.gmail.com"
    EMAIL_PORT: int = 587
    EMAIL_HOST_USER: str = ""
    EMAIL_HOST_PASSWORD: str = ""
    EMAIL_USE_TLS: bool = True
    DEFAULT_FROM_EMAIL: str = "PeerEval <noreply@peereval.local>"

    # API settings
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "PeerEval API"
    DEBUG: bool = False
    CORS_ORIGINS: list = ["*"]

    # Rate limiting
    REDIS_URL: Optional[str] = None
    RATE_LIMIT_PER_MINUTE: int = 100

    # Logging
    LOG_DIR: str = "logs"

    class Config:
        env_file = ".env"
        case_sensitive = True

@lru_cache()
def get_settings() -> Settings:
    """
    Get settings instance with caching
    Returns:
        Settings instance
    """
    return Settings()
