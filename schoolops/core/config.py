from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Day of month on which each monthly fee falls due.
    fee_due_day: int = Field(10, alias="FEE_DUE_DAY", ge=1, le=28)
    receipt_prefix: str = Field("RCP", alias="RECEIPT_PREFIX")

    cors_origins: Optional[str] = Field(None, alias="CORS_ORIGINS")

    # Create missing tables on startup (local development; production uses migrations).
    create_tables: bool = Field(False, alias="CREATE_TABLES")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
