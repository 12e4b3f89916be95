"""
config.py - Cấu hình tập trung cho SSI server
"""
from typing import Optional
from pydantic_settings import BaseSettings


class SSISettings(BaseSettings):
    # Encryption at rest. None -> development fallback secret
    AES_SECRET: Optional[str] = None

    # Record store
    DATABASE_URL: str = "sqlite:///./ssi_feature_phone_sim.db"
    LIST_LIMIT: int = 50

    # Invitations
    INVITE_CODE_LENGTH: int = 5
    INVITE_CODE_MAX_ATTEMPTS: int = 10
    SINGLE_USE_INVITES: bool = False

    # Reject credentials / proof requests for unknown connections
    ENFORCE_CONNECTION_REFS: bool = False

    # Server
    MAX_BODY_BYTES: int = 2 * 1024 * 1024
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    class Config:
        env_file = ".env"  # Có thể load từ file .env


settings = SSISettings()
