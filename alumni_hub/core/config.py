# alumni_hub/core/config.py
"""Application configuration using Pydantic."""
from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    database_url: str
    jwt_secret_key: str
    jwt_algorithm: str = 'HS256'

    app_name: str = 'AlumniHub - Alumni Portal'
    app_version: str = '1.0.0'
    environment: str = 'development'
    log_level: str = 'info'
    allowed_origins: List[str] = ['*']

    api_url: str = 'http://localhost:8000'
    frontend_url: str = 'http://localhost:3000'

    # Pool sizing is ignored for sqlite URLs
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # Outbound email; sending is skipped when smtp_host is unset
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    email_from: Optional[str] = None

    upload_dir: str = 'uploads'
    max_attachment_size: int = 10 * 1024 * 1024
    max_attachments: int = 5
    max_avatar_size: int = 5 * 1024 * 1024

    delete_for_everyone_window_minutes: int = 15

    model_config = {
        'env_file': '.env',
        'extra': 'ignore'
    }

settings = Settings()
