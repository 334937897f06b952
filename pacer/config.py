from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv
load_dotenv()


class Settings(BaseSettings):
    """Pacer settings, read from the environment (and .env)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: str = Field(default="sqlite:///./pacer.db")

    # Scheduling
    default_timezone: str = "UTC"
    lookahead_days: int = Field(default=1, ge=1)
    default_reminder_minutes: int = Field(default=30, ge=0)
    dispatch_batch_size: int = Field(default=100, ge=1)
    dispatch_interval_seconds: int = Field(default=60, ge=1)
    delivery_timeout_seconds: float = Field(default=10.0, gt=0)
    delivery_workers: int = Field(default=4, ge=1)
    retention_days: int = Field(default=7, ge=0)
    retention_inclusive: bool = False
    max_retries: int = Field(default=3, ge=0)
    scheduler_enabled: bool = False

    # Delivery (Mailgun)
    mailgun_api_key: Optional[str] = None
    mailgun_domain: Optional[str] = None
    mailgun_base_url: str = "https://api.mailgun.net"
    mail_from: str = "Lesson Pacer <noreply@pacer.local>"
    web_app_url: str = "http://localhost:3000"

    # Auth
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    agent_api_key: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


settings = get_settings()
engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def reset_db():
    Base.metadata.drop_all(bind=engine)
    create_db()


def create_db():
    # Table registration happens on model import.
    import pacer.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
