# cbt/core/config.py
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import PostgresDsn, computed_field


class Settings(BaseSettings):
    """
    Process configuration loaded from environment variables (and .env).
    System-wide exam behaviour such as shuffling lives in the database,
    see cbt.crud.crud_settings.
    """
    model_config = SettingsConfigDict(
        env_file=".env", env_ignore_case=True, extra="ignore"
    )

    PROJECT_NAME: str = "CBT Exam Backend"

    # --- Database ---
    POSTGRES_USER: str = "cbt"
    POSTGRES_PASSWORD: str = "cbt"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_DB: str = "cbt"
    POSTGRES_PORT: int = 5432
    # Full URL, wins over the POSTGRES_* parts (e.g. sqlite:///./cbt.db)
    DATABASE_URL: Optional[str] = None

    # --- Exam sessions ---
    SUBMIT_GRACE_SECONDS: int = 60

    # --- Passwords ---
    BCRYPT_ROUNDS: int = 10

    # --- Logging ---
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    @computed_field
    @property
    def DATABASE_URI(self) -> str:
        """
        SQLAlchemy connection URI.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        dsn = PostgresDsn.build(
            scheme="postgresql+psycopg2",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )
        return str(dsn)


settings = Settings()
