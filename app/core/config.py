from functools import lru_cache

from dotenv import load_dotenv
from pydantic import model_validator
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    database_url: str | None = None
    db_user: str | None = None
    db_pass: str | None = None
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "taskManagement"
    db_echo: bool = False

    host: str = "0.0.0.0"
    port: int = 5000

    redis_dsn: str | None = None
    broadcast_channel: str = "taskUpdated"
    ws_send_timeout: float = 1.0

    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    @model_validator(mode="after")
    def resolve_database_url(self):
        """Build the URL from DB_* parts when DATABASE_URL is not given."""
        url = self.database_url
        if not url:
            credentials = ""
            if self.db_user:
                credentials = self.db_user
                if self.db_pass:
                    credentials += f":{self.db_pass}"
                credentials += "@"
            url = (
                f"postgresql+asyncpg://{credentials}"
                f"{self.db_host}:{self.db_port}/{self.db_name}"
            )
        # Ensure we use the asyncpg driver
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        self.database_url = url
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()

