from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field, ConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./panel.db",
        description="Async URL of the key-value database"
    )

    SESSION_SECRET: str = Field(
        default="change-me",
        description="Secret used to sign the session cookie"
    )

    PANEL_NAME: str = "HydraPanel"
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    # Node agent
    AGENT_USERNAME: str = "Skyport"
    REINSTALL_TIMEOUT: float = 30.0
    REDEPLOY_TIMEOUT: float = 30.0
    EDIT_TIMEOUT: float = 10.0
    RENAME_TIMEOUT: float = 10.0

    # Fallbacks used when a stored limit is not a number
    DEFAULT_MEMORY: int = 512
    DEFAULT_CPU: int = 100

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    model_config = ConfigDict(
        env_file=".env"
    )

    @property
    def sync_database_url(self) -> str:
        """Same database, addressed through the blocking driver (table creation)."""
        return self.DATABASE_URL.replace("+aiosqlite", "")


@lru_cache
def get_settings() -> Settings:
    return Settings()
