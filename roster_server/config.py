# roster_server/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

# Base directory of the project (one level above the package)
SERVER_DIR = Path(__file__).parent.parent.resolve()


class Settings(BaseSettings):
    """
    Server configuration, read from environment variables or a server.env file.
    """

    model_config = SettingsConfigDict(
        env_file="server.env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Network Settings ---
    SERVER_HOST: str = "127.0.0.1"
    SERVER_PORT: int = 8888

    # --- Database Settings ---
    DATABASE_PATH: Path = SERVER_DIR / "live_roster.db"

    # --- Logging Settings ---
    LOG_LEVEL: str = "INFO"

    # --- Presence Settings ---
    # Name of the shared broadcast group every viewer and participant joins.
    LIVE_CHANNEL: str = "live users"

    # --- Transport Security ---
    RSA_KEY_SIZE: int = 2048


settings = Settings()
