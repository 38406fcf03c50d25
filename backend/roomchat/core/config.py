from __future__ import annotations

import os
from functools import lru_cache


class Settings:
    """Application configuration exposed via lazy singleton."""

    def __init__(self) -> None:
        default_db = "sqlite:///./dev.db"
        self.database_url = os.getenv("DATABASE_URL", default_db)
        self.test_database_url = os.getenv("TEST_DATABASE_URL")
        self.app_name = "Roomchat"

        self.jwt_secret = os.getenv("JWT_SECRET", "dev_secret")
        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.jwt_expires_minutes = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

        self.default_room = os.getenv("DEFAULT_ROOM", "General")
        self.cors_origins = [
            origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
        ]
        self.socketio_path = os.getenv("SOCKETIO_PATH", "socket.io")

        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.log_file = os.getenv("LOG_FILE")
        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = int(os.getenv("PORT", "4000"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
