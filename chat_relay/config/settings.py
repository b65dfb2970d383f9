"""Global relay settings"""

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Centralized configuration.
    Reads configs from env variables.
    """

    app_name: str = "Chat Relay"
    server_port: int = 5000

    db_name: str = "chat.db"

    # Comma separated list of allowed origins
    cors_origins: str = "*"

    log_level: str = "INFO"

    model_config = {"env_file": ".env"}

    @property
    def allowed_origins(self) -> List[str]:
        """Returns the parsed list of CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
