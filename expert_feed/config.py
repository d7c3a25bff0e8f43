from pydantic import Field
from pydantic_settings import BaseSettings

VERSION = "1.0.0"


class Settings(BaseSettings):
    """Expert Feed configuration settings

    These settings can be configured via environment variables
    or .envrc files (loaded automatically by direnv).
    """

    service_name: str = "Expert Feed"
    service_version: str = VERSION

    debug: bool = Field(default=False, alias="DEBUG")

    # Server configuration
    expert_feed_host: str = Field(default="0.0.0.0", alias="EXPERT_FEED_HOST")
    expert_feed_port: int = Field(default=8004, alias="EXPERT_FEED_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Marketplace backend
    marketplace_api_url: str = Field(
        default="http://localhost:8000/api", alias="MARKETPLACE_API_URL"
    )
    marketplace_api_token: str = Field(default="", alias="MARKETPLACE_API_TOKEN")
    marketplace_api_timeout: float = Field(default=30.0, alias="MARKETPLACE_API_TIMEOUT")

    # Realtime channel; empty means derive from the API URL
    marketplace_socket_url: str = Field(default="", alias="MARKETPLACE_SOCKET_URL")

    # Sentry configuration
    sentry_dsn: str | None = Field(default=None, alias="EXPERT_FEED_SENTRY_DSN")

    model_config = {
        "env_file": ".envrc",
        "case_sensitive": False,
        "extra": "ignore",  # Ignore extra environment variables
    }

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Convert string environment variables to boolean for flags
        if isinstance(self.debug, str):
            self.debug = self.debug == "1"

    @property
    def socket_url(self) -> str:
        """Socket.IO server URL, falling back to the API host without /api"""
        if self.marketplace_socket_url:
            return self.marketplace_socket_url
        url = self.marketplace_api_url.rstrip("/")
        if url.endswith("/api"):
            url = url[: -len("/api")]
        return url


# Global settings instance
settings = Settings()
