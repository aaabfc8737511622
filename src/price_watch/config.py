"""Service configuration read from environment variables."""
import os

from pydantic import BaseModel

_DEFAULT_DB_URL = "sqlite:///./price_watch.db"
_DEFAULT_HISTORY_URL = "https://api.coingecko.com/api/v3"


class Settings(BaseModel):
    """Runtime settings. Build with Settings.from_env() in production."""

    database_url: str = _DEFAULT_DB_URL
    sql_echo: bool = False

    token_price_url: str = ""
    coingecko_base_url: str = _DEFAULT_HISTORY_URL
    coingecko_coin_id: str = "amber"
    coingecko_api_key: str | None = None

    explorer_url: str = ""
    explorer_token: str = ""
    callback_url: str = ""

    push_transport: str = "log"  # fcm | log
    fcm_project_id: str = ""
    fcm_access_token: str = ""
    android_channel_name: str = "default"

    http_timeout_seconds: float = 10.0
    spot_refresh_seconds: float = 300.0
    history_refresh_seconds: float = 12 * 60 * 60.0
    alert_tick_seconds: float = 330.0
    keep_alive_seconds: float = 30.0
    keep_alive_retries: int = 6
    keep_alive_retry_seconds: float = 5.0

    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8001

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the process environment; unset variables keep defaults."""
        env_names = {
            "database_url": "DATABASE_URL",
            "sql_echo": "SQL_ECHO",
            "token_price_url": "TOKEN_PRICE_URL",
            "coingecko_base_url": "COINGECKO_BASE_URL",
            "coingecko_coin_id": "COINGECKO_COIN_ID",
            "coingecko_api_key": "COINGECKO_API_KEY",
            "explorer_url": "EXPLORER_URL",
            "explorer_token": "EXPLORER_TOKEN",
            "callback_url": "CALLBACK_URL",
            "push_transport": "PUSH_TRANSPORT",
            "fcm_project_id": "FCM_PROJECT_ID",
            "fcm_access_token": "FCM_ACCESS_TOKEN",
            "android_channel_name": "ANDROID_CHANNEL_NAME",
            "http_timeout_seconds": "HTTP_TIMEOUT_SECONDS",
            "spot_refresh_seconds": "SPOT_REFRESH_SECONDS",
            "history_refresh_seconds": "HISTORY_REFRESH_SECONDS",
            "alert_tick_seconds": "ALERT_TICK_SECONDS",
            "keep_alive_seconds": "KEEP_ALIVE_SECONDS",
            "keep_alive_retries": "KEEP_ALIVE_RETRIES",
            "keep_alive_retry_seconds": "KEEP_ALIVE_RETRY_SECONDS",
            "log_level": "LOG_LEVEL",
            "host": "HOST",
            "port": "PORT",
        }
        values = {
            field: os.environ[name]
            for field, name in env_names.items()
            if os.getenv(name) not in (None, "")
        }
        return cls.model_validate(values)
