from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # This server
    SERVER_NAME: str = "server1"
    SERVER_DISPLAY_NAME: str = ""
    WHITELIST_ENABLED: bool = True
    AUTO_ADD: bool = False
    BYPASS_SERVERS: str = "lobby,hub"

    # Pairing
    CODE_TTL_MINUTES: int = 30
    ACTIVATION_SERVERS: str = ""
    PAIRING_ACTOR: str = "ChatLink"

    # Cache / gate
    CACHE_TTL_SECONDS: int = 60
    CACHE_MAX_SIZE: int = 1000
    ACCESS_CHECK_TIMEOUT: float = 5.0

    # Background tasks
    HEARTBEAT_INTERVAL_SECONDS: int = 30
    CODE_SWEEP_INTERVAL_SECONDS: int = 300

    # Discord
    DISCORD_TOKEN: str = ""
    DISCORD_COMMAND_PREFIX: str = "!"

    # HTTP
    API_TOKEN: str = ""

    # DB
    DATABASE_URL: str = ""
    DB_DRIVER: str = "postgresql+asyncpg"
    DB_HOST: str = "db"
    DB_PORT: int = 5432
    DB_USER: str = "whitelist"
    DB_PASSWORD: str = "whitelist_password"
    DB_NAME: str = "whitelist"
    DB_POOL_SIZE: int = 4
    DB_MAX_OVERFLOW: int = 4
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_RECYCLE: int = 1800

    # App
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"{self.DB_DRIVER}://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def server_display_name(self) -> str:
        return self.SERVER_DISPLAY_NAME or self.SERVER_NAME

    @property
    def bypass_servers(self) -> set[str]:
        return {s.lower() for s in self.list_from_csv(self.BYPASS_SERVERS)}

    def list_from_csv(self, csv: str) -> list[str]:
        return [x.strip() for x in csv.split(",") if x.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
