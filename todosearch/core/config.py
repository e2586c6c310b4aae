from functools import lru_cache

from fastapi import Depends
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Annotated


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./todos.db"
    database_echo: bool = False
    create_tables: bool = True

    search_url: str = "http://localhost:9200"
    search_index_name: str = "todo-comments"
    search_retry_on_conflict: int = 5  # concurrent comment appends on one todo
    search_request_timeout: float = 10.0

    redis_dsn: str | None = "redis://localhost:6379/0"
    l1_maxsize: int = 2048
    l1_ttl_seconds: int = 60  # default L1 TTL
    l2_ttl_seconds: int = 300  # default Redis TTL
    cache_namespace: str = "todocache:"
    redis_pool_size: int = 5

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


SettingsDep = Annotated[Settings, Depends(get_settings)]
