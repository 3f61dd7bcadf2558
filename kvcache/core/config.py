from pydantic_settings import BaseSettings
from pydantic import Field


class CacheSettings(BaseSettings):
    # Storage Configuration
    db_path: str = Field(default=":memory:", alias="CACHE_DB_PATH")
    sql_echo: bool = Field(default=False, alias="CACHE_SQL_ECHO")

    # Remove expired items when the base handle closes
    gc_on_close: bool = Field(default=True, alias="CACHE_GC_ON_CLOSE")

    # Path to .env file (for loading env vars)
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        populate_by_name = True
        extra = "ignore"


# Instantiate the settings
config = CacheSettings()
