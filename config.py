from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    log_level: str = Field("info", alias="DIFFSCOPE_LOG_LEVEL")
    context_lines: int = Field(3, ge=0, alias="DIFFSCOPE_CONTEXT_LINES")
    repo_path: str = Field(".", alias="DIFFSCOPE_REPO_PATH")
    commit: str = Field("HEAD", alias="DIFFSCOPE_COMMIT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
