"""Configuration schema using Pydantic."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings

LogLevel = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


class ShellConfig(BaseModel):
    """Shell adapter settings."""

    model_config = ConfigDict(extra="ignore")

    user_id: str = "1"
    user_name: str = "user"
    room: str = "shell"


class Config(BaseSettings):
    """Root configuration for herald."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, env_prefix="HERALD_", env_nested_delimiter="__")

    name: str = "Herald"
    alias: str | None = None
    adapter: str = "shell"
    scripts: list[str] = Field(default_factory=lambda: ["scripts"])
    log_level: LogLevel = "INFO"
    log_file: str | None = None
    shell: ShellConfig = Field(default_factory=ShellConfig)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value

    @field_validator("alias")
    @classmethod
    def _blank_alias_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value
