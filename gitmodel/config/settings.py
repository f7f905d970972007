"""Configuration settings models using Pydantic."""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class GitConfig(BaseModel):
    """Configuration for invoking the git executable."""

    binary: str = "git"
    timeout: Optional[float] = Field(default=30.0, gt=0)
    environment: dict[str, str] = Field(
        default_factory=lambda: {"LC_ALL": "C", "GIT_TERMINAL_PROMPT": "0"}
    )
    sha_length: Literal[40, 64] = 40
    log_delimiter: str = "\x1f"
    initial_branch: Optional[str] = None

    @field_validator("binary")
    @classmethod
    def validate_binary(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("binary cannot be empty")
        return v.strip()

    @field_validator("log_delimiter")
    @classmethod
    def validate_log_delimiter(cls, v: str) -> str:
        # argv entries cannot carry NUL and records are split on it
        if not v or "\0" in v or "\n" in v:
            raise ValueError("log_delimiter must be non-empty and free of NUL and newline")
        return v

    @field_validator("initial_branch")
    @classmethod
    def validate_initial_branch(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class Settings(BaseSettings):
    """Main package settings."""

    model_config = SettingsConfigDict(
        env_prefix="GITMODEL_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    git: GitConfig = Field(default_factory=GitConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Let GITMODEL_* variables override values loaded from YAML files."""
        return env_settings, init_settings, dotenv_settings, file_secret_settings
