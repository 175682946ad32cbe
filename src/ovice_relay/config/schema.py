"""Pydantic models for configuration schema."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MattermostConfig(BaseModel):
    """Mattermost server connection configuration."""

    url: str
    token: str
    bot_token: str | None = None
    timeout: float = Field(10.0, gt=0.0, le=300.0, description="HTTP timeout in seconds")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate the server URL scheme and drop any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Mattermost URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("token")
    @classmethod
    def validate_token(cls, v: str) -> str:
        """Reject empty access tokens."""
        if not v.strip():
            raise ValueError("Mattermost token must not be empty")
        return v


class ProfileImageConfig(BaseModel):
    """Bot profile image configuration."""

    path: Path = Path("assets/profile.png")
    required: bool = True


class BotConfig(BaseModel):
    """Bot account configuration."""

    username: str = "ovice"
    display_name: str = "oVice"
    description: str = "A bot account created by the oVice plugin."
    profile_image: ProfileImageConfig = ProfileImageConfig()

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Validate Mattermost username format."""
        from ..utils.security import validate_username

        if not validate_username(v):
            raise ValueError(
                f"Invalid bot username: {v}. Expected 3-22 lowercase characters "
                "starting with a letter"
            )
        return v


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "127.0.0.1"
    port: int = Field(8080, ge=1, le=65535)
    path: str = "/webhook"

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Require an absolute route path."""
        if not v.startswith("/"):
            raise ValueError("Webhook path must start with /")
        return v


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    path: Path = Path("/var/log/ovice-relay/relay.log")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: FileLoggingConfig = FileLoggingConfig()


class RelayConfig(BaseSettings):
    """Root configuration for the oVice relay."""

    mattermost: MattermostConfig
    bot: BotConfig = BotConfig()
    server: ServerConfig = ServerConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
    )
