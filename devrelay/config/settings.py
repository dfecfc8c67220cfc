from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from devrelay.constants import TASK_PRIORITIES

# Load .env once at module import so every BaseSettings subclass sees the env vars
load_dotenv()


class ServerSettings(BaseSettings):
    """Server identity reported in handshakes and metadata. Env vars prefixed with SERVER_."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    name: str = "devrelay"
    version: str = "1.0.0"
    description: str = "MCP server that relays developer-assistant tool calls over SSE"


class GatewaySettings(BaseSettings):
    """HTTP / SSE boundary settings. Env vars prefixed with GATEWAY_ (port reads PORT)."""

    model_config = SettingsConfigDict(env_prefix="GATEWAY_", populate_by_name=True)

    host: str = "0.0.0.0"
    port: int = Field(3001, gt=0, le=65535, validation_alias="PORT")
    keepalive_seconds: float = Field(15.0, gt=0, le=300)


class ToolSettings(BaseSettings):
    """Tool handler settings. Env vars prefixed with TOOLS_.

    An empty tasks_dir / project_root / search_root disables the corresponding
    capability; the tools then fall back to text-only responses.
    """

    model_config = SettingsConfigDict(env_prefix="TOOLS_")

    tasks_dir: Path | None = Path("tasks")
    project_root: Path | None = Path(".")
    search_root: Path | None = Path(".")
    default_priority: str = "medium"
    strict_validation: bool = False
    shell_timeout_seconds: float = Field(5.0, gt=0, le=120)
    status_commit_limit: int = Field(10, gt=0, le=100)
    search_max_file_bytes: int = 512_000
    search_max_files: int = 5_000
    excerpt_lines: int = Field(40, gt=0)

    @field_validator("tasks_dir", "project_root", "search_root", mode="before")
    @classmethod
    def _empty_path_disables(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("default_priority")
    @classmethod
    def _validate_default_priority(cls, v: str) -> str:
        if v not in TASK_PRIORITIES:
            msg = f"TOOLS_DEFAULT_PRIORITY must be one of {TASK_PRIORITIES} (got '{v}')"
            raise ValueError(msg)
        return v


class GeocoderSettings(BaseSettings):
    """External geocoding endpoint. Env vars prefixed with GEOCODER_."""

    model_config = SettingsConfigDict(env_prefix="GEOCODER_")

    url: str = ""  # empty = validate_address not registered
    timeout_seconds: float = Field(10.0, gt=0, le=120)


class LoggingSettings(BaseSettings):
    """Logging output settings. Env vars prefixed with LOG_."""

    model_config = SettingsConfigDict(env_prefix="LOG_", populate_by_name=True)

    json_output: bool = Field(False, validation_alias="LOG_JSON")
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        normalized = v.strip().upper()
        if normalized not in allowed:
            msg = f"LOG_LEVEL must be one of {allowed} (got '{v}')"
            raise ValueError(msg)
        return normalized


class Settings(BaseSettings):
    """Root settings composing all sub-configurations."""

    model_config = SettingsConfigDict(extra="ignore")

    server: ServerSettings = Field(default_factory=ServerSettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    tools: ToolSettings = Field(default_factory=ToolSettings)
    geocoder: GeocoderSettings = Field(default_factory=GeocoderSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def get_settings() -> Settings:
    """Load and validate settings. Raises ValidationError on invalid values."""
    return Settings()
