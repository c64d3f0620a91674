# src/zapforge/core/config.py
"""
Configuration schema and loading for zapforge.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings and parsed command-line arguments are frozen (immutable) after
construction.
"""

import os
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from zapforge import __version__
from zapforge.contracts.enums import Environment

# Files shipped inside the package: default schema, metadata and templates.
RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"


def _expand_user(value: Path | None) -> Path | None:
    if value is None:
        return None
    return value.expanduser()


class StoreSettings(BaseModel):
    """Persistent metadata store configuration."""

    model_config = {"frozen": True}

    path: Path = Field(
        default=Path("~/.zap/zap.sqlite"),
        validate_default=True,
        description="SQLite file holding the metadata store",
    )
    schema_file: Path = Field(
        default=RESOURCES_DIR / "zap-schema.sql",
        description="SQL script that defines the store schema",
    )
    schema_version: str = Field(
        default=__version__,
        description="Schema version this build requires; a store recorded with another version is rejected",
    )

    @field_validator("path", "schema_file")
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        return v.expanduser()


class MetadataSettings(BaseModel):
    """Default domain metadata (cluster library) location."""

    model_config = {"frozen": True}

    properties_file: Path = Field(
        default=RESOURCES_DIR / "zcl" / "zcl.properties",
        description="Properties file describing the cluster library",
    )

    @field_validator("properties_file")
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        return v.expanduser()


class TemplateSettings(BaseModel):
    """Default generation template manifest."""

    model_config = {"frozen": True}

    manifest_file: Path = Field(
        default=RESOURCES_DIR / "templates" / "gen-templates.json",
        description="JSON manifest listing generation templates",
    )

    @field_validator("manifest_file")
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        return v.expanduser()


class ServerSettings(BaseModel):
    """HTTP server binding used in normal mode."""

    model_config = {"frozen": True}

    host: str = Field(default="127.0.0.1", description="Interface to bind")
    port: int = Field(default=9070, ge=0, le=65535, description="Port to bind, 0 for an ephemeral port")


class LoggingSettings(BaseModel):
    """Log output configuration."""

    model_config = {"frozen": True}

    file: Path | None = Field(
        default=Path("~/.zap/zap.log"),
        validate_default=True,
        description="Log file receiving JSON records, None to disable",
    )
    json_output: bool = Field(default=False, description="Render console logs as JSON")

    @field_validator("file", mode="before")
    @classmethod
    def empty_means_disabled(cls, v: Any) -> Any:
        if v == "":
            return None
        return v

    @field_validator("file")
    @classmethod
    def expand_user(cls, v: Path | None) -> Path | None:
        return _expand_user(v)


class ForgeSettings(BaseModel):
    """Top-level zapforge configuration.

    All settings are validated and frozen after construction.
    """

    model_config = {"frozen": True}

    environment: Environment = Field(
        default=Environment.PRODUCTION,
        description="development enables DEBUG logging by default",
    )
    store: StoreSettings = Field(default_factory=StoreSettings)
    metadata: MetadataSettings = Field(default_factory=MetadataSettings)
    templates: TemplateSettings = Field(default_factory=TemplateSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT


class Arguments(BaseModel):
    """Parsed command-line arguments. Read-only after parsing."""

    model_config = {"frozen": True}

    commands: tuple[str, ...] = Field(default=(), description="Positional command tokens")
    output: Path | None = Field(default=None, description="Generation output directory")
    template: Path | None = Field(default=None, description="Template directory override")
    zcl_properties: Path | None = Field(default=None, description="Metadata properties file override")
    http_port: int | None = Field(default=None, ge=0, le=65535, description="Server port override")
    no_ui: bool = Field(default=False, description="Run the server without opening a window")
    show_url: bool = Field(default=False, description="Print the server url on stdout when headless")
    ui_mode: str | None = Field(default=None, description="UI mode passed to the window")
    clear_db: bool = Field(default=False, description="Move the existing store aside before starting")

    @field_validator("output", "template", "zcl_properties")
    @classmethod
    def expand_user(cls, v: Path | None) -> Path | None:
        return _expand_user(v)

    @property
    def ui_enabled(self) -> bool:
        return not self.no_ui

    def properties_file(self, settings: ForgeSettings) -> Path:
        """Metadata properties file: the override wins over the configured default."""
        if self.zcl_properties is not None:
            return self.zcl_properties
        return settings.metadata.properties_file

    def port(self, settings: ForgeSettings) -> int:
        """Server port: the override wins over the configured default."""
        if self.http_port is not None:
            return self.http_port
        return settings.server.port


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            default = match.group(2)
            if default is not None:
                return default
            # No env var and no default - keep original
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lower_keys(value: Any) -> Any:
    """Dynaconf upper-cases nested keys loaded from env vars; Pydantic wants lowercase."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def load_settings(config_path: Path | None = None) -> ForgeSettings:
    """Load settings from an optional YAML file with environment variable overrides.

    Precedence (highest first):
    1. Environment variables (ZAPFORGE_*), nested keys with double underscore,
       e.g. ZAPFORGE_STORE__PATH
    2. Config file, when given
    3. Defaults from the Pydantic schema

    The legacy ``DEV`` environment variable selects the development
    environment unless ``environment`` is configured explicitly.

    Args:
        config_path: Path to YAML configuration file, or None for env/defaults only

    Returns:
        Validated ForgeSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config_path is given but doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="ZAPFORGE",
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = _expand_env_vars(raw_config)

    if "environment" not in raw_config and os.environ.get("DEV"):
        raw_config["environment"] = Environment.DEVELOPMENT

    return ForgeSettings(**raw_config)
