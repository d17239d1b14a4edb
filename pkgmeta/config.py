"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Constructor arguments
  2. Environment variables  (PKGMETA__HTTP__TIMEOUT=10)
  3. pkgmeta.yaml           (searched in cwd, then ~/.config/pkgmeta/)
  4. Hardcoded defaults

The config file is optional; every field has a default.
"""

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from pkgmeta.http import DEFAULT_USER_AGENT


def _find_config_file() -> Optional[str]:
    """Return the path of the first pkgmeta.yaml found, or None."""
    candidates = [
        Path("pkgmeta.yaml"),
        Path.home() / ".config" / "pkgmeta" / "pkgmeta.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class HttpSettings(_Section):
    timeout: float = Field(default=30.0, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    retries: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=1.0, ge=0)


class CacheSettings(_Section):
    search_ttl_minutes: float = Field(default=15, gt=0)
    metadata_ttl_minutes: float = Field(default=15, gt=0)
    # Homebrew full formula/cask catalogs
    catalog_ttl_minutes: float = Field(default=60, gt=0)


class RefreshSettings(_Section):
    package_delay: float = Field(default=0.1, ge=0)
    max_logged_errors: int = Field(default=5, ge=1)


class ValidationSettings(_Section):
    api_delay: float = Field(default=0.05, ge=0)
    script_delay: float = Field(default=0.2, ge=0)
    url_delay: float = Field(default=0.1, ge=0)
    url_retries: int = Field(default=2, ge=1)
    report_path: str = "validation-errors-detailed.json"


class LoggingSettings(_Section):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["console", "json"] = "console"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: PKGMETA__CACHE__SEARCH_TTL_MINUTES=5
        env_prefix="PKGMETA__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
        extra="forbid",
    )

    http: HttpSettings = HttpSettings()
    cache: CacheSettings = CacheSettings()
    refresh: RefreshSettings = RefreshSettings()
    validation: ValidationSettings = ValidationSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls),
        )
