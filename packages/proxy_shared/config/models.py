"""Settings models for the proxy process.

Process-wide sections (``logging``, ``http``) are typed here. Component
sections stay raw under ``components.<kind>.<name>`` until the owning
component validates them against its own model.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "rgb-proxy" / "proxy.yaml"

COMPONENT_KINDS = ("service", "substrate")

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
ServerLogLevel = Literal["critical", "error", "warning", "info", "debug", "trace"]


class LoggingSettings(BaseModel):
    level: LogLevel = "INFO"
    json_output: bool = True
    service: str = "rgb-proxy"
    environment: str = "dev"


class HttpSettings(BaseModel):
    """Where the JSON-RPC and REST surfaces listen."""

    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    log_level: ServerLogLevel = "info"


class ComponentsSettings(BaseModel):
    """Raw per-component sections keyed by kind, then component name."""

    model_config = ConfigDict(extra="forbid")

    service: dict[str, dict[str, Any]] = Field(default_factory=dict)
    substrate: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _require_grouped_keys(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        for key in value:
            kind, separator, name = str(key).partition("_")
            if separator and kind in COMPONENT_KINDS:
                raise ValueError(
                    f"components.{key} is invalid; use components.{kind}.{name} instead"
                )
        return value

    def section(self, component_id: str) -> dict[str, Any]:
        """Return a copy of the raw section for ``<kind>_<name>``."""
        kind, separator, name = component_id.partition("_")
        if not separator or kind not in COMPONENT_KINDS:
            raise ValueError(f"unknown component id: {component_id}")
        return dict(getattr(self, kind).get(name, {}))


class ProxySettings(BaseSettings):
    """Root settings: init kwargs, then ``PROXY_*`` env, then YAML, then defaults."""

    model_config = SettingsConfigDict(
        env_prefix="PROXY_",
        env_nested_delimiter="__",
        extra="ignore",
        nested_model_default_partial_update=True,
        yaml_file=DEFAULT_CONFIG_PATH,
        yaml_file_encoding="utf-8",
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    components: ComponentsSettings = Field(default_factory=ComponentsSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, YamlConfigSettingsSource(settings_cls)


ComponentSettingsT = TypeVar("ComponentSettingsT", bound=BaseModel)


def resolve_component_settings(
    *,
    settings: ProxySettings,
    component_id: str,
    model: type[ComponentSettingsT],
) -> ComponentSettingsT:
    """Validate one component's raw section against its settings model."""
    return model.model_validate(settings.components.section(component_id))
