"""Layered settings for the proxy process and its components."""

from .loader import load_settings
from .models import (
    COMPONENT_KINDS,
    DEFAULT_CONFIG_PATH,
    ComponentsSettings,
    HttpSettings,
    LoggingSettings,
    ProxySettings,
    resolve_component_settings,
)

__all__ = [
    "COMPONENT_KINDS",
    "DEFAULT_CONFIG_PATH",
    "ComponentsSettings",
    "HttpSettings",
    "LoggingSettings",
    "ProxySettings",
    "load_settings",
    "resolve_component_settings",
]
