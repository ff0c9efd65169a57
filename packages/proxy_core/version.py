"""Advertised proxy server version."""

APP_VERSION = "0.1.0"
