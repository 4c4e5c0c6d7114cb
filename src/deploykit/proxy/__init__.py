"""Reverse proxy configuration."""

from .configurator import ProxyConfigurator

__all__ = ["ProxyConfigurator"]
