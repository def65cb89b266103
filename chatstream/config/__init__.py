"""Configuration module."""

from .settings import Settings, settings, resolve_api_url

__all__ = ['Settings', 'settings', 'resolve_api_url']
