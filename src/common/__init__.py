"""Shared configuration and logging helpers."""

from .settings import Settings, get_settings, configure_logging

__all__ = [
    'Settings',
    'get_settings',
    'configure_logging',
]
