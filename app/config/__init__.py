"""
Configuration package for the dine-in coordination service.

This package contains the configuration modules for the application:
environment settings and logging.
"""

from app.config.settings import Settings, get_settings

__all__ = ['Settings', 'get_settings']
