"""Application configuration module.

- **settings.py**: Environment-based settings (Pydantic BaseSettings)
  - Database URL, admin route prefix and role, request/response blacklists
  - Loaded from .env file via pydantic-settings
"""
from adminrest.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
