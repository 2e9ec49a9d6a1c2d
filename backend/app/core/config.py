"""
Settings access point used by the rest of the application.
"""
from app.core.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
