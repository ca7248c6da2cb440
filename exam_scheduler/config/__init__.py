"""
Configuration package for the exam scheduler.

Environment-driven settings loaded through pydantic-settings.
"""

from exam_scheduler.config.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
