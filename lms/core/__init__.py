"""
LMS Backend - Core Module

This module contains configuration, database setup, and security utilities.
"""

from lms.core.config import get_settings, settings
from lms.core.database import Base, get_db, get_engine

__all__ = ["settings", "get_settings", "Base", "get_db", "get_engine"]
