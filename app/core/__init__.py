"""
Core infrastructure for the summons drafting service.

Shared components used across all modules:
- Configuration management
- Database connections and sessions
- Structured logging
"""

from app.core.config import settings
from app.core.database import get_db, init_database

__all__ = [
    'settings',
    'get_db',
    'init_database',
]
