"""
Infrastructure package - unified entry points for core services.

This package provides standardized, centralized access to:
- Database (db, utcnow)
- Logging (configure_logging, init_logging, get_logger)
"""

from trustnet.infra.db import db, utcnow
from trustnet.infra.log import configure_logging, init_logging, get_logger

__all__ = [
    "db",
    "utcnow",
    "configure_logging",
    "init_logging",
    "get_logger",
]
