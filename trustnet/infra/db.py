"""
Unified database infrastructure module.

This module provides a single, standardized entry point for all database
operations across the engine. All models should import from here.
"""

from trustnet.database import db, utcnow

__all__ = ["db", "utcnow"]
