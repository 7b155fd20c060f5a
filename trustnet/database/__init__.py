# -*- coding: utf-8 -*-
"""
Shared SQLAlchemy instance.

Models declare themselves on ``db.Model``; services receive ``db.session``.
"""
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every engine table stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


__all__ = ["db", "utcnow"]
