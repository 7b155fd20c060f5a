"""
Unified logging infrastructure module.

This module provides a single, standardized entry point for all logging
configuration across the engine.
"""

from trustnet.services.structured_logging import (
    configure_logging,
    init_logging,
    get_logger,
)

__all__ = ["configure_logging", "init_logging", "get_logger"]
