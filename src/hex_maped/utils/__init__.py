"""
Utility helpers for hex_maped.
"""

from .logging_config import CSVFormatter, ColoredFormatter, setup_logging

__all__ = ["CSVFormatter", "ColoredFormatter", "setup_logging"]
