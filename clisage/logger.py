# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""Global logger instance for Clisage."""
import logging

logger: logging.Logger = logging.getLogger("clisage")
