"""
Clisage CLI Builder

Copyright (c) 2025 rtj.dev LLC.
Licensed under the MIT License. See LICENSE file for details.
"""

import logging

from .assembler import CommandAssembler
from .catalog import CommandCatalog
from .clisage import Clisage
from .config import loader, resolve_spec
from .execution import ExecutionSession
from .filtering import FilterEngine
from .focus import FocusController
from .values import ValueStore

logger = logging.getLogger("clisage")


__all__ = [
    "Clisage",
    "CommandAssembler",
    "CommandCatalog",
    "ExecutionSession",
    "FilterEngine",
    "FocusController",
    "ValueStore",
    "loader",
    "resolve_spec",
]
