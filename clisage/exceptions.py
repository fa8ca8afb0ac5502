# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Defines all custom exception classes used by Clisage.

Exception Hierarchy:
- ClisageError
    ├── SpecError
    ├── UnknownPathError
    ├── FlagValueError
    └── SessionStateError

`SpecError` is the only user-facing failure: it is raised while loading or
validating a command description and is reported once at startup. The other
exceptions signal programming-invariant violations inside the interactive session.
"""


class ClisageError(Exception):
    """Base exception for Clisage."""


class SpecError(ClisageError):
    """Exception raised when a command description is malformed or cannot be loaded."""


class UnknownPathError(ClisageError, KeyError):
    """Exception raised when a command path is unknown to the catalog or value store."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown path"


class FlagValueError(ClisageError):
    """Exception raised when a mutation does not fit a flag's fixed representation."""


class SessionStateError(ClisageError):
    """Exception raised on an illegal execution session transition."""
