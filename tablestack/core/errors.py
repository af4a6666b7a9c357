"""
Error types raised by the stacking engine.

All fatal conditions derive from StackingError so callers (the CLI, tests)
can catch one base class. Coercion problems are not exceptions; they are
collected as CoercionWarning records (see schema_coercer.py).
"""

from __future__ import annotations


class StackingError(Exception):
    """Base class for fatal stacking failures."""


class ConfigurationError(StackingError):
    """Run cannot start: no input files, or more workers than cores."""


class ClassificationError(StackingError):
    """A file's table name has no entry in the table-type dictionary."""

    def __init__(self, file_name: str, table_name: str | None = None):
        self.file_name = file_name
        self.table_name = table_name
        if table_name:
            msg = f"table '{table_name}' of file {file_name} is not in the table-type dictionary"
        else:
            msg = f"could not find a table name in file name {file_name}"
        super().__init__(msg)


class MergeError(StackingError):
    """A table's file set could not be stacked into one table."""

    def __init__(self, table_name: str, reason: str):
        self.table_name = table_name
        self.reason = reason
        super().__init__(f"failed to stack table '{table_name}': {reason}")
