# fleetdesk/core/errors.py

"""
Exceptions raised by the import engine.

Only DirectoryLoadError and SourceFormatError ever reach the caller of a run;
everything else is converted into a per-row ImportRowError.
"""


class RowValidationError(Exception):
    """A row is missing a required field or carries an unusable value."""


class StoreError(Exception):
    """A record store call failed (constraint violation, timeout, connectivity)."""


class DirectoryLoadError(Exception):
    """The owner directory could not be loaded, so the run cannot start."""


class SourceFormatError(ValueError):
    """An uploaded file could not be read as a table."""
