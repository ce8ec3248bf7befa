"""Exception types raised by the analytics core."""

from __future__ import annotations


class InvalidInputError(TypeError):
    """Input is structurally unusable (e.g. ``issues`` is not an iterable of issues).

    Missing fields and numeric edge cases never raise; they resolve to
    defaults. This error is reserved for inputs no default can repair.
    """
