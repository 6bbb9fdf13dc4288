"""Exceptions raised by the usage tracker."""

from __future__ import annotations


class StorageUnavailable(RuntimeError):
    """The session database could not be opened or initialized."""
