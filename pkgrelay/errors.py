"""Shared error base for pkgrelay.

Every failure raised by the dispatch core derives from ``RelayError`` so
callers can catch the whole family at once.  The concrete error types live
beside the code that raises them.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for all pkgrelay errors."""
