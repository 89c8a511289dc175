"""
Errors shared by the core and the HTTP layer.

`main.py` maps these to status codes; services raise them without knowing
about FastAPI.
"""

from __future__ import annotations


class InvalidInput(ValueError):
    """
    The caller sent something the core refuses to act on.
    Raised before any write is attempted.
    """


class StoreUnavailable(RuntimeError):
    """
    Postgres did not answer (connection lost, timeout, statement cancelled).
    """
