"""Exceptions raised by the store for domain misuse.

Filesystem failures (permissions, disk full) are not wrapped: the
underlying ``OSError`` reaches the caller unchanged.
"""

from __future__ import annotations


class StoreError(Exception):
    pass
