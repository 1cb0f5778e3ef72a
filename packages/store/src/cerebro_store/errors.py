"""Storage-layer errors.

Kept in the store package so cerebro_store has no dependency on cerebro_core.
cerebro_core re-exports StorageError as part of its error taxonomy.
"""

from __future__ import annotations


class StorageError(Exception):
    """The durable store is unavailable, locked past its timeout, or corrupt."""
