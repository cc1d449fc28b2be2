"""Key-value store adapters."""

from __future__ import annotations

from .base import KVStore, parse_key_listing
from .wrangler import WranglerStore

__all__ = ["KVStore", "WranglerStore", "parse_key_listing"]
