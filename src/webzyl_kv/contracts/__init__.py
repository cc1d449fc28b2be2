"""Packaged JSON schemas for configuration and command output."""

from __future__ import annotations

from .validate import validate

__all__ = ["validate"]
