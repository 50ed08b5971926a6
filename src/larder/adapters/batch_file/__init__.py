"""Batch file reading and writing."""

from __future__ import annotations

from .loader import CURRENT_VERSION, parse_batch, read_batch, write_batch

__all__ = ["CURRENT_VERSION", "parse_batch", "read_batch", "write_batch"]
