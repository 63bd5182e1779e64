"""Top-level package for the Nashville housing cleaner."""
from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    "cleaning",
    "core",
    "ingestion",
]
