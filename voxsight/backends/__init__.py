"""
Inference backends for voxsight.

Kept in a separate module so post processing stays importable without an
inference runtime installed.
"""

from __future__ import annotations

__all__ = []
