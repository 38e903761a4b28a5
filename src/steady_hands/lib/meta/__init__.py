"""Shared meta-layer utilities used across ``steady_hands.lib``.

The ``meta`` namespace holds reusable infrastructure helpers that are not
tied to the edit engine. It currently exports:
- ``tools`` for path-safe filesystem operations.
"""

from steady_hands.lib.meta import tools

__all__ = ["tools"]
