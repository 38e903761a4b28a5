"""Core library: configuration, errors, input models, and the file tools.

Primary namespaces:
- ``steady_hands.lib.editing`` for read tracking and the edit engine.
- ``steady_hands.lib.meta`` for path-safe filesystem tooling.
"""
