"""Diarist — a personal journal engine.

Durable one-file-per-entry storage, stable identities, substring search and
an autosave coordinator that shares the manual save path.
"""

__version__ = "0.1.0"
