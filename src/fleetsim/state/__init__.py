"""State/store layer.

This package is the single source of truth for tracker locations, paths
and history, and defines the events emitted when that state changes.
"""
