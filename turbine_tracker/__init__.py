"""
Turbine Tracker.

Client-side indexer for the Turbine contract event log on Polygon:
incremental, resumable sync into a local database plus per-recipient
and daily statistics.
"""

__version__ = "1.0.0"
