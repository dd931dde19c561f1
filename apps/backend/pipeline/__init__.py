"""
Job extraction pipeline.

Turns fetched LIST and DETAIL pages into job links and normalized job
records: JSON-LD first, HTML heuristics as per-field fallback, sanitized
descriptions, validated output.
"""

__version__ = "1.0.0"
