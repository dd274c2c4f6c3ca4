"""
Database models for the visitor tracker.

Only the visitor row is persisted. Geolocation records and client
fingerprints are transient and live in the schemas package.
"""

from .visitor import Visitor

__all__ = ["Visitor"]
