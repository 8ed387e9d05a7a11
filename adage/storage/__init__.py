"""
Entity storage for the ADAGE engine.
"""

from .repository import InMemoryRepository, Repository

__all__ = ["Repository", "InMemoryRepository"]
