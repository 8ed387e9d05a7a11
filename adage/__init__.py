"""
ADAGE - Adaptive Guideline Effectiveness Engine

Tracks how well stored guidelines perform in real projects, decides when a
guideline should evolve, validates evolved candidates through A/B tests, and
matches incoming error signals against a library of learned patterns.
"""

__version__ = "0.1.0"

# Configuration is available at top level for convenience
from adage.config import config

__all__ = ["config", "__version__"]
