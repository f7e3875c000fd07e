"""
Synthetic Fallbacks

Deterministic stand-ins served when every real provider failed. Nothing in
this package raises for missing or malformed inputs.
"""

from .contributions import classify_by_keywords, suggested_agents
from .fundamentals import derive_sentiment, generate_synthetic_fundamentals, generate_synthetic_sentiment
from .perspectives import generate_synthetic_perspective

__all__ = [
    "classify_by_keywords",
    "derive_sentiment",
    "generate_synthetic_fundamentals",
    "generate_synthetic_perspective",
    "generate_synthetic_sentiment",
    "suggested_agents",
]
