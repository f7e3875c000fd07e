"""
Services

Consumer-facing operations composed from the cache and the provider chains.
"""

from .agent_service import AgentService
from .analysis_service import AnalysisService
from .cache_warmup import CacheWarmupService, WarmupReport
from .collaboration_service import CollaborationService
from .market_service import MarketService

__all__ = [
    "AgentService",
    "AnalysisService",
    "CacheWarmupService",
    "CollaborationService",
    "MarketService",
    "WarmupReport",
]
