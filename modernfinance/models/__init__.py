from .collaboration import (
    AgentRelevance,
    AgentResponseTemplate,
    ContributionClassification,
    ContributionLabel,
    ContributionType,
)
from .market import (
    AgentBias,
    AgentPerspective,
    AgentType,
    AnalysisTemplate,
    CompetitiveAnalysis,
    FinancialContext,
    Fundamentals,
    LLMAnalysis,
    MarketSentiment,
    Metric,
    Recommendation,
)

__all__ = [
    "AgentBias",
    "AgentPerspective",
    "AgentRelevance",
    "AgentResponseTemplate",
    "AgentType",
    "AnalysisTemplate",
    "CompetitiveAnalysis",
    "ContributionClassification",
    "ContributionLabel",
    "ContributionType",
    "FinancialContext",
    "Fundamentals",
    "LLMAnalysis",
    "MarketSentiment",
    "Metric",
    "Recommendation",
]
