"""
Market and Agent Domain Models

Pydantic models for everything the services cache or return. Fundamentals
are kept as a flat ``{metric name: value}`` mapping because providers
disagree on which metrics they report; the names below are the shared
vocabulary.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

Fundamentals = dict[str, float]


class Metric:
    """Fundamental metric names shared by every market data source."""

    MARKET_CAP = "Market Cap"
    PE_RATIO = "P/E Ratio"
    FORWARD_PE = "Forward PE"
    EPS = "EPS"
    REVENUE = "Revenue"
    REVENUE_GROWTH = "Revenue Growth"
    GROSS_MARGIN = "Gross Margin"
    OPERATING_MARGIN = "Operating Margin"
    NET_MARGIN = "Net Margin"
    ROE = "ROE"
    ROA = "ROA"
    DEBT_TO_EQUITY = "Debt to Equity"
    CURRENT_RATIO = "Current Ratio"
    QUICK_RATIO = "Quick Ratio"
    FREE_CASH_FLOW = "Free Cash Flow"
    DIVIDEND_YIELD = "Dividend Yield"
    BETA = "Beta"
    HIGH_52_WEEK = "52 Week High"
    LOW_52_WEEK = "52 Week Low"
    PRICE = "Price"
    VOLUME = "Volume"
    CHANGE = "Change"
    CHANGE_PERCENT = "Change Percent"
    PRICE_TO_BOOK = "Price to Book"
    BOOK_VALUE = "Book Value"
    TOTAL_CASH = "Total Cash"
    TOTAL_DEBT = "Total Debt"
    EBITDA = "EBITDA"
    EBITDA_MARGIN = "EBITDA Margin"
    EARNINGS_GROWTH = "Earnings Growth"
    AVERAGE_50_DAY = "50 Day Average"
    AVERAGE_200_DAY = "200 Day Average"


class AgentType(str, Enum):
    """
    Analyst personas. Values are the display names clients expect.
    """

    OPTIMIST = "Optimist Analyst"
    SKEPTICAL = "Skeptical Analyst"
    TECHNICAL = "Technical Analyst"
    FUNDAMENTAL = "Fundamental Analyst"
    RISK = "Risk Analyst"
    CONSENSUS = "Consensus Builder"
    NEUTRAL_ARBITRATOR = "Neutral Arbitrator"

    @property
    def slug(self) -> str:
        """Short identifier used in cache keys (``perspective:<slug>:<SYMBOL>``)."""
        return self.name.lower()

    @classmethod
    def parse(cls, value: "str | AgentType") -> "AgentType":
        """Accept an enum member, a display name or a slug."""
        if isinstance(value, cls):
            return value
        for member in cls:
            if value in (member.value, member.slug, member.name):
                return member
        raise ValueError(f"Unknown agent type: {value}")


class AgentBias(str, Enum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


class Recommendation(str, Enum):
    """Buy / Hold / Sell, mapped onto a positive / neutral / negative stance."""

    BUY = "Buy"
    HOLD = "Hold"
    SELL = "Sell"

    @property
    def stance(self) -> str:
        return {"Buy": "positive", "Hold": "neutral", "Sell": "negative"}[self.value]


def _match_enum(enum_cls: type[Enum], value: Any, default: Enum | None = None):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        for member in enum_cls:
            if member.value.lower() == value.strip().lower():
                return member
    if default is not None:
        return default
    raise ValueError(f"Invalid {enum_cls.__name__}: {value!r}")


class MarketSentiment(BaseModel):
    """Aggregate market sentiment for a symbol."""

    analyst_rating: float = Field(..., ge=1.0, le=5.0, description="Analyst rating on a 1-5 scale")
    social_sentiment: float = Field(..., ge=0.0, le=1.0, description="Social sentiment, 0-1")
    news_volume: int = Field(..., ge=0, description="Recent news article count")
    sentiment_trend: str = Field(..., description="positive / negative / neutral / stable / volatile")


class CompetitiveAnalysis(BaseModel):
    market_position: str
    competitive_advantages: list[str] = Field(default_factory=list)
    threats_from_competitors: list[str] = Field(default_factory=list)
    barrier_to_entry: float
    switching_costs: float
    network_effects: float
    brand_strength: float


class LLMAnalysis(BaseModel):
    """
    A validated analyst response, from a real model or the synthetic generator.

    Accepts the camelCase field names the prompt asks models to use.
    """

    model_config = ConfigDict(populate_by_name=True)

    recommendation: Recommendation
    target_price: float = Field(..., alias="targetPrice", ge=0.0)
    reasoning: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)
    key_points: list[str] = Field(..., alias="keyPoints", min_length=1)
    bias: AgentBias = AgentBias.NEUTRAL

    @field_validator("recommendation", mode="before")
    @classmethod
    def normalize_recommendation(cls, v):
        return _match_enum(Recommendation, v)

    @field_validator("bias", mode="before")
    @classmethod
    def normalize_bias(cls, v):
        """Unknown bias labels collapse to Neutral."""
        return _match_enum(AgentBias, v, default=AgentBias.NEUTRAL)


class AgentPerspective(BaseModel):
    """One analyst persona's view on a symbol."""

    agent_type: AgentType
    recommendation: Recommendation
    target_price: float = Field(default=0.0, ge=0.0)
    reasoning: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    key_points: list[str] = Field(default_factory=list)
    bias: AgentBias

    @classmethod
    def from_analysis(cls, agent_type: AgentType, analysis: LLMAnalysis) -> "AgentPerspective":
        return cls(
            agent_type=agent_type,
            recommendation=analysis.recommendation,
            target_price=analysis.target_price,
            reasoning=analysis.reasoning,
            confidence=analysis.confidence,
            key_points=analysis.key_points,
            bias=analysis.bias,
        )


class AnalysisTemplate(BaseModel):
    """Deterministic base analysis cached per symbol."""

    symbol: str
    fundamentals: Fundamentals
    market_sentiment: MarketSentiment
    competitive_position: CompetitiveAnalysis
    base_agent_perspectives: list[AgentPerspective]
    cache_timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    ttl: int = 3600


class FinancialContext(BaseModel):
    """
    Inputs handed to analyst prompts and the synthetic generator.

    Ratio fields are None when no source reported them; consumers substitute
    their own neutral defaults.
    """

    symbol: str
    company_name: str | None = None
    current_price: float = 0.0
    market_cap: float = 0.0
    pe_ratio: float | None = None
    revenue_growth: float | None = None
    profit_margin: float | None = None
    debt_to_equity: float | None = None
    roe: float | None = None
    beta: float | None = None
    industry: str | None = None
    fundamentals: Fundamentals = Field(default_factory=dict)

    @classmethod
    def from_fundamentals(cls, symbol: str, fundamentals: Fundamentals) -> "FinancialContext":
        def metric(name: str) -> float | None:
            value = fundamentals.get(name)
            return float(value) if value is not None else None

        return cls(
            symbol=symbol,
            current_price=metric(Metric.PRICE) or 0.0,
            market_cap=metric(Metric.MARKET_CAP) or 0.0,
            pe_ratio=metric(Metric.PE_RATIO),
            revenue_growth=metric(Metric.REVENUE_GROWTH),
            profit_margin=metric(Metric.NET_MARGIN),
            debt_to_equity=metric(Metric.DEBT_TO_EQUITY),
            roe=metric(Metric.ROE),
            beta=metric(Metric.BETA),
            fundamentals=dict(fundamentals),
        )
