"""
Synthetic Analyst Perspectives

Metric-driven stand-in for an LLM analysis, used when every LLM provider
failed. The recommendation is a pure function of (metrics, agent type);
only target price multiplier, confidence and filler point selection are
randomised, through an injectable ``random.Random``.

Scoring (0-10 before the agent offset):

    metric          +2                  +1
    P/E             0 < pe < 20         0 < pe < 30
    revenue growth  > 15%               > 5%
    net margin      > 20%               > 10%
    debt/equity     < 0.5               < 1.0
    ROE             > 20%               > 10%

Agent offsets: optimist +2, skeptical -2, risk -1.
Bands: >= 7 Buy/Bullish, 4-6 Hold/Neutral, <= 3 Sell/Bearish.
"""

import math
import random

from modernfinance.core.config.constants import CONFIDENCE_MAX, CONFIDENCE_MIN, MIN_KEY_POINTS
from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.models.market import (
    AgentBias,
    AgentType,
    FinancialContext,
    LLMAnalysis,
    Recommendation,
)

logger = get_logger(__name__)

# Neutral-ish stand-ins for unreported metrics (score one point each)
DEFAULT_PE_RATIO = 20.0
DEFAULT_REVENUE_GROWTH = 0.08
DEFAULT_PROFIT_MARGIN = 0.15
DEFAULT_DEBT_TO_EQUITY = 0.75
DEFAULT_ROE = 0.15

AGENT_SCORE_OFFSETS = {
    AgentType.OPTIMIST: 2,
    AgentType.SKEPTICAL: -2,
    AgentType.RISK: -1,
}

BUY_THRESHOLD = 7
HOLD_THRESHOLD = 4

# (base, spread) of the target price multiplier per band
TARGET_MULTIPLIERS = {
    Recommendation.BUY: (1.15, 0.15),
    Recommendation.HOLD: (0.95, 0.15),
    Recommendation.SELL: (0.70, 0.20),
}

BULLISH_POINTS = (
    "Market position remains strong with competitive advantages",
    "Management execution has been consistent",
    "Industry trends favor continued growth",
    "Capital allocation strategy is shareholder-friendly",
    "Innovation pipeline supports long-term value creation",
)

BEARISH_POINTS = (
    "Competitive pressures may impact margins",
    "Market saturation could limit growth",
    "Regulatory risks require monitoring",
    "Capital requirements may pressure returns",
    "Execution challenges could impact guidance",
)

NEUTRAL_POINTS = (
    "Valuation appears in line with peers",
    "Business model shows resilience",
    "Market dynamics are evolving",
    "Strategic initiatives are in progress",
    "Performance metrics are stabilizing",
)


def _value(value: float | None, default: float) -> float:
    if value is None:
        return default
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


def score_metrics(
    pe_ratio: float,
    revenue_growth: float,
    profit_margin: float,
    debt_to_equity: float,
    roe: float,
) -> int:
    """Threshold-bucket score in [0, 10]."""
    score = 0

    if 0 < pe_ratio < 20:
        score += 2
    elif 0 < pe_ratio < 30:
        score += 1

    if revenue_growth > 0.15:
        score += 2
    elif revenue_growth > 0.05:
        score += 1

    if profit_margin > 0.20:
        score += 2
    elif profit_margin > 0.10:
        score += 1

    if debt_to_equity < 0.5:
        score += 2
    elif debt_to_equity < 1.0:
        score += 1

    if roe > 0.20:
        score += 2
    elif roe > 0.10:
        score += 1

    return score


def classify(score: int) -> tuple[Recommendation, AgentBias]:
    if score >= BUY_THRESHOLD:
        return Recommendation.BUY, AgentBias.BULLISH
    if score >= HOLD_THRESHOLD:
        return Recommendation.HOLD, AgentBias.NEUTRAL
    return Recommendation.SELL, AgentBias.BEARISH


def _metric_points(
    pe_ratio: float,
    revenue_growth: float,
    profit_margin: float,
    debt_to_equity: float,
    roe: float,
) -> list[str]:
    points = []

    if 0 < pe_ratio < 20:
        points.append(f"Attractive P/E ratio of {pe_ratio:.1f} suggests undervaluation")
    elif pe_ratio > 30:
        points.append(f"High P/E ratio of {pe_ratio:.1f} indicates premium valuation")

    if revenue_growth > 0.10:
        points.append(f"Strong revenue growth of {revenue_growth * 100:.1f}% year-over-year")
    elif revenue_growth < 0:
        points.append(f"Declining revenue trend with {revenue_growth * 100:.1f}% contraction")

    if profit_margin > 0.15:
        points.append(
            f"Healthy profit margin of {profit_margin * 100:.1f}% demonstrates efficiency"
        )

    if debt_to_equity < 0.5:
        points.append(f"Conservative debt level with D/E ratio of {debt_to_equity:.2f}")
    elif debt_to_equity > 1.5:
        points.append(f"Elevated debt levels with D/E ratio of {debt_to_equity:.2f} pose risk")

    if roe > 0.15:
        points.append(f"Strong ROE of {roe * 100:.1f}% indicates effective capital deployment")

    return points


def _filler_pool(score: int) -> tuple[str, ...]:
    if score >= BUY_THRESHOLD:
        return BULLISH_POINTS
    if score <= HOLD_THRESHOLD - 1:
        return BEARISH_POINTS
    return NEUTRAL_POINTS


def _reasoning(symbol: str, agent_type: AgentType, recommendation: Recommendation) -> str:
    outlook = {
        Recommendation.BUY: "undervalued with strong growth prospects",
        Recommendation.SELL: "overvalued with concerning risks",
        Recommendation.HOLD: "fairly valued with mixed signals",
    }[recommendation]

    if agent_type is AgentType.RISK:
        closing = "Risk factors require careful consideration."
    elif agent_type is AgentType.OPTIMIST:
        closing = "Multiple positive catalysts support upside potential."
    else:
        closing = "Current metrics suggest a balanced risk-reward profile."

    return (
        f"Based on comprehensive analysis of {symbol}'s fundamentals, "
        f"the stock appears {outlook}. {closing}"
    )


def generate_synthetic_perspective(
    agent_type: AgentType,
    context: FinancialContext,
    rng: random.Random | None = None,
) -> LLMAnalysis:
    """
    Manufacture a plausible analysis from the context's metrics.

    STAGE-SYNTH.1: Synthetic perspective generation

    Never raises: unreported or non-finite metrics fall back to the
    DEFAULT_* constants.

    Args:
        agent_type: Persona whose disposition offsets the score
        context: Financial metrics for the symbol
        rng: Random source for presentation fields (unseeded if omitted)

    Returns:
        LLMAnalysis with exactly MIN_KEY_POINTS key points
    """
    rng = rng or random.Random()

    pe_ratio = _value(context.pe_ratio, DEFAULT_PE_RATIO)
    revenue_growth = _value(context.revenue_growth, DEFAULT_REVENUE_GROWTH)
    profit_margin = _value(context.profit_margin, DEFAULT_PROFIT_MARGIN)
    debt_to_equity = _value(context.debt_to_equity, DEFAULT_DEBT_TO_EQUITY)
    roe = _value(context.roe, DEFAULT_ROE)
    current_price = max(_value(context.current_price, 0.0), 0.0)

    score = score_metrics(pe_ratio, revenue_growth, profit_margin, debt_to_equity, roe)
    score += AGENT_SCORE_OFFSETS.get(agent_type, 0)

    recommendation, bias = classify(score)
    base, spread = TARGET_MULTIPLIERS[recommendation]
    multiplier = base + rng.random() * spread

    key_points = _metric_points(pe_ratio, revenue_growth, profit_margin, debt_to_equity, roe)
    missing = MIN_KEY_POINTS - len(key_points)
    if missing > 0:
        pool = _filler_pool(score)
        key_points.extend(rng.sample(pool, k=min(missing, len(pool))))

    confidence = CONFIDENCE_MIN + rng.random() * (CONFIDENCE_MAX - CONFIDENCE_MIN)

    log_stage(
        logger,
        "SYNTH.1",
        "Synthetic perspective generated",
        level="debug",
        symbol=context.symbol,
        agent_type=agent_type.value,
        score=score,
        recommendation=recommendation.value,
    )

    return LLMAnalysis(
        recommendation=recommendation,
        target_price=round(current_price * multiplier, 2),
        reasoning=_reasoning(context.symbol, agent_type, recommendation),
        confidence=round(confidence, 2),
        key_points=key_points[:MIN_KEY_POINTS],
        bias=bias,
    )
