"""
Analyst Prompt Builder

Builds the agent and contribution-classification prompts shared by every
LLM provider and parses the JSON objects the models answer with.
"""

import re
from typing import Any

import orjson
from pydantic import ValidationError

from modernfinance.core.exceptions import ProviderResponseError
from modernfinance.models.collaboration import ContributionLabel
from modernfinance.models.market import AgentType, FinancialContext, LLMAnalysis

SYSTEM_PROMPT = (
    "You are a financial analyst providing data-driven stock analysis. "
    "Always respond with valid JSON."
)

JSON_ONLY_SUFFIX = "\n\nRespond only with valid JSON, no other text or markdown."

ADDITIONAL_METRICS_LIMIT = 10

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

AGENT_PERSONAS = {
    AgentType.FUNDAMENTAL: """As a Fundamental Analyst, focus on:
- Financial ratios and their implications
- Revenue and earnings trends
- Balance sheet strength
- Cash flow generation
- Competitive position and moat
Emphasize intrinsic value and long-term prospects.""",
    AgentType.TECHNICAL: """As a Technical Analyst, focus on:
- Price patterns and trends
- Support and resistance levels
- Moving averages (50-day, 200-day)
- Volume analysis
- Momentum indicators
- 52-week high/low positioning
Emphasize chart patterns and technical signals.""",
    AgentType.RISK: """As a Risk Analyst, focus on:
- Financial stability and debt levels
- Volatility and beta
- Downside risks and worst-case scenarios
- Liquidity concerns
- Regulatory and market risks
- Capital preservation
Be conservative and highlight potential dangers.""",
    AgentType.OPTIMIST: """As an Optimist Analyst, focus on:
- Growth opportunities and catalysts
- Market expansion potential
- Innovation and competitive advantages
- Positive trends and momentum
- Best-case scenarios
- Management execution
Emphasize upside potential while remaining realistic.""",
    AgentType.SKEPTICAL: """As a Skeptical Analyst, focus on:
- Overvaluation concerns
- Competition and market saturation
- Execution risks
- Negative trends or headwinds
- Questions about sustainability
- Hidden problems
Challenge assumptions and highlight concerns.""",
}

DEFAULT_PERSONA = "Provide a balanced analysis considering multiple perspectives."

RESPONSE_CONTRACT = """Provide your analysis as a JSON object with the following structure:
{
  "recommendation": "Buy" | "Hold" | "Sell",
  "targetPrice": number (specific price target),
  "reasoning": "string (2-3 sentences explaining your recommendation)",
  "confidence": number (0.0 to 1.0),
  "keyPoints": ["point 1", "point 2", "point 3", "point 4", "point 5"],
  "bias": "Bullish" | "Bearish" | "Neutral"
}"""

CLASSIFICATION_CONTRACT = """Respond with JSON:
{
  "type": "INSIGHT" | "QUESTION" | "CORRECTION" | "COUNTER_ARGUMENT" | "ADDITIONAL_CONTEXT",
  "confidence": 0.0 to 1.0,
  "relevantAgents": ["agent1", "agent2", "agent3"]
}

Types:
- INSIGHT: New analysis or observation
- QUESTION: Asking for clarification
- CORRECTION: Correcting information
- COUNTER_ARGUMENT: Disagreeing with analysis
- ADDITIONAL_CONTEXT: Adding supporting information"""


def _ratio(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.2f}"


def _percent(value: float | None) -> str:
    return "n/a" if value is None else f"{value * 100:.1f}%"


def build_context_block(agent_type: AgentType, context: FinancialContext) -> str:
    extra = list(context.fundamentals.items())[:ADDITIONAL_METRICS_LIMIT]
    extra_lines = "\n".join(
        f"- {name}: {value:.2f}" if isinstance(value, (int, float)) else f"- {name}: {value}"
        for name, value in extra
    )
    return f"""You are a {agent_type.value} analyzing {context.symbol}.

Company Fundamentals:
- Current Price: ${context.current_price:.2f}
- Market Cap: ${context.market_cap / 1e9:.2f}B
- P/E Ratio: {_ratio(context.pe_ratio)}
- Revenue Growth: {_percent(context.revenue_growth)}
- Profit Margin: {_percent(context.profit_margin)}
- Debt/Equity: {_ratio(context.debt_to_equity)}
- ROE: {_percent(context.roe)}
- Beta: {_ratio(context.beta)}

Additional Metrics:
{extra_lines}"""


def build_agent_prompt(agent_type: AgentType, context: FinancialContext) -> str:
    """
    Full user prompt for one analyst persona.

    Sections: context block, persona focus, JSON contract, closing
    instruction naming the symbol.
    """
    persona = AGENT_PERSONAS.get(agent_type, DEFAULT_PERSONA)
    return (
        f"{build_context_block(agent_type, context)}\n\n"
        f"{persona}\n\n"
        f"{RESPONSE_CONTRACT}\n\n"
        f"Focus on data-driven analysis specific to {context.symbol}. Be precise and actionable."
    )


def extract_json(text: str) -> dict[str, Any]:
    """
    Parse the outermost JSON object in ``text``.

    Models sometimes wrap the object in prose or code fences, so the span
    from the first ``{`` to the last ``}`` is parsed.

    Raises:
        ProviderResponseError: No object found or it is not valid JSON
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise ProviderResponseError("No JSON object found in model response")
    try:
        parsed = orjson.loads(match.group(0))
    except orjson.JSONDecodeError as e:
        raise ProviderResponseError("Model response is not valid JSON", details={"error": str(e)}) from e
    if not isinstance(parsed, dict):
        raise ProviderResponseError("Model response JSON is not an object")
    return parsed


def parse_analysis(text: str, provider: str) -> LLMAnalysis:
    """
    Extract and validate an LLMAnalysis from raw model output.

    Raises:
        ProviderResponseError: On missing JSON or failed validation
    """
    try:
        return LLMAnalysis.model_validate(extract_json(text))
    except ProviderResponseError as e:
        e.with_context(provider=provider)
        raise
    except ValidationError as e:
        raise ProviderResponseError(
            f"{provider} response failed validation",
            details={"provider": provider, "errors": e.error_count()},
        ) from e


def build_classification_prompt(text: str, symbol: str | None = None) -> str:
    """Prompt asking a model to label a user contribution and pick the analysts it concerns."""
    subject = f"about {symbol}" if symbol else "about a stock"
    agents = ", ".join(f'"{agent.value}"' for agent in AgentType)
    return (
        f'Classify this user contribution {subject}:\n"{text}"\n\n'
        f"{CLASSIFICATION_CONTRACT}\n\n"
        f"relevantAgents must be chosen from: {agents}"
    )


def parse_classification(text: str, provider: str) -> ContributionLabel:
    """
    Extract and validate a ContributionLabel from raw model output.

    Raises:
        ProviderResponseError: On missing JSON or failed validation
    """
    try:
        return ContributionLabel.model_validate(extract_json(text))
    except ProviderResponseError as e:
        e.with_context(provider=provider)
        raise
    except ValidationError as e:
        raise ProviderResponseError(
            f"{provider} classification failed validation",
            details={"provider": provider, "errors": e.error_count()},
        ) from e
