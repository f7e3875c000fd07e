"""
Keyword Contribution Classifier

Stand-in for LLM classification. Checks run in a fixed order and the first
match wins, each type with a fixed confidence:

    question            0.90    trailing "?", interrogative opener, "explain"
    correction          0.85    "actually", "incorrect", "should be", "fix"
    counter argument    0.80    "however", "disagree", "alternative"
    additional context  0.75    "also", "background", "keep in mind"
    insight             0.70    anything else
"""

import re

from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.models.collaboration import ContributionLabel, ContributionType
from modernfinance.models.market import AgentType

logger = get_logger(__name__)

KEYWORD_RULES: list[tuple[ContributionType, float, tuple[re.Pattern, ...]]] = [
    (
        ContributionType.QUESTION,
        0.9,
        (
            re.compile(r"\?$"),
            re.compile(r"^(what|why|how|when|where|who|which|could|would|should|can|will)\b"),
            re.compile(r"\b(explain|clarify|elaborate)\b"),
        ),
    ),
    (
        ContributionType.CORRECTION,
        0.85,
        (
            re.compile(r"\b(actually|incorrect|wrong|mistake|error|not accurate|false)\b"),
            re.compile(r"\b(should be|must be|needs to be|has to be)\b"),
            re.compile(r"\b(correction|fix|correct)\b"),
        ),
    ),
    (
        ContributionType.COUNTER_ARGUMENT,
        0.8,
        (
            re.compile(r"\b(however|but|although|despite|nevertheless|on the other hand)\b"),
            re.compile(r"\b(disagree|dispute|challenge|contest|contradict)\b"),
            re.compile(r"\b(alternative|different view|opposing)\b"),
        ),
    ),
    (
        ContributionType.ADDITIONAL_CONTEXT,
        0.75,
        (
            re.compile(r"\b(also|additionally|furthermore|moreover|plus)\b"),
            re.compile(r"\b(context|background|information|detail|data)\b"),
            re.compile(r"\b(consider|note|remember|keep in mind)\b"),
        ),
    ),
]

DEFAULT_TYPE = ContributionType.INSIGHT
DEFAULT_CONFIDENCE = 0.7

SUGGESTED_AGENTS: dict[ContributionType, list[AgentType]] = {
    ContributionType.INSIGHT: [AgentType.CONSENSUS, AgentType.FUNDAMENTAL, AgentType.OPTIMIST],
    ContributionType.QUESTION: [AgentType.CONSENSUS, AgentType.FUNDAMENTAL, AgentType.TECHNICAL],
    ContributionType.CORRECTION: [AgentType.FUNDAMENTAL, AgentType.TECHNICAL, AgentType.RISK],
    ContributionType.ADDITIONAL_CONTEXT: [AgentType.FUNDAMENTAL, AgentType.OPTIMIST, AgentType.CONSENSUS],
    ContributionType.COUNTER_ARGUMENT: [AgentType.RISK, AgentType.SKEPTICAL, AgentType.CONSENSUS],
}


def suggested_agents(contribution_type: ContributionType) -> list[AgentType]:
    return list(SUGGESTED_AGENTS.get(contribution_type, [AgentType.CONSENSUS]))


def match_contribution_type(text: str) -> tuple[ContributionType, float]:
    lowered = (text or "").strip().lower()
    for contribution_type, confidence, patterns in KEYWORD_RULES:
        if any(pattern.search(lowered) for pattern in patterns):
            return contribution_type, confidence
    return DEFAULT_TYPE, DEFAULT_CONFIDENCE


def classify_by_keywords(text: str, symbol: str | None = None) -> ContributionLabel:
    """
    Classify ``text`` without a model.

    Signature matches PerspectiveProvider.classify_contribution so it can
    close a fallback chain; ``symbol`` is only logged.
    """
    contribution_type, confidence = match_contribution_type(text)
    log_stage(
        logger,
        "SYNTH.4",
        "Contribution classified by keywords",
        level="debug",
        symbol=symbol,
        type=contribution_type.value,
    )
    return ContributionLabel(
        type=contribution_type,
        confidence=confidence,
        relevant_agents=suggested_agents(contribution_type),
    )
