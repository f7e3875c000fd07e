"""
Collaboration Service

Handles user contributions to an analysis session:

- classify_contribution: LLM providers first, keyword heuristic as the
  synthetic fallback, both through one FallbackChain
- get_response_template: how an analyst acknowledges a contribution type
- calculate_agent_relevance: which analysts should answer it, ranked

Only classification calls out; templates and relevance are static tables.
"""

import copy
import time
from collections.abc import Callable

from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.models.collaboration import (
    AgentRelevance,
    AgentResponseTemplate,
    ContributionClassification,
    ContributionLabel,
    ContributionType,
)
from modernfinance.models.market import AgentType
from modernfinance.providers.fallback_chain import FallbackChain
from modernfinance.services.market_service import normalize_symbol
from modernfinance.synthetic import suggested_agents

logger = get_logger(__name__)

SUGGESTED_INTEGRATION = {
    ContributionType.INSIGHT: "I'll incorporate this insight into our analysis and update our key findings.",
    ContributionType.QUESTION: "Let me address your question with additional analysis and data.",
    ContributionType.CORRECTION: "Thank you for the correction. I'll update our analysis accordingly.",
    ContributionType.ADDITIONAL_CONTEXT: (
        "I'll integrate this additional context to provide a more comprehensive view."
    ),
    ContributionType.COUNTER_ARGUMENT: "I'll analyze this counter-perspective and present a balanced assessment.",
}

DEFAULT_INTEGRATION = "I'll incorporate your contribution into our analysis."

# (agent type, relevance score, reason), highest first
RELEVANCE = {
    ContributionType.INSIGHT: [
        (AgentType.FUNDAMENTAL, 0.9, "Deep fundamental analysis for insights"),
        (AgentType.CONSENSUS, 0.8, "Integration of insights across perspectives"),
        (AgentType.OPTIMIST, 0.7, "Growth opportunities from insights"),
    ],
    ContributionType.QUESTION: [
        (AgentType.CONSENSUS, 0.9, "Comprehensive answers to questions"),
        (AgentType.FUNDAMENTAL, 0.8, "Data-driven responses"),
        (AgentType.TECHNICAL, 0.7, "Technical perspective on questions"),
    ],
    ContributionType.CORRECTION: [
        (AgentType.FUNDAMENTAL, 0.95, "Accuracy in financial data"),
        (AgentType.TECHNICAL, 0.85, "Precision in technical analysis"),
        (AgentType.RISK, 0.8, "Risk metric corrections"),
    ],
    ContributionType.ADDITIONAL_CONTEXT: [
        (AgentType.FUNDAMENTAL, 0.85, "Context enriches fundamental analysis"),
        (AgentType.OPTIMIST, 0.8, "Additional growth catalysts"),
        (AgentType.CONSENSUS, 0.75, "Broader perspective integration"),
    ],
    ContributionType.COUNTER_ARGUMENT: [
        (AgentType.RISK, 0.95, "Risk assessment of counter views"),
        (AgentType.SKEPTICAL, 0.9, "Critical analysis specialist"),
        (AgentType.CONSENSUS, 0.7, "Balanced view integration"),
    ],
}

DEFAULT_RELEVANCE = [(AgentType.CONSENSUS, 0.8, "General analysis coordination")]

RESPONSE_TEMPLATES: dict[tuple[AgentType, ContributionType], dict] = {
    (AgentType.FUNDAMENTAL, ContributionType.INSIGHT): {
        "acknowledgment": "Excellent market observation! This aligns with emerging trends I've been tracking.",
        "integration": (
            "I'll incorporate this into my sector rotation analysis and competitive positioning assessment."
        ),
        "updated_key_points": [
            "Market dynamics shift with your insight on competitive landscape",
            "Sector performance indicators need recalibration",
            "Industry trends confirm your observation",
        ],
        "new_evidence": [
            "Recent M&A activity supports this view",
            "Institutional positioning data corroborates",
            "Supply chain indicators align with your insight",
        ],
        "impact_on_analysis": "Your insight strengthens the bull case for sector outperformance",
        "confidence_change": 0.15,
        "related_questions": [
            "How might regulatory changes affect this dynamic?",
            "What catalysts could accelerate this trend?",
        ],
        "additional_considerations": [
            "Monitor competitor responses",
            "Track market share shifts",
            "Assess pricing power implications",
        ],
    },
    (AgentType.FUNDAMENTAL, ContributionType.QUESTION): {
        "acknowledgment": "Great question about market dynamics. Let me provide comprehensive context.",
        "integration": "I'll expand my analysis to address your specific concerns about market positioning.",
        "updated_key_points": [
            "Market structure analysis reveals key dependencies",
            "Competitive dynamics show interesting patterns",
            "Industry consolidation trends are accelerating",
        ],
        "new_evidence": [
            "Recent earnings calls highlight this theme",
            "Analyst consensus shifting on this topic",
            "Market data supports emerging trend",
        ],
        "impact_on_analysis": "Your question highlights a critical factor I'll monitor closely",
        "confidence_change": 0.0,
        "related_questions": [
            "Would you like me to analyze specific competitors?",
            "Should I expand on regulatory implications?",
        ],
        "additional_considerations": [
            "International market comparisons",
            "Historical precedents analysis",
            "Forward-looking indicators",
        ],
    },
    (AgentType.TECHNICAL, ContributionType.CORRECTION): {
        "acknowledgment": (
            "You're absolutely right. Thank you for catching that discrepancy in the financial data."
        ),
        "integration": "I'm recalculating all dependent metrics with the corrected figures.",
        "updated_key_points": [
            "Revised valuation metrics with corrected data",
            "Updated financial ratios and peer comparisons",
            "Adjusted growth projections based on accurate baseline",
        ],
        "new_evidence": [
            "Corrected EBITDA margins align with industry norms",
            "Revised FCF yield changes investment thesis",
            "Updated multiples suggest different valuation",
        ],
        "impact_on_analysis": "The correction materially impacts valuation, adjusting price target by ~10%",
        "confidence_change": -0.1,
        "related_questions": [
            "Are there other financial metrics you'd like me to verify?",
            "Should I re-run the DCF with these corrections?",
        ],
        "additional_considerations": [
            "Audit trail for all corrections",
            "Sensitivity analysis with new baseline",
            "Peer group revalidation needed",
        ],
    },
    (AgentType.TECHNICAL, ContributionType.ADDITIONAL_CONTEXT): {
        "acknowledgment": "This context about trading patterns adds crucial depth to my technical analysis.",
        "integration": "I'll overlay this information on my chart patterns and volume analysis.",
        "updated_key_points": [
            "Hidden divergences now visible with your context",
            "Volume patterns confirm institutional activity",
            "Support/resistance levels gain new significance",
        ],
        "new_evidence": [
            "Order flow data supports your observation",
            "Dark pool activity aligns with pattern",
            "Options flow confirms technical setup",
        ],
        "impact_on_analysis": "Your context reveals a stronger technical setup than initially identified",
        "confidence_change": 0.2,
        "related_questions": [
            "Have you noticed similar patterns in related securities?",
            "What timeframe do you typically analyze?",
        ],
        "additional_considerations": [
            "Multi-timeframe confirmation needed",
            "Volume profile analysis",
            "Relative strength comparisons",
        ],
    },
    (AgentType.OPTIMIST, ContributionType.COUNTER_ARGUMENT): {
        "acknowledgment": (
            "Your counter-perspective on market sentiment is thought-provoking and warrants deeper analysis."
        ),
        "integration": "I'll contrast this view with my sentiment indicators and social media analytics.",
        "updated_key_points": [
            "Sentiment divergence between retail and institutional",
            "Social media buzz doesn't reflect your concerns",
            "News flow analysis shows mixed signals",
        ],
        "new_evidence": [
            "Options put/call ratios support caution",
            "Insider trading patterns are mixed",
            "Analyst revisions trending cautiously",
        ],
        "impact_on_analysis": (
            "Your counter-argument introduces healthy skepticism to an overly bullish narrative"
        ),
        "confidence_change": -0.15,
        "related_questions": [
            "What specific sentiment indicators concern you?",
            "Have you seen this pattern before?",
        ],
        "additional_considerations": [
            "Contrarian indicators review",
            "Sentiment extremes analysis",
            "Behavioral finance factors",
        ],
    },
    (AgentType.RISK, ContributionType.CORRECTION): {
        "acknowledgment": "Critical catch on the risk calculation. This materially changes our risk assessment.",
        "integration": "I'm recalibrating all risk metrics and updating our risk management framework.",
        "updated_key_points": [
            "Corrected VaR calculations show higher tail risk",
            "Stress test scenarios need adjustment",
            "Portfolio risk contribution recalculated",
        ],
        "new_evidence": [
            "Historical drawdown analysis confirms higher risk",
            "Correlation matrices show hidden exposures",
            "Factor analysis reveals concentrated bets",
        ],
        "impact_on_analysis": (
            "Risk-adjusted returns are less attractive; position sizing recommendations reduced by 25%"
        ),
        "confidence_change": -0.2,
        "related_questions": [
            "Are there other risk factors I should examine?",
            "What risk tolerance is appropriate here?",
        ],
        "additional_considerations": [
            "Liquidity risk reassessment",
            "Concentration risk analysis",
            "Hedging strategy review",
        ],
    },
    (AgentType.CONSENSUS, ContributionType.INSIGHT): {
        "acknowledgment": (
            "Your insight brilliantly connects multiple aspects of our analysis. "
            "This is exactly the holistic thinking we need."
        ),
        "integration": (
            "I'll weave this perspective throughout our integrated analysis, updating all key recommendations."
        ),
        "updated_key_points": [
            "Unified investment thesis strengthened by your insight",
            "Cross-functional analysis validates your perspective",
            "Strategic implications are more profound than initially assessed",
        ],
        "new_evidence": [
            "Multiple data sources converge on your thesis",
            "Independent analyses support this view",
            "Long-term trends align with your insight",
        ],
        "impact_on_analysis": (
            "Your contribution elevates our analysis from good to exceptional, clarifying the investment case"
        ),
        "confidence_change": 0.25,
        "related_questions": [
            "How do you see this playing out over different time horizons?",
            "What would change your view on this?",
        ],
        "additional_considerations": [
            "Scenario planning around your insight",
            "Implementation strategy development",
            "Risk/reward optimization",
        ],
    },
}

DEFAULT_TEMPLATE = {
    "acknowledgment": "Thank you for your valuable contribution to our analysis.",
    "integration": "I'll incorporate this perspective into my assessment.",
    "updated_key_points": [
        "Analysis updated with your input",
        "New perspective integrated into findings",
        "Conclusions refined based on your contribution",
    ],
    "new_evidence": [
        "Supporting data aligns with your view",
        "Additional research confirms perspective",
        "Market indicators support this angle",
    ],
    "impact_on_analysis": "Your input enhances our overall analysis quality",
    "confidence_change": 0.05,
    "related_questions": [
        "Would you like me to explore this further?",
        "Are there other aspects to consider?",
    ],
    "additional_considerations": [
        "Continue monitoring this factor",
        "Further research recommended",
        "Track developments closely",
    ],
}


class CollaborationService:
    """
    STAGE-COLLAB: User contribution handling

    Usage:
        service = CollaborationService(classification_chain)
        classification = await service.classify_contribution("Isn't the P/E actually 35?", "AAPL")
        ranked = service.calculate_agent_relevance(classification.type)
    """

    def __init__(
        self,
        classification_chain: FallbackChain[ContributionLabel],
        clock: Callable[[], float] = time.time,
    ):
        self.classification_chain = classification_chain
        self._clock = clock

    async def classify_contribution(self, text: str, symbol: str | None = None) -> ContributionClassification:
        """
        Classify a contribution and pick the analysts who should answer.

        STAGE-COLLAB.1: Contribution classification

        A model that names no known analyst gets the keyword table's
        suggestions for its type.

        Raises:
            ValueError: Empty contribution text (caller input error)
        """
        text = (text or "").strip()
        if not text:
            raise ValueError("Contribution text must not be empty")
        if symbol:
            symbol = normalize_symbol(symbol)

        result = await self.classification_chain.execute(text, symbol)
        label = result.value
        relevant_agents = label.relevant_agents or suggested_agents(label.type)

        log_stage(
            logger,
            "COLLAB.1",
            "Contribution classified",
            level="warning" if result.is_synthetic else "info",
            symbol=symbol,
            type=label.type.value,
            confidence=label.confidence,
            source=result.source,
            relevant_agents=[agent.slug for agent in relevant_agents],
        )
        return ContributionClassification(
            type=label.type,
            relevant_agents=relevant_agents,
            confidence=label.confidence,
            suggested_integration=SUGGESTED_INTEGRATION.get(label.type, DEFAULT_INTEGRATION),
            source=result.source,
        )

    def get_response_template(
        self,
        agent_type: AgentType | str,
        contribution_type: ContributionType | str,
    ) -> AgentResponseTemplate:
        """
        STAGE-COLLAB.2: Response template

        Pairs without a dedicated template get the generic one. ``agent_id``
        is ``<agent slug>_<epoch millis>``.

        Raises:
            ValueError: Unknown agent or contribution type
        """
        agent_type = AgentType.parse(agent_type)
        contribution_type = ContributionType.parse(contribution_type)
        fields = RESPONSE_TEMPLATES.get((agent_type, contribution_type), DEFAULT_TEMPLATE)

        template = AgentResponseTemplate(
            agent_id=f"{agent_type.slug}_{int(self._clock() * 1000)}",
            agent_type=agent_type,
            **copy.deepcopy(fields),
        )
        log_stage(
            logger,
            "COLLAB.2",
            "Response template generated",
            agent_type=agent_type.value,
            contribution_type=contribution_type.value,
            agent_id=template.agent_id,
            generic=fields is DEFAULT_TEMPLATE,
        )
        return template

    def calculate_agent_relevance(self, contribution_type: ContributionType | str) -> list[AgentRelevance]:
        """
        Analysts ranked by how well they answer ``contribution_type``.

        STAGE-COLLAB.3: Agent relevance

        Raises:
            ValueError: Unknown contribution type
        """
        contribution_type = ContributionType.parse(contribution_type)
        scores = [
            AgentRelevance(agent_type=agent_type, relevance_score=score, reason=reason)
            for agent_type, score, reason in RELEVANCE.get(contribution_type, DEFAULT_RELEVANCE)
        ]
        log_stage(
            logger,
            "COLLAB.3",
            "Agent relevance calculated",
            contribution_type=contribution_type.value,
            top_agent=scores[0].agent_type.value,
            top_score=scores[0].relevance_score,
        )
        return scores
