"""
Unit Tests for CollaborationService

Contribution classification through the classification chain, response
templates and agent relevance ranking.
"""

import pytest

from modernfinance.core.exceptions import ProviderTimeoutError
from modernfinance.models.collaboration import ContributionType
from modernfinance.models.market import AgentType
from modernfinance.services.collaboration_service import (
    DEFAULT_TEMPLATE,
    CollaborationService,
)
from tests.test_fixtures.provider_factory import ProviderTestFactory, sample_label


def collaboration_service(*llm_providers, clock=lambda: 1_700_000_000.5) -> CollaborationService:
    return CollaborationService(ProviderTestFactory.classification_chain(*llm_providers), clock=clock)


@pytest.mark.unit
class TestClassifyContribution:
    @pytest.mark.asyncio
    async def test_llm_label_wins(self):
        llm = ProviderTestFactory.perspective("openai")
        service = collaboration_service(llm)

        classification = await service.classify_contribution("  The P/E is 35, not 28.  ", " aapl ")

        assert classification.type is ContributionType.CORRECTION
        assert classification.confidence == 0.92
        assert classification.relevant_agents == [AgentType.RISK, AgentType.TECHNICAL]
        assert classification.source == "openai"
        assert classification.suggested_integration == (
            "Thank you for the correction. I'll update our analysis accordingly."
        )
        assert llm.classified == [("The P/E is 35, not 28.", "AAPL")]

    @pytest.mark.asyncio
    async def test_failed_llms_fall_back_to_keywords(self):
        first = ProviderTestFactory.failing_perspective("openai")
        second = ProviderTestFactory.failing_perspective("anthropic", error=ProviderTimeoutError("slow"))
        service = collaboration_service(first, second)

        classification = await service.classify_contribution("However, I disagree with the bull case")

        assert classification.type is ContributionType.COUNTER_ARGUMENT
        assert classification.confidence == 0.8
        assert classification.relevant_agents == [AgentType.RISK, AgentType.SKEPTICAL, AgentType.CONSENSUS]
        assert classification.source == "synthetic"
        assert len(first.classified) == 1
        assert len(second.classified) == 1

    @pytest.mark.asyncio
    async def test_no_providers_uses_keywords(self):
        classification = await collaboration_service().classify_contribution("Apple also has a services moat")

        assert classification.type is ContributionType.ADDITIONAL_CONTEXT
        assert classification.confidence == 0.75
        assert classification.source == "synthetic"

    @pytest.mark.asyncio
    async def test_llm_without_known_agents_gets_type_suggestions(self):
        label = sample_label(type="QUESTION", relevantAgents=["Macro Strategist"])
        service = collaboration_service(ProviderTestFactory.perspective("gemini", label=label))

        classification = await service.classify_contribution("What drives services revenue")

        assert classification.type is ContributionType.QUESTION
        assert classification.relevant_agents == [AgentType.CONSENSUS, AgentType.FUNDAMENTAL, AgentType.TECHNICAL]
        assert classification.source == "gemini"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", None])
    async def test_empty_text_rejected(self, text):
        llm = ProviderTestFactory.perspective("openai")

        with pytest.raises(ValueError):
            await collaboration_service(llm).classify_contribution(text)

        assert llm.classified == []


@pytest.mark.unit
class TestResponseTemplates:
    def test_dedicated_template(self):
        template = collaboration_service().get_response_template("risk", "correction")

        assert template.agent_type is AgentType.RISK
        assert template.agent_id == "risk_1700000000500"
        assert template.confidence_change == -0.2
        assert template.acknowledgment.startswith("Critical catch on the risk calculation.")
        assert len(template.updated_key_points) == 3

    def test_accepts_enum_members_and_labels(self):
        template = collaboration_service().get_response_template(AgentType.CONSENSUS, "INSIGHT")

        assert template.confidence_change == 0.25

    def test_pair_without_template_gets_generic(self):
        template = collaboration_service().get_response_template(
            AgentType.SKEPTICAL, ContributionType.ADDITIONAL_CONTEXT
        )

        assert template.agent_type is AgentType.SKEPTICAL
        assert template.acknowledgment == DEFAULT_TEMPLATE["acknowledgment"]
        assert template.confidence_change == 0.05

    def test_template_lists_are_not_shared(self):
        service = collaboration_service()

        first = service.get_response_template("skeptical", "question")
        first.updated_key_points.append("mutated")
        second = service.get_response_template("skeptical", "question")

        assert "mutated" not in second.updated_key_points

    @pytest.mark.parametrize("agent_type, contribution_type", [("Macro Strategist", "insight"), ("risk", "rant")])
    def test_unknown_inputs_rejected(self, agent_type, contribution_type):
        with pytest.raises(ValueError):
            collaboration_service().get_response_template(agent_type, contribution_type)


@pytest.mark.unit
class TestAgentRelevance:
    @pytest.mark.parametrize(
        "contribution_type, top_agent, top_score",
        [
            (ContributionType.INSIGHT, AgentType.FUNDAMENTAL, 0.9),
            (ContributionType.QUESTION, AgentType.CONSENSUS, 0.9),
            (ContributionType.CORRECTION, AgentType.FUNDAMENTAL, 0.95),
            (ContributionType.ADDITIONAL_CONTEXT, AgentType.FUNDAMENTAL, 0.85),
            (ContributionType.COUNTER_ARGUMENT, AgentType.RISK, 0.95),
        ],
    )
    def test_ranked_per_type(self, contribution_type, top_agent, top_score):
        scores = collaboration_service().calculate_agent_relevance(contribution_type)

        assert len(scores) == 3
        assert scores[0].agent_type is top_agent
        assert scores[0].relevance_score == top_score
        assert [s.relevance_score for s in scores] == sorted((s.relevance_score for s in scores), reverse=True)

    def test_accepts_client_values(self):
        scores = collaboration_service().calculate_agent_relevance("counterArgument")

        assert [s.agent_type for s in scores] == [AgentType.RISK, AgentType.SKEPTICAL, AgentType.CONSENSUS]
        assert scores[1].reason == "Critical analysis specialist"
