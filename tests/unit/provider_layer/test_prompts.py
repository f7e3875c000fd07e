"""
Unit Tests for the analyst prompt builder and response parsing.
"""

import pytest

from modernfinance.core.exceptions import ProviderResponseError
from modernfinance.models.collaboration import ContributionType
from modernfinance.models.market import AgentBias, AgentType, FinancialContext, LLMAnalysis, Recommendation
from modernfinance.providers.llm.prompts import (
    AGENT_PERSONAS,
    DEFAULT_PERSONA,
    RESPONSE_CONTRACT,
    build_agent_prompt,
    build_classification_prompt,
    build_context_block,
    extract_json,
    parse_analysis,
    parse_classification,
)
from tests.test_fixtures.provider_factory import sample_fundamentals

VALID_RESPONSE = """{
  "recommendation": "Buy",
  "targetPrice": 215.0,
  "reasoning": "Services growth offsets hardware softness.",
  "confidence": 0.78,
  "keyPoints": ["Services", "Buybacks", "Margins", "Ecosystem", "Cash"],
  "bias": "Bullish"
}"""


@pytest.fixture
def context():
    return FinancialContext.from_fundamentals("AAPL", sample_fundamentals())


@pytest.mark.unit
class TestPromptBuilder:
    def test_context_block_lists_core_metrics(self, context):
        block = build_context_block(AgentType.FUNDAMENTAL, context)

        assert "You are a Fundamental Analyst analyzing AAPL." in block
        assert "- Current Price: $100.00" in block
        assert "- Market Cap: $150.00B" in block
        assert "- P/E Ratio: 18.00" in block
        assert "- Revenue Growth: 12.0%" in block
        assert "- Profit Margin: 22.0%" in block

    def test_missing_metrics_render_as_not_available(self):
        block = build_context_block(AgentType.RISK, FinancialContext(symbol="NEW"))

        assert "- P/E Ratio: n/a" in block
        assert "- ROE: n/a" in block
        assert "- Beta: n/a" in block

    def test_additional_metrics_are_capped(self, context):
        block = build_context_block(AgentType.TECHNICAL, context)
        extra = block.split("Additional Metrics:\n", 1)[1].splitlines()

        assert len(extra) == 10

    @pytest.mark.parametrize("agent_type", list(AGENT_PERSONAS))
    def test_prompt_carries_persona_and_contract(self, context, agent_type):
        prompt = build_agent_prompt(agent_type, context)

        assert AGENT_PERSONAS[agent_type] in prompt
        assert RESPONSE_CONTRACT in prompt
        assert prompt.endswith("Focus on data-driven analysis specific to AAPL. Be precise and actionable.")

    def test_unlisted_agent_gets_balanced_persona(self, context):
        assert DEFAULT_PERSONA in build_agent_prompt(AgentType.CONSENSUS, context)


@pytest.mark.unit
class TestResponseParsing:
    def test_extract_plain_object(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_extract_from_code_fence_and_prose(self):
        text = f"Here is my analysis:\n```json\n{VALID_RESPONSE}\n```\nHope this helps."

        assert extract_json(text)["targetPrice"] == 215.0

    @pytest.mark.parametrize("text", ["", "no json here", None])
    def test_no_object(self, text):
        with pytest.raises(ProviderResponseError):
            extract_json(text)

    def test_invalid_json(self):
        with pytest.raises(ProviderResponseError):
            extract_json("{recommendation: Buy}")

    def test_parse_analysis(self):
        analysis = parse_analysis(VALID_RESPONSE, "openai")

        assert analysis.recommendation is Recommendation.BUY
        assert analysis.target_price == 215.0
        assert analysis.key_points[0] == "Services"
        assert analysis.bias is AgentBias.BULLISH

    def test_parse_analysis_tags_provider_on_missing_json(self):
        with pytest.raises(ProviderResponseError) as exc_info:
            parse_analysis("I cannot help with that.", "anthropic")

        assert exc_info.value.details["provider"] == "anthropic"

    def test_parse_analysis_rejects_out_of_range_confidence(self):
        with pytest.raises(ProviderResponseError) as exc_info:
            parse_analysis(VALID_RESPONSE.replace("0.78", "1.7"), "gemini")

        assert exc_info.value.details["provider"] == "gemini"


@pytest.mark.unit
class TestLLMAnalysisModel:
    def test_case_insensitive_labels(self):
        analysis = LLMAnalysis.model_validate(
            {
                "recommendation": "sell",
                "targetPrice": 10,
                "reasoning": "x",
                "confidence": 0.5,
                "keyPoints": ["a"],
                "bias": "BEARISH",
            }
        )

        assert analysis.recommendation is Recommendation.SELL
        assert analysis.bias is AgentBias.BEARISH

    def test_unknown_bias_becomes_neutral(self):
        analysis = LLMAnalysis.model_validate(
            {
                "recommendation": "Hold",
                "targetPrice": 10,
                "reasoning": "x",
                "confidence": 0.5,
                "keyPoints": ["a"],
                "bias": "Cautiously optimistic",
            }
        )

        assert analysis.bias is AgentBias.NEUTRAL

    def test_unknown_recommendation_rejected(self):
        with pytest.raises(ValueError):
            LLMAnalysis.model_validate(
                {"recommendation": "Strong Buy", "targetPrice": 1, "reasoning": "x", "confidence": 0.5, "keyPoints": ["a"]}
            )


@pytest.mark.unit
class TestClassificationPrompt:
    def test_prompt_quotes_text_and_lists_agents(self):
        prompt = build_classification_prompt("Margins are peaking", "AAPL")

        assert prompt.startswith('Classify this user contribution about AAPL:\n"Margins are peaking"')
        assert '"COUNTER_ARGUMENT"' in prompt
        assert '"Consensus Builder"' in prompt

    def test_prompt_without_symbol(self):
        assert build_classification_prompt("x").startswith("Classify this user contribution about a stock:")

    def test_parse_label_from_fenced_output(self):
        label = parse_classification(
            '```json\n{"type": "COUNTER_ARGUMENT", "confidence": 0.66, '
            '"relevantAgents": ["risk", "Skeptical Analyst", "risk", "Macro Strategist"]}\n```',
            "openai",
        )

        assert label.type is ContributionType.COUNTER_ARGUMENT
        assert label.confidence == 0.66
        assert label.relevant_agents == [AgentType.RISK, AgentType.SKEPTICAL]

    def test_client_style_type_accepted(self):
        label = parse_classification('{"type": "additionalContext", "confidence": 0.5}', "gemini")

        assert label.type is ContributionType.ADDITIONAL_CONTEXT
        assert label.relevant_agents == []

    @pytest.mark.parametrize(
        "text",
        [
            '{"type": "RANT", "confidence": 0.5}',
            '{"type": "INSIGHT", "confidence": 1.5}',
            '{"type": "INSIGHT", "confidence": 0.5, "relevantAgents": "risk"}',
            "no json here",
        ],
    )
    def test_invalid_label_rejected(self, text):
        with pytest.raises(ProviderResponseError) as exc_info:
            parse_classification(text, "anthropic")

        assert exc_info.value.details["provider"] == "anthropic"
