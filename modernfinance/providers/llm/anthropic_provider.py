"""
Anthropic Perspective Provider

Messages API over httpx. Claude sometimes adds prose around the JSON, so
the object is extracted from the first text block before validation.
"""

import httpx

from modernfinance.core.exceptions import ProviderResponseError
from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.models.collaboration import ContributionLabel
from modernfinance.models.market import AgentType, FinancialContext, LLMAnalysis
from modernfinance.providers.base_provider import HTTPProvider, PerspectiveProvider, ProviderConfig
from modernfinance.providers.llm.prompts import (
    JSON_ONLY_SUFFIX,
    build_agent_prompt,
    build_classification_prompt,
    parse_analysis,
    parse_classification,
)

logger = get_logger(__name__)


class AnthropicPerspectiveProvider(HTTPProvider, PerspectiveProvider):
    """
    Anthropic adapter.

    STAGE-ANTHROPIC: Anthropic perspective generation
    """

    def __init__(
        self,
        config: ProviderConfig,
        api_version: str = "2023-06-01",
        client: httpx.AsyncClient | None = None,
    ):
        self.api_version = api_version
        super().__init__(config, client=client)

    def _default_headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.config.api_key or "",
            "anthropic-version": self.api_version,
            "content-type": "application/json",
        }

    async def _complete(self, prompt: str, details: dict) -> str:
        payload = await self._request(
            "POST",
            "/messages",
            json={
                "model": self.config.default_model,
                "max_tokens": self.config.max_tokens,
                "temperature": self.config.temperature,
                "messages": [{"role": "user", "content": prompt + JSON_ONLY_SUFFIX}],
            },
        )

        blocks = (payload or {}).get("content") or []
        text = next(
            (block.get("text") for block in blocks if isinstance(block, dict) and block.get("type", "text") == "text"),
            None,
        )
        if not text:
            raise ProviderResponseError("Anthropic returned no text content", details=details)
        return text

    async def generate_analysis(self, agent_type: AgentType, context: FinancialContext) -> LLMAnalysis:
        text = await self._complete(
            build_agent_prompt(agent_type, context),
            {"provider": self.name, "symbol": context.symbol},
        )

        analysis = parse_analysis(text, self.name)
        log_stage(
            logger,
            "ANTHROPIC.1",
            "Anthropic perspective generated",
            level="debug",
            symbol=context.symbol,
            agent_type=agent_type.value,
        )
        return analysis

    async def classify_contribution(self, text: str, symbol: str | None = None) -> ContributionLabel:
        completion = await self._complete(
            build_classification_prompt(text, symbol),
            {"provider": self.name, "symbol": symbol},
        )

        label = parse_classification(completion, self.name)
        log_stage(logger, "ANTHROPIC.2", "Anthropic contribution classified", level="debug", type=label.type.value)
        return label
