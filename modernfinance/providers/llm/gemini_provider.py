"""
Google Gemini Perspective Provider

Uses the google-generativeai SDK. ``genai.configure`` is process-global,
which is fine with one Google key per process.
"""

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from modernfinance.core.exceptions import (
    ProviderAPIError,
    ProviderAuthenticationError,
    ProviderNotAvailableError,
    ProviderResponseError,
    RateLimitExceededError,
)
from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.models.collaboration import ContributionLabel
from modernfinance.models.market import AgentType, FinancialContext, LLMAnalysis
from modernfinance.providers.base_provider import PerspectiveProvider, ProviderConfig
from modernfinance.providers.llm.prompts import (
    JSON_ONLY_SUFFIX,
    build_agent_prompt,
    build_classification_prompt,
    parse_analysis,
    parse_classification,
)

logger = get_logger(__name__)


class GeminiPerspectiveProvider(PerspectiveProvider):
    """
    Gemini adapter.

    STAGE-GEMINI: Gemini perspective generation
    """

    def __init__(self, config: ProviderConfig, model: "genai.GenerativeModel | None" = None):
        super().__init__(config)
        if model is None:
            genai.configure(api_key=config.api_key)
            model = genai.GenerativeModel(config.default_model)
        self.model = model

    def _response_text(self, response) -> str:
        try:
            return response.text
        except (ValueError, IndexError, AttributeError) as e:
            # Raised by the SDK when the candidate was blocked or is empty
            raise ProviderResponseError(
                "Gemini returned no text content",
                details={"provider": self.name, "error": str(e)},
            ) from e

    async def _complete(self, prompt: str, details: dict) -> str:
        try:
            response = await self.model.generate_content_async(
                prompt + JSON_ONLY_SUFFIX,
                generation_config={
                    "temperature": self.config.temperature,
                    "max_output_tokens": self.config.max_tokens,
                },
            )
        except google_exceptions.Unauthenticated as e:
            raise ProviderAuthenticationError("Invalid Gemini API key", details=details) from e
        except google_exceptions.PermissionDenied as e:
            raise ProviderAuthenticationError("Gemini API key not permitted", details=details) from e
        except google_exceptions.ResourceExhausted as e:
            raise RateLimitExceededError("Gemini rate limit exceeded", details=details) from e
        except google_exceptions.ServiceUnavailable as e:
            raise ProviderNotAvailableError("Gemini service unavailable", details=details) from e
        except google_exceptions.GoogleAPIError as e:
            raise ProviderAPIError(f"Gemini API error: {e}", details=details) from e
        return self._response_text(response)

    async def generate_analysis(self, agent_type: AgentType, context: FinancialContext) -> LLMAnalysis:
        details = {"provider": self.name, "symbol": context.symbol, "agent_type": agent_type.value}
        analysis = parse_analysis(await self._complete(build_agent_prompt(agent_type, context), details), self.name)
        log_stage(logger, "GEMINI.1", "Gemini perspective generated", level="debug", **details)
        return analysis

    async def classify_contribution(self, text: str, symbol: str | None = None) -> ContributionLabel:
        details = {"provider": self.name, "symbol": symbol}
        label = parse_classification(await self._complete(build_classification_prompt(text, symbol), details), self.name)
        log_stage(logger, "GEMINI.2", "Gemini contribution classified", level="debug", type=label.type.value, **details)
        return label
