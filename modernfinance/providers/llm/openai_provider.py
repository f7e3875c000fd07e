"""
OpenAI Perspective Provider

Chat completion with ``response_format={"type": "json_object"}`` through
the official AsyncOpenAI client. SDK exceptions are translated into the
internal provider hierarchy.
"""

from openai import APIConnectionError, APIError, APITimeoutError, AsyncOpenAI, AuthenticationError, RateLimitError

from modernfinance.core.exceptions import (
    ProviderAPIError,
    ProviderAuthenticationError,
    ProviderNotAvailableError,
    ProviderResponseError,
    ProviderTimeoutError,
    RateLimitExceededError,
)
from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.models.collaboration import ContributionLabel
from modernfinance.models.market import AgentType, FinancialContext, LLMAnalysis
from modernfinance.providers.base_provider import PerspectiveProvider, ProviderConfig
from modernfinance.providers.llm.prompts import (
    SYSTEM_PROMPT,
    build_agent_prompt,
    build_classification_prompt,
    parse_analysis,
    parse_classification,
)

logger = get_logger(__name__)

OPENAI_DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAIPerspectiveProvider(PerspectiveProvider):
    """
    OpenAI adapter.

    STAGE-OPENAI: OpenAI perspective generation
    """

    def __init__(self, config: ProviderConfig, client: AsyncOpenAI | None = None):
        super().__init__(config)
        self.client = client or AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url if config.base_url and config.base_url != OPENAI_DEFAULT_BASE_URL else None,
            timeout=config.timeout,
            max_retries=0,  # the fallback chain moves on instead of retrying
        )

    async def _complete(self, prompt: str, details: dict) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.config.default_model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                response_format={"type": "json_object"},
            )
        except AuthenticationError as e:
            raise ProviderAuthenticationError("Invalid OpenAI API key", details=details) from e
        except RateLimitError as e:
            raise RateLimitExceededError("OpenAI rate limit exceeded", details=details) from e
        except APITimeoutError as e:
            raise ProviderTimeoutError("OpenAI request timed out", details=details) from e
        except APIConnectionError as e:
            raise ProviderNotAvailableError("Could not connect to OpenAI", details=details) from e
        except APIError as e:
            raise ProviderAPIError(
                f"OpenAI API returned an error: {e.message}",
                details={**details, "code": e.code},
            ) from e

        if not response.choices or not response.choices[0].message.content:
            raise ProviderResponseError("OpenAI returned an empty completion", details=details)
        return response.choices[0].message.content

    async def generate_analysis(self, agent_type: AgentType, context: FinancialContext) -> LLMAnalysis:
        details = {"provider": self.name, "symbol": context.symbol, "agent_type": agent_type.value}
        text = await self._complete(build_agent_prompt(agent_type, context), details)

        analysis = parse_analysis(text, self.name)
        log_stage(
            logger,
            "OPENAI.1",
            "OpenAI perspective generated",
            level="debug",
            **details,
        )
        return analysis

    async def classify_contribution(self, text: str, symbol: str | None = None) -> ContributionLabel:
        details = {"provider": self.name, "symbol": symbol}
        completion = await self._complete(build_classification_prompt(text, symbol), details)

        label = parse_classification(completion, self.name)
        log_stage(logger, "OPENAI.2", "OpenAI contribution classified", level="debug", type=label.type.value, **details)
        return label

    async def close(self) -> None:
        await self.client.close()
