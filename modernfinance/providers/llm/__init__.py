"""LLM perspective provider adapters and the shared prompt builder."""

from .anthropic_provider import AnthropicPerspectiveProvider
from .gemini_provider import GeminiPerspectiveProvider
from .openai_provider import OpenAIPerspectiveProvider
from .prompts import build_agent_prompt, build_classification_prompt, extract_json, parse_analysis, parse_classification

__all__ = [
    "AnthropicPerspectiveProvider",
    "GeminiPerspectiveProvider",
    "OpenAIPerspectiveProvider",
    "build_agent_prompt",
    "build_classification_prompt",
    "extract_json",
    "parse_analysis",
    "parse_classification",
]
