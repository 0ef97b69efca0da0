from shadebot.services.llm.base import LLMProvider, LLMProviderError, LLMResponse
from shadebot.services.llm.openai_provider import OpenAIProvider

__all__ = ["LLMProvider", "LLMProviderError", "LLMResponse", "OpenAIProvider"]
