"""LLM model abstraction for consistent model access across the application."""

import os
from typing import Protocol

from loguru import logger
from pydantic_ai import Agent
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.models.openai import OpenAIModel

from boxmatch.config.settings import Settings, settings


def get_model(provider: str, model_name: str):
    if provider == "openai":
        # pydantic_ai reads the key from the environment
        if settings.openai_api_key and not os.getenv("OPENAI_API_KEY"):
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key
        return OpenAIModel(model_name)

    if provider == "anthropic":
        if settings.anthropic_api_key and not os.getenv("ANTHROPIC_API_KEY"):
            os.environ["ANTHROPIC_API_KEY"] = settings.anthropic_api_key
        return AnthropicModel(model_name)

    raise ValueError(f"Unsupported LLM provider: {provider}")


class ModelClient(Protocol):
    """Single-turn text completion: one system prompt, one user message."""

    async def complete(self, system_prompt: str, user_message: str) -> str: ...


class AgentModelClient:
    """ModelClient backed by a pydantic_ai Agent with plain-text output."""

    def __init__(self, provider: str, model_name: str, max_tokens: int) -> None:
        self.provider = provider
        self.model_name = model_name
        self.max_tokens = max_tokens

    async def complete(self, system_prompt: str, user_message: str) -> str:
        agent = Agent(
            model=get_model(self.provider, self.model_name),
            system_prompt=system_prompt,
            output_type=str,
            model_settings={"max_tokens": self.max_tokens},
        )
        logger.debug(
            "LLM request",
            provider=self.provider,
            model=self.model_name,
            user_prompt_length=len(user_message),
        )
        result = await agent.run(user_message)
        return result.output


def create_model_client(config: Settings = settings, purpose: str = "intent") -> ModelClient | None:
    """Build the model client for "intent" or "explanation" calls.

    Returns None when no credential is set for the configured provider.
    """
    if not config.llm_api_key:
        logger.warning(
            f"No API key configured for LLM provider '{config.llm_provider}'. "
            "Match requests will use deterministic parsing and template explanations."
        )
        return None
    return AgentModelClient(config.llm_provider, config.model_name_for(purpose), config.llm_max_tokens)
