"""Agent factory for creating model-specific agents"""

import logging
from typing import Optional

from ..config import Config
from .base import BaseAgent
from .claude_agent import BedrockClaudeAgent, ClaudeAgent
from .openai_agent import OpenAIAgent

logger = logging.getLogger(__name__)


class AgentFactory:
    """Factory for creating appropriate agent based on model selection"""

    @staticmethod
    def create(config: Config, provider: Optional[str] = None) -> BaseAgent:
        """
        Create an agent instance for the configured provider.

        Args:
            config: Configuration object
            provider: Override for config.model.provider ("claude", "bedrock", "openai")

        Returns:
            Agent instance

        Raises:
            ValueError: If the provider is not supported
        """
        provider = (provider or config.model.provider).lower()

        if provider == "claude":
            logger.info("Creating ClaudeAgent")
            return ClaudeAgent(config)

        elif provider == "bedrock":
            logger.info("Creating BedrockClaudeAgent")
            return BedrockClaudeAgent(config)

        elif provider == "openai":
            logger.info("Creating OpenAIAgent")
            return OpenAIAgent(config)

        else:
            raise ValueError(
                f"Unsupported provider: {provider}. Supported: claude, bedrock, openai"
            )
