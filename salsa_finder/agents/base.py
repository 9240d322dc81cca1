"""Base agent implementation."""

import logging
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from salsa_finder.models.config import AgentConfig, APIConfig

logger = logging.getLogger(__name__)


class BaseAgent:
    """Base class for all agents in Salsa Finder."""

    def __init__(
        self,
        name: str,
        config: AgentConfig,
        api_config: APIConfig,
        client: Optional[AsyncOpenAI] = None,
    ):
        """Initialize the base agent.

        Args:
            name: The name of the agent
            config: The agent configuration
            api_config: API keys and configuration
            client: Optional preconfigured OpenAI client
        """
        self.name = name
        self.config = config
        self.api_config = api_config
        self.client = client or AsyncOpenAI(api_key=api_config.openai_api_key)

        logger.info(f"Initialized {name} agent")

    def _create_prompt(self, message_content: str) -> list[dict[str, str]]:
        """Create a prompt for the agent.

        Args:
            message_content: The content of the message

        Returns:
            List of message dictionaries for the OpenAI API
        """
        messages = []

        if self.config.system_prompt:
            messages.append({"role": "system", "content": self.config.system_prompt})

        messages.append({"role": "user", "content": message_content})

        return messages

    async def _call_llm(self, messages: list[dict[str, str]]) -> Dict[str, Any]:
        """Call the LLM with the given messages.

        Args:
            messages: The messages to send to the LLM

        Returns:
            The LLM response
        """
        response = await self.client.chat.completions.create(
            model=self.config.model,
            messages=messages,
            temperature=self.config.temperature,
        )
        return response.model_dump()

    @staticmethod
    def _response_text(response: Dict[str, Any]) -> str:
        """Pull the first choice's message text out of a chat completion dump."""
        choices = response.get("choices") or [{}]
        return (choices[0].get("message") or {}).get("content") or ""
