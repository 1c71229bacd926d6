"""Claude agent implementation"""

import base64
import logging
from typing import List, Dict, Any, Optional

from anthropic import Anthropic, AnthropicBedrock

from ..config import Config, ModelSpecificConfig
from ..storage.schema import Capability
from .base import BaseAgent

logger = logging.getLogger(__name__)


class ClaudeAgent(BaseAgent):
    """Agent using Claude through the Anthropic API"""

    def __init__(
        self,
        config: Config,
        model: Optional[str] = None,
        client: Any = None,
    ):
        """
        Initialize Claude agent.

        Args:
            config: Configuration object
            model: Claude model identifier (defaults to model.claude.model)
            client: Pre-built Anthropic client
        """
        settings = self._settings(config)
        super().__init__(config, model or settings.model, settings)
        self.client = client or self._build_client()
        logger.info(f"Initialized {type(self).__name__} with model: {self.model}")

    def _settings(self, config: Config) -> ModelSpecificConfig:
        return config.model.claude

    def _build_client(self) -> Any:
        api_key = self.config.get_api_key("claude")
        if not api_key:
            raise ValueError(
                f"{self.settings.api_key_env} not found in environment variables"
            )
        return Anthropic(api_key=api_key)

    def _call_model(self, system: str, messages: List[Dict], tools: List[Dict]) -> Any:
        """Call Claude API"""
        api_params = {
            "model": self.model,
            "system": system,
            "messages": messages,
            "max_tokens": self.settings.max_tokens,
            "temperature": self.settings.temperature,
        }
        if tools:
            api_params["tools"] = tools

        return self.client.messages.create(**api_params)

    def _parse_tool_use(self, response: Any) -> List[Dict]:
        """Extract tool calls from Claude response"""
        tools = []
        for block in response.content:
            if block.type == "tool_use":
                tools.append(
                    {
                        "id": block.id,
                        "name": block.name,
                        "input": block.input,
                    }
                )
        return tools

    def _extract_text(self, response: Any) -> str:
        """Extract text from Claude response"""
        parts = [block.text for block in response.content if block.type == "text"]
        return "\n".join(p for p in parts if p)

    def _update_messages(
        self, messages: List[Dict], response: Any, tool_results: List[Dict]
    ) -> List[Dict]:
        """Update messages with Claude's response and tool results"""
        messages.append({"role": "assistant", "content": response.content})

        tool_uses = self._parse_tool_use(response)
        tool_result_content = []

        for tool_use, result in zip(tool_uses, tool_results):
            tool_result_content.append(
                {
                    "type": "tool_result",
                    "tool_use_id": tool_use["id"],
                    "content": self._serialize_tool_result(result),
                    "is_error": result.get("status") == "error",
                }
            )

        if tool_result_content:
            messages.append({"role": "user", "content": tool_result_content})

        return messages

    def _format_tool_definition(self, capability: Capability) -> Dict[str, Any]:
        return {
            "name": capability.name,
            "description": capability.description,
            "input_schema": capability.parameters.to_json_schema(),
        }

    def complete(self, system: str, prompt: str, max_tokens: Optional[int] = None) -> str:
        response = self.client.messages.create(
            model=self.model,
            system=system,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens or self.settings.max_tokens,
            temperature=self.settings.temperature,
        )
        return self._extract_text(response)

    def generate_structured(
        self,
        system: str,
        prompt: str,
        name: str,
        schema: Dict[str, Any],
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Structured output by forcing a single tool whose input is the schema"""
        response = self.client.messages.create(
            model=self.model,
            system=system,
            messages=[{"role": "user", "content": prompt}],
            tools=[
                {
                    "name": name,
                    "description": f"Return the {name} object",
                    "input_schema": schema,
                }
            ],
            tool_choice={"type": "tool", "name": name},
            max_tokens=max_tokens or self.settings.max_tokens,
            temperature=self.settings.temperature,
        )

        for tool_use in self._parse_tool_use(response):
            if tool_use["name"] == name:
                return tool_use["input"]
        raise ValueError(f"Model returned no {name} object")

    def analyze_image(
        self, prompt: str, image_bytes: bytes, max_tokens: Optional[int] = None
    ) -> str:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        response = self.client.messages.create(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": "image/png",
                                "data": encoded,
                            },
                        },
                    ],
                }
            ],
            max_tokens=max_tokens or self.settings.max_tokens,
        )
        return self._extract_text(response) or "No analysis generated"


class BedrockClaudeAgent(ClaudeAgent):
    """Claude served through Amazon Bedrock"""

    def _settings(self, config: Config) -> ModelSpecificConfig:
        return config.model.bedrock

    def _build_client(self) -> Any:
        # Credentials come from the standard AWS chain
        return AnthropicBedrock(aws_region=self.settings.region or "us-east-1")
