"""OpenAI agent implementation"""

import base64
import json
import logging
from typing import List, Dict, Any, Optional

from openai import OpenAI

from ..config import Config
from ..storage.schema import Capability
from .base import BaseAgent

logger = logging.getLogger(__name__)


class OpenAIAgent(BaseAgent):
    """Agent using an OpenAI-compatible chat completions endpoint"""

    def __init__(
        self,
        config: Config,
        model: Optional[str] = None,
        client: Any = None,
    ):
        """
        Initialize OpenAI agent.

        Args:
            config: Configuration object
            model: Model identifier (defaults to model.openai.model)
            client: Pre-built OpenAI client
        """
        settings = config.model.openai
        super().__init__(config, model or settings.model, settings)

        if client is None:
            api_key = config.get_api_key("openai")
            if not api_key:
                raise ValueError(
                    f"{settings.api_key_env} not found in environment variables"
                )
            client = OpenAI(api_key=api_key, base_url=settings.base_url)
        self.client = client

        logger.info(f"Initialized OpenAIAgent with model: {self.model}")

    def _call_model(self, system: str, messages: List[Dict], tools: List[Dict]) -> Any:
        """Call OpenAI API"""
        full_messages = [{"role": "system", "content": system}] + messages

        api_params = {
            "model": self.model,
            "messages": full_messages,
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
        }
        if tools:
            api_params["tools"] = tools
            api_params["tool_choice"] = "auto"

        return self.client.chat.completions.create(**api_params)

    def _parse_tool_use(self, response: Any) -> List[Dict]:
        """Extract tool calls from OpenAI response"""
        message = response.choices[0].message
        if not getattr(message, "tool_calls", None):
            return []

        tools = []
        for tool_call in message.tool_calls:
            try:
                arguments = json.loads(tool_call.function.arguments or "{}")
            except json.JSONDecodeError:
                logger.warning(
                    f"Malformed arguments for {tool_call.function.name}: "
                    f"{tool_call.function.arguments!r}"
                )
                arguments = {}
            tools.append(
                {
                    "id": tool_call.id,
                    "name": tool_call.function.name,
                    "input": arguments,
                }
            )
        return tools

    def _extract_text(self, response: Any) -> str:
        """Extract text from OpenAI response"""
        return response.choices[0].message.content or ""

    def _update_messages(
        self, messages: List[Dict], response: Any, tool_results: List[Dict]
    ) -> List[Dict]:
        """Update messages with the assistant response and tool results"""
        message = response.choices[0].message

        messages.append(
            {
                "role": "assistant",
                "content": message.content,
                "tool_calls": [
                    {
                        "id": tool_call.id,
                        "type": "function",
                        "function": {
                            "name": tool_call.function.name,
                            "arguments": tool_call.function.arguments,
                        },
                    }
                    for tool_call in message.tool_calls or []
                ],
            }
        )

        for tool_call, result in zip(message.tool_calls or [], tool_results):
            messages.append(
                {
                    "role": "tool",
                    "tool_call_id": tool_call.id,
                    "content": self._serialize_tool_result(result),
                }
            )

        return messages

    def _format_tool_definition(self, capability: Capability) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": capability.name,
                "description": capability.description,
                "parameters": capability.parameters.to_json_schema(),
            },
        }

    def complete(self, system: str, prompt: str, max_tokens: Optional[int] = None) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=self.settings.temperature,
            max_tokens=max_tokens or self.settings.max_tokens,
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
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {"name": name, "strict": True, "schema": schema},
            },
            temperature=self.settings.temperature,
            max_tokens=max_tokens or self.settings.max_tokens,
        )
        content = self._extract_text(response)
        if not content:
            raise ValueError(f"Model returned no {name} object")
        return json.loads(content)

    def analyze_image(
        self, prompt: str, image_bytes: bytes, max_tokens: Optional[int] = None
    ) -> str:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/png;base64,{encoded}"},
                        },
                    ],
                }
            ],
            max_tokens=max_tokens or self.settings.max_tokens,
        )
        return self._extract_text(response) or "No analysis generated"
