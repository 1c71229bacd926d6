"""Base agent class for multi-model support"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..config import Config, ModelSpecificConfig
from ..storage.schema import Capability, ToolCallRecord, ToolInvocationResult

if TYPE_CHECKING:
    from .tools import ToolAdapter

logger = logging.getLogger(__name__)


@dataclass
class ToolLoopResult:
    """Outcome of one bounded tool-calling conversation"""

    narrative: str
    turns: int
    tool_calls: List[ToolCallRecord] = field(default_factory=list)
    budget_exhausted: bool = False


class BaseAgent(ABC):
    """Abstract base class for all model agents"""

    def __init__(self, config: Config, model: str, settings: ModelSpecificConfig):
        """
        Initialize base agent.

        Args:
            config: Configuration object
            model: Provider model identifier
            settings: Provider-specific settings (max_tokens, temperature, ...)
        """
        self.config = config
        self.model = model
        self.settings = settings

    @abstractmethod
    def _call_model(self, system: str, messages: List[Dict], tools: List[Dict]) -> Any:
        """
        Call the underlying model API.

        Args:
            system: System prompt
            messages: Conversation messages
            tools: Tool definitions in the provider's format

        Returns:
            Model response object
        """
        pass

    @abstractmethod
    def _parse_tool_use(self, response: Any) -> List[Dict]:
        """
        Extract tool calls from model response.

        Args:
            response: Model response object

        Returns:
            List of tool calls with format: [{"id": str, "name": str, "input": dict}]
        """
        pass

    @abstractmethod
    def _extract_text(self, response: Any) -> str:
        """
        Extract text content from model response.

        Args:
            response: Model response object

        Returns:
            Text content
        """
        pass

    @abstractmethod
    def _update_messages(
        self, messages: List[Dict], response: Any, tool_results: List[Dict]
    ) -> List[Dict]:
        """
        Update message list with assistant response and tool results.

        Args:
            messages: Current message list
            response: Model response
            tool_results: Tool result payloads, in the order the calls were requested

        Returns:
            Updated message list
        """
        pass

    @abstractmethod
    def _format_tool_definition(self, capability: Capability) -> Dict[str, Any]:
        """Render a capability as a tool definition for this provider"""
        pass

    @abstractmethod
    def complete(self, system: str, prompt: str, max_tokens: Optional[int] = None) -> str:
        """Single-turn text completion"""
        pass

    @abstractmethod
    def generate_structured(
        self,
        system: str,
        prompt: str,
        name: str,
        schema: Dict[str, Any],
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Single-turn completion constrained to a JSON schema.

        Args:
            system: System prompt
            prompt: User prompt
            name: Schema name
            schema: JSON schema the output must match

        Returns:
            Parsed object
        """
        pass

    @abstractmethod
    def analyze_image(
        self, prompt: str, image_bytes: bytes, max_tokens: Optional[int] = None
    ) -> str:
        """Describe a PNG image given a text prompt"""
        pass

    def run_tool_loop(
        self,
        system: str,
        prompt: str,
        adapters: Dict[str, "ToolAdapter"],
        step_budget: int,
    ) -> ToolLoopResult:
        """
        Drive a bounded request/invoke/respond conversation.

        Each turn is one model call. A turn without tool requests ends the
        loop with that turn's text. Requested tools are dispatched in order
        and their results returned 1:1 in the same order. After step_budget
        turns the last narrative seen is returned; running out of turns is
        not an error.

        Args:
            system: System prompt
            prompt: Initial user prompt
            adapters: Bound tool adapters keyed by tool name
            step_budget: Maximum number of model turns

        Returns:
            ToolLoopResult with the final narrative and the tool-call log

        Raises:
            Exception: Model/provider failures propagate to the caller
        """
        if step_budget < 1:
            raise ValueError(f"step_budget must be at least 1, got {step_budget}")

        tools = [self._format_tool_definition(a.capability) for a in adapters.values()]
        messages: List[Dict] = [{"role": "user", "content": prompt}]
        tool_calls_log: List[ToolCallRecord] = []
        last_text = ""

        logger.info(
            f"Starting tool loop with {len(tools)} tools, budget {step_budget} turns"
        )

        for turn in range(step_budget):
            logger.debug(f"Turn {turn + 1}/{step_budget}")

            response = self._call_model(system, messages, tools)
            text = self._extract_text(response)
            if text:
                last_text = text

            tool_uses = self._parse_tool_use(response)
            if not tool_uses:
                logger.info(
                    f"Tool loop completed in {turn + 1} turns with {len(tool_calls_log)} tool calls"
                )
                return ToolLoopResult(
                    narrative=text or last_text,
                    turns=turn + 1,
                    tool_calls=tool_calls_log,
                )

            tool_results = []
            for tool_use in tool_uses:
                result = self._execute_tool(tool_use, adapters)
                if not result.ok:
                    logger.warning(f"Tool {tool_use['name']} failed: {result.summary}")
                tool_calls_log.append(
                    ToolCallRecord(
                        tool=tool_use["name"],
                        input=tool_use.get("input") or {},
                        call_id=result.call_id,
                        status=result.status,
                        summary=result.summary,
                    )
                )
                tool_results.append(result.to_model_payload())

            messages = self._update_messages(messages, response, tool_results)

        logger.warning(f"Step budget ({step_budget} turns) reached; returning last narrative")
        return ToolLoopResult(
            narrative=last_text,
            turns=step_budget,
            tool_calls=tool_calls_log,
            budget_exhausted=True,
        )

    def _execute_tool(
        self, tool_use: Dict, adapters: Dict[str, "ToolAdapter"]
    ) -> ToolInvocationResult:
        """
        Execute a tool call.

        Args:
            tool_use: Tool call dict with id, name and input
            adapters: Bound adapters

        Returns:
            Tool execution result (unknown tools produce an error result)
        """
        adapter = adapters.get(tool_use["name"])
        if adapter is None:
            logger.error(f"Unknown tool: {tool_use['name']}")
            return ToolInvocationResult.failure(
                tool_use["name"],
                tool_use.get("id") or "unknown",
                f"Unknown tool: {tool_use['name']}. Available: {', '.join(adapters)}",
            )
        return adapter.invoke(tool_use.get("input") or {})

    @staticmethod
    def _serialize_tool_result(result: Dict[str, Any]) -> str:
        return json.dumps(result, default=str)
