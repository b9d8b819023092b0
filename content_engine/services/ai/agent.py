"""
Generation agent: a chat model with fixed instructions and callable tools.

The agent runs the OpenAI tool-calling loop: the model may call registered
tools (e.g. the knowledge query tool) any number of times, up to
`max_tool_rounds`, before producing its final text.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from content_engine.services.ai.clients import ChatClient
from content_engine.services.errors import EmptyRetrievalError, GenerationError, PipelineError

logger = logging.getLogger(__name__)

NO_TOOL_RESULT = "No matching knowledge found."


@dataclass
class AgentTool:
    """A function the model may call. `handler` receives the decoded arguments."""

    name: str
    description: str
    parameters: Dict[str, Any]
    handler: Callable[..., Awaitable[str]]

    def to_openai_spec(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def coerce_arguments(self, arguments: Any) -> Dict[str, Any]:
        """
        Fit model-supplied arguments to the declared parameter schema.

        When the schema declares properties, unknown keys are dropped and
        integer/number values given as strings are converted. Raises
        TypeError or ValueError when a value cannot be converted or a
        required argument is missing.
        """
        if not isinstance(arguments, dict):
            raise TypeError(f"arguments must be an object, got {type(arguments).__name__}")

        properties = self.parameters.get("properties")
        if properties is None:
            return dict(arguments)

        coerced: Dict[str, Any] = {}
        for key, value in arguments.items():
            schema = properties.get(key)
            if schema is None:
                logger.debug(f"Dropping unknown argument {key!r} for tool {self.name}")
                continue
            kind = schema.get("type")
            if kind == "integer":
                value = int(value)
            elif kind == "number":
                value = float(value)
            elif kind == "string" and not isinstance(value, str):
                value = str(value)
            coerced[key] = value

        missing = [k for k in self.parameters.get("required", []) if k not in coerced]
        if missing:
            raise ValueError(f"missing required arguments: {', '.join(missing)}")
        return coerced


@dataclass
class AgentResponse:
    text: str
    tool_calls: List[Dict[str, Any]] = field(default_factory=list)


class ContentAgent:
    """
    Usage:
        agent = ContentAgent(chat_client, instructions, tools=[knowledge_tool])
        response = await agent.generate(prompt)
        print(response.text)
    """

    def __init__(
        self,
        chat_client: ChatClient,
        instructions: str,
        tools: Optional[List[AgentTool]] = None,
        max_tool_rounds: int = 3,
        temperature: float = 0.7,
        name: str = "content-agent",
    ):
        self.chat_client = chat_client
        self.instructions = instructions
        self.tools = {tool.name: tool for tool in (tools or [])}
        self.max_tool_rounds = max(0, int(max_tool_rounds))
        self.temperature = temperature
        self.name = name

    async def generate(self, prompt: str) -> AgentResponse:
        """
        Run one generation for `prompt`.

        Raises:
            GenerationError: The model call failed, a tool failed, or the model
                returned no text
        """
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": self.instructions},
            {"role": "user", "content": prompt},
        ]
        tool_specs = [tool.to_openai_spec() for tool in self.tools.values()] or None
        executed: List[Dict[str, Any]] = []

        for round_index in range(self.max_tool_rounds + 1):
            # The final round forbids tools so the model has to answer
            allow_tools = tool_specs if round_index < self.max_tool_rounds else None
            message = await self.chat_client.complete_with_tools(
                messages, tools=allow_tools, temperature=self.temperature
            )

            tool_calls = getattr(message, "tool_calls", None) or []
            if not tool_calls:
                text = (message.content or "").strip()
                if not text:
                    raise GenerationError(f"{self.name} returned an empty response")
                logger.info(
                    f"{self.name} generated {len(text)} chars after {len(executed)} tool calls"
                )
                return AgentResponse(text=text, tool_calls=executed)

            messages.append({
                "role": "assistant",
                "content": message.content,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {
                            "name": call.function.name,
                            "arguments": call.function.arguments,
                        },
                    }
                    for call in tool_calls
                ],
            })

            for call in tool_calls:
                output = await self._run_tool(call.function.name, call.function.arguments)
                executed.append({"name": call.function.name, "arguments": call.function.arguments})
                messages.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": output,
                })

        raise GenerationError(f"{self.name} exceeded {self.max_tool_rounds} tool rounds")

    async def _run_tool(self, name: str, raw_arguments: str) -> str:
        tool = self.tools.get(name)
        if tool is None:
            raise GenerationError(f"Model requested unknown tool: {name}")

        try:
            arguments = tool.coerce_arguments(json.loads(raw_arguments or "{}"))
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            raise GenerationError(f"Invalid arguments for tool {name}: {e}") from e

        logger.debug(f"Running tool {name} with {arguments}")
        try:
            return await tool.handler(**arguments)
        except EmptyRetrievalError as e:
            logger.info(f"Tool {name} found nothing: {e}")
            return NO_TOOL_RESULT
        except GenerationError:
            raise
        except (PipelineError, TypeError, ValueError) as e:
            logger.error(f"Tool {name} failed: {e}")
            raise GenerationError(f"Tool {name} failed: {e}") from e
