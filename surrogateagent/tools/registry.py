from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

import structlog

from .base import AgentType, Tool, ToolResult, failure

logger = structlog.get_logger()


@dataclass(frozen=True)
class CommandSpec:
    name: str
    params: dict[str, str] = field(default_factory=dict)
    required: tuple[str, ...] = ()
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class ToolDefinition:
    agent: AgentType
    label: str
    description: str
    tool: Tool
    commands: tuple[CommandSpec, ...] = ()


class ToolRegistry:
    def __init__(self, definitions: Iterable[ToolDefinition]) -> None:
        self._tools: dict[AgentType, ToolDefinition] = {}
        for definition in definitions:
            if definition.agent in self._tools:
                raise ValueError(f"Agent '{definition.agent.value}' registered twice.")
            if definition.tool.agent is not definition.agent:
                raise ValueError(
                    f"Tool for '{definition.tool.agent.value}' registered as "
                    f"'{definition.agent.value}'."
                )
            self._tools[definition.agent] = definition
        missing = [agent.value for agent in AgentType if agent not in self._tools]
        if missing:
            raise ValueError(f"No executor registered for: {', '.join(missing)}.")

    def get_definition(self, agent: AgentType) -> ToolDefinition:
        return self._tools[agent]

    def list_agents(self) -> list[AgentType]:
        return list(AgentType)

    def dispatch(self, agent: AgentType, action: str, params: Any) -> ToolResult:
        definition = self._tools[agent]
        clean_params = params if isinstance(params, dict) else {}
        clean_action = (action or "").strip()
        try:
            result = definition.tool.run(clean_action, clean_params)
        except Exception as exc:
            logger.error(
                "tool.dispatch_failed",
                agent=agent.value,
                action=clean_action,
                error=str(exc),
            )
            return failure(f"{definition.label} could not complete '{clean_action}': {exc}")
        logger.info(
            "tool.dispatched",
            agent=agent.value,
            action=clean_action,
            success=result.success,
            payload_type=result.payload_type.value if result.payload_type else None,
        )
        return result

    def render_for_prompt(self) -> str:
        lines: list[str] = []
        position = 0
        for agent in AgentType:
            definition = self._tools[agent]
            position += 1
            lines.append(f'{position}. **{definition.label}** ("{agent.value}"): {definition.description}')
            for command in definition.commands:
                params = ", ".join(
                    f"{name}{' (required)' if name in command.required else ''}: {desc}"
                    for name, desc in command.params.items()
                )
                lines.append(f'   - Command: "{command.name}" | Params: {params or "none"}')
                for note in command.notes:
                    lines.append(f"     - {note}")
        return "\n".join(lines)
