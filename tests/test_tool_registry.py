import unittest

from surrogateagent.tools.base import AgentType, Tool, ToolResult
from surrogateagent.tools.registry import CommandSpec, ToolDefinition, ToolRegistry


class _RecordingTool(Tool):
    def __init__(self, agent: AgentType) -> None:
        self.agent = agent
        self.calls: list[tuple[str, dict]] = []

    def run(self, action, params):
        self.calls.append((action, params))
        return ToolResult(success=True, message=f"{self.agent.value}:{action}")


class _ExplodingTool(Tool):
    agent = AgentType.DOCS

    def run(self, action, params):
        raise RuntimeError("disk full")


def _definitions(overrides=None):
    overrides = overrides or {}
    out = []
    for agent in AgentType:
        tool = overrides.get(agent) or _RecordingTool(agent)
        out.append(
            ToolDefinition(
                agent=agent,
                label=f"{agent.value} Agent",
                description=f"Handles {agent.value.lower()}.",
                tool=tool,
                commands=(
                    CommandSpec(name="do_it", params={"x": "thing", "y": "other"}, required=("x",)),
                )
                if agent is not AgentType.CHAT
                else (),
            )
        )
    return out


class ToolRegistryTests(unittest.TestCase):
    def test_missing_agent_fails_construction(self):
        definitions = [d for d in _definitions() if d.agent is not AgentType.FINANCE]
        with self.assertRaises(ValueError) as ctx:
            ToolRegistry(definitions)
        self.assertIn("Finance", str(ctx.exception))

    def test_duplicate_agent_fails_construction(self):
        definitions = _definitions()
        definitions.append(definitions[0])
        with self.assertRaises(ValueError):
            ToolRegistry(definitions)

    def test_dispatch_strips_action_and_replaces_non_mapping_params(self):
        registry = ToolRegistry(_definitions())
        result = registry.dispatch(AgentType.SCHEDULE, "  list_events ", ["not", "a", "dict"])
        self.assertTrue(result.success)
        tool = registry.get_definition(AgentType.SCHEDULE).tool
        self.assertEqual(tool.calls, [("list_events", {})])

    def test_dispatch_turns_executor_exception_into_failure(self):
        registry = ToolRegistry(_definitions({AgentType.DOCS: _ExplodingTool()}))
        result = registry.dispatch(AgentType.DOCS, "create_doc", {})
        self.assertFalse(result.success)
        self.assertIn("disk full", result.message)
        self.assertIn("Docs Agent", result.message)

    def test_render_for_prompt_lists_every_agent_with_commands(self):
        rendered = ToolRegistry(_definitions()).render_for_prompt()
        for agent in AgentType:
            self.assertIn(f'("{agent.value}")', rendered)
        self.assertIn('Command: "do_it" | Params: x (required): thing, y: other', rendered)


if __name__ == "__main__":
    unittest.main()
