"""Registry of agent definitions loaded from Markdown files.

Each agent is a ``.md`` file: YAML front matter declares the metadata and the
Markdown body becomes the agent's system prompt::

    ---
    name: character
    description: Designs characters
    mode: subagent
    priority: 4
    tools: [create_character, update_character]
    ---
    You are the character designer...
"""

from __future__ import annotations

import logging
import pathlib
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

import yaml

from ..errors import ConfigError
from .manifest import normalize_agent_metadata, validate_agent_metadata

logger = logging.getLogger(__name__)

PRESETS_DIR = pathlib.Path(__file__).parent / "presets"

_FRONT_MATTER = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)(.*)\Z", re.DOTALL)


@dataclass
class AgentDefinition:
    """Static metadata describing one agent."""

    id: str
    name: str
    description: str = ""
    mode: str = "subagent"
    priority: int = 0
    tools: Optional[List[str]] = None  # None means every tool is allowed
    system_prompt: str = ""
    model: Optional[str] = None
    temperature: Optional[float] = None
    disabled: bool = False
    role: str = ""
    capabilities: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.role:
            self.role = self.name

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, system_prompt: str = "", default_id: str = "") -> "AgentDefinition":
        errors = validate_agent_metadata(data)
        if errors:
            raise ConfigError("; ".join(errors))
        data = normalize_agent_metadata(data)
        name = data.get("name") or default_id
        if not name:
            raise ConfigError("Agent definition requires a name")
        tools = data.get("tools")
        return cls(
            id=str(data.get("id") or name),
            name=str(name),
            description=data.get("description") or "",
            mode=data.get("mode") or "subagent",
            priority=int(data.get("priority") or 0),
            tools=list(tools) if tools is not None else None,
            system_prompt=system_prompt,
            model=data.get("model"),
            temperature=data.get("temperature"),
            disabled=bool(data.get("disabled", False)),
            role=data.get("role") or "",
            capabilities=list(data.get("capabilities") or []),
        )

    def allows_tool(self, tool_name: str) -> bool:
        return self.tools is None or tool_name in self.tools

    def full_prompt(self, context: Optional[Mapping[str, Any]] = None) -> str:
        """System prompt with team and tool sections appended where relevant."""
        context = context or {}
        prompt = self.system_prompt
        team_prompt = context.get("team_prompt")
        if self.mode == "primary" and team_prompt:
            prompt += "\n\n" + team_prompt
        if context.get("available_tools") and self.tools is not None:
            prompt += "\n\n## Available tools\n\n"
            prompt += "\n".join(f"- `{tool}`" for tool in self.tools)
        return prompt

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "mode": self.mode,
            "priority": self.priority,
            "tools": self.tools,
            "model": self.model,
            "role": self.role,
            "capabilities": list(self.capabilities),
        }


class AgentLookup(Protocol):
    """The part of a registry the orchestrator depends on."""

    def get(self, agent_id: str) -> Optional[AgentDefinition]:  # pragma: no cover - interface
        ...

    def get_all(self) -> List[AgentDefinition]:  # pragma: no cover - interface
        ...


def parse_front_matter(text: str) -> tuple[Dict[str, Any], str]:
    """Split a Markdown document into (metadata, body)."""
    match = _FRONT_MATTER.match(text)
    if not match:
        return {}, text.strip()
    metadata = yaml.safe_load(match.group(1)) or {}
    if not isinstance(metadata, dict):
        raise ConfigError("Front matter must be a mapping")
    return metadata, match.group(2).strip()


class AgentRegistry:
    """Keeps track of the agents available to the orchestrator."""

    def __init__(self, paths: Iterable[str | pathlib.Path] = (), *, include_presets: bool = True) -> None:
        self._agents: Dict[str, AgentDefinition] = {}
        self.load_paths: List[pathlib.Path] = []
        if include_presets:
            self.add_path(PRESETS_DIR)
        for path in paths:
            self.add_path(path)

    def add_path(self, path: str | pathlib.Path) -> "AgentRegistry":
        path = pathlib.Path(path)
        if path not in self.load_paths:
            self.load_paths.append(path)
        return self

    def load_all(self) -> "AgentRegistry":
        for directory in self.load_paths:
            if not directory.is_dir():
                continue
            for file in sorted(directory.glob("*.md")):
                try:
                    agent = self.load_file(file)
                except (OSError, yaml.YAMLError, ConfigError) as exc:
                    logger.warning("Failed to load agent %s: %s", file.name, exc)
                    continue
                if not agent.disabled:
                    self._agents[agent.id] = agent
        logger.info("Loaded %d agents: %s", len(self._agents), ", ".join(self._agents))
        return self

    def load_file(self, path: str | pathlib.Path) -> AgentDefinition:
        path = pathlib.Path(path)
        metadata, body = parse_front_matter(path.read_text(encoding="utf-8"))
        return AgentDefinition.from_mapping(metadata, system_prompt=body, default_id=path.stem)

    def register(self, agent: AgentDefinition, *, overwrite: bool = False) -> None:
        if agent.id in self._agents and not overwrite:
            raise ValueError(f"Agent {agent.id} already registered")
        self._agents[agent.id] = agent

    def get(self, agent_id: str) -> Optional[AgentDefinition]:
        return self._agents.get(agent_id)

    def get_all(self) -> List[AgentDefinition]:
        return list(self._agents.values())

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._agents

    def __len__(self) -> int:
        return len(self._agents)

    def get_primary(self) -> List[AgentDefinition]:
        return [agent for agent in self._agents.values() if agent.mode == "primary"]

    def get_subagents(self) -> List[AgentDefinition]:
        return [agent for agent in self._agents.values() if agent.mode == "subagent"]

    def find_by_tool(self, tool_name: str) -> List[AgentDefinition]:
        return [agent for agent in self._agents.values() if agent.allows_tool(tool_name)]

    def can_use_tool(self, agent_id: str, tool_name: str) -> bool:
        agent = self.get(agent_id)
        return agent is not None and agent.allows_tool(tool_name)

    def team_prompt(self) -> str:
        lines = ["## Your team", "", "You can delegate work to the following specialists:", ""]
        for agent in self.get_subagents():
            lines.append(f"### {agent.name} (`{agent.id}`)")
            lines.append(agent.description)
            lines.append("")
        lines.append("Use the `delegate_task` tool to hand work over.")
        return "\n".join(lines)

    def full_prompt(self, agent_id: str, context: Optional[Mapping[str, Any]] = None) -> Optional[str]:
        agent = self.get(agent_id)
        if agent is None:
            return None
        merged = {"team_prompt": self.team_prompt()}
        merged.update(context or {})
        return agent.full_prompt(merged)
