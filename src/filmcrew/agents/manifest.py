"""Agent front-matter validation utilities."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

AGENT_MODES = ("primary", "subagent")


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def validate_agent_metadata(metadata: Mapping[str, Any]) -> List[str]:
    """Return a list of user-friendly validation errors."""
    errors: List[str] = []

    name = metadata.get("name")
    if name is not None and (not isinstance(name, str) or not name.strip()):
        errors.append("Field 'name' must be a non-empty string.")

    for key in ("description", "role", "model"):
        value = metadata.get(key)
        if value is not None and not isinstance(value, str):
            errors.append(f"Field '{key}' must be a string.")

    mode = metadata.get("mode")
    if mode is not None and mode not in AGENT_MODES:
        errors.append(f"Field 'mode' must be one of {', '.join(AGENT_MODES)}.")

    priority = metadata.get("priority")
    if priority is not None and (isinstance(priority, bool) or not isinstance(priority, int)):
        errors.append("Field 'priority' must be an integer.")

    temperature = metadata.get("temperature")
    if temperature is not None and (isinstance(temperature, bool) or not isinstance(temperature, (int, float))):
        errors.append("Field 'temperature' must be a number.")

    disabled = metadata.get("disabled")
    if disabled is not None and not isinstance(disabled, bool):
        errors.append("Field 'disabled' must be a boolean.")

    tools = metadata.get("tools")
    if tools is not None and tools != "all" and not _is_str_list(tools):
        errors.append("Field 'tools' must be a list of strings or 'all'.")

    capabilities = metadata.get("capabilities")
    if capabilities is not None and not _is_str_list(capabilities):
        errors.append("Field 'capabilities' must be a list of strings.")

    return errors


def normalize_agent_metadata(metadata: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of the metadata with shorthand values expanded."""
    data = dict(metadata)
    if data.get("tools") == "all":
        data["tools"] = None
    if "capabilities" not in data and "skills" in data:
        data["capabilities"] = data.get("skills")
    return data
