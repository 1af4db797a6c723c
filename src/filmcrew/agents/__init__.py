"""Agent package exports."""

from .intent import Intent, RequestType, analyze_intent
from .orchestrator import Orchestrator, TaskReceipt
from .registry import AgentDefinition, AgentRegistry

__all__ = [
    "AgentDefinition",
    "AgentRegistry",
    "Intent",
    "Orchestrator",
    "RequestType",
    "TaskReceipt",
    "analyze_intent",
]
