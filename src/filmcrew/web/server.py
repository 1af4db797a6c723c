"""FastAPI app exposing agents and the task queue over HTTP."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from ..agents.orchestrator import Orchestrator
from ..agents.registry import AgentRegistry
from ..errors import TaskStateError

logger = logging.getLogger(__name__)


class TaskRequest(BaseModel):
    description: Optional[str] = None
    user_message: Optional[str] = None
    target_agent: Optional[str] = None
    context: Dict[str, Any] = {}
    priority: str = "medium"


class ToolCheckRequest(BaseModel):
    tool_name: Optional[str] = None


def _registry_of(orchestrator: Orchestrator) -> AgentRegistry:
    registry = orchestrator.registry
    if not isinstance(registry, AgentRegistry):
        raise HTTPException(status_code=501, detail="Agent registry does not support this query")
    return registry


def create_app(orchestrator: Optional[Orchestrator] = None) -> FastAPI:
    """Build the API around ``orchestrator`` (a preset-backed one by default)."""
    if orchestrator is None:
        orchestrator = Orchestrator(AgentRegistry().load_all())

    app = FastAPI(title="filmcrew")
    app.state.orchestrator = orchestrator

    # Task routes are declared first so "tasks" is never read as an agent id.
    @app.post("/api/agents/tasks")
    async def submit_task(request: TaskRequest) -> Dict[str, Any]:
        description = request.description or request.user_message
        if not description:
            raise HTTPException(status_code=400, detail="Either description or user_message is required")
        try:
            receipt = orchestrator.submit_task(
                description,
                target_agent=request.target_agent,
                context=request.context,
                priority=request.priority,
                user_message=request.user_message,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"success": True, "data": receipt.to_dict()}

    @app.get("/api/agents/tasks")
    async def list_tasks(status: Optional[str] = None, limit: int = Query(50, ge=0)) -> Dict[str, Any]:
        tasks = orchestrator.get_all_tasks(status=status, limit=limit)
        return {"success": True, "data": tasks, "count": len(tasks)}

    @app.get("/api/agents/tasks/stats")
    async def task_stats() -> Dict[str, Any]:
        return {"success": True, "data": orchestrator.get_stats()}

    @app.get("/api/agents/tasks/{task_id}")
    async def get_task(task_id: str) -> Dict[str, Any]:
        task = orchestrator.get_task(task_id)
        if task is None:
            raise HTTPException(status_code=404, detail="Task not found")
        return {"success": True, "data": task}

    @app.post("/api/agents/tasks/{task_id}/cancel")
    async def cancel_task(task_id: str) -> Dict[str, Any]:
        try:
            task = orchestrator.cancel_task(task_id)
        except TaskStateError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        if task is None:
            raise HTTPException(status_code=404, detail="Task not found")
        return {"success": True, "data": task}

    @app.get("/api/agents")
    async def list_agents() -> Dict[str, Any]:
        agents = [agent.to_dict() for agent in orchestrator.registry.get_all()]
        return {
            "success": True,
            "data": {
                "primary": [agent for agent in agents if agent["mode"] == "primary"],
                "subagents": [agent for agent in agents if agent["mode"] == "subagent"],
                "all": agents,
            },
            "count": len(agents),
        }

    @app.get("/api/agents/{agent_id}")
    async def get_agent(agent_id: str) -> Dict[str, Any]:
        agent = orchestrator.registry.get(agent_id)
        if agent is None:
            raise HTTPException(status_code=404, detail="Agent not found")
        return {"success": True, "data": agent.to_dict()}

    @app.get("/api/agents/{agent_id}/prompt")
    async def get_agent_prompt(agent_id: str, context: Optional[str] = None) -> Dict[str, Any]:
        extra: Dict[str, Any] = {}
        if context:
            try:
                extra = json.loads(context)
            except json.JSONDecodeError:
                logger.debug("Ignoring malformed prompt context for %s", agent_id)
            if not isinstance(extra, dict):
                extra = {}
        prompt = _registry_of(orchestrator).full_prompt(agent_id, extra)
        if prompt is None:
            raise HTTPException(status_code=404, detail="Agent not found")
        return {"success": True, "data": {"agent_id": agent_id, "prompt": prompt}}

    @app.get("/api/agents/{agent_id}/tools")
    async def get_agent_tools(agent_id: str) -> Dict[str, Any]:
        agent = orchestrator.registry.get(agent_id)
        if agent is None:
            raise HTTPException(status_code=404, detail="Agent not found")
        return {
            "success": True,
            "data": {"agent_id": agent_id, "tools": agent.tools, "all_tools_allowed": agent.tools is None},
        }

    @app.post("/api/agents/{agent_id}/can-use-tool")
    async def can_use_tool(agent_id: str, request: ToolCheckRequest) -> Dict[str, Any]:
        if not request.tool_name:
            raise HTTPException(status_code=400, detail="tool_name is required")
        allowed = _registry_of(orchestrator).can_use_tool(agent_id, request.tool_name)
        return {"success": True, "data": {"agent_id": agent_id, "tool_name": request.tool_name, "allowed": allowed}}

    return app
